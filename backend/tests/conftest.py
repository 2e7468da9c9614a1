"""
Image Proxy test configuration

Fixtures:
- make_image(): encode a solid-colour test image in any Pillow format
- origin: a fake upstream host built on httpx.MockTransport that counts
  requests per path and can be made slow to widen race windows
- fetcher / resolver / app_client: the real components wired to the fake
  origin, with a MemoryStore or a DiskStore under tmp_path
"""

import asyncio
import sys
from io import BytesIO
from pathlib import Path
from typing import Dict, Optional

import httpx
import pytest

# Add backend directory to the Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from cache.disk_store import DiskStore
from cache.memory_store import MemoryStore
from image_proxy.config import ProxySettings
from image_proxy.origin_fetcher import OriginFetcher
from image_proxy.resolver import CacheResolver
from image_proxy.transformer import ImageTransformer
from main import create_app

ORIGIN_URL = "https://origin.example"


# ============================================
# Helpers
# ============================================

def make_image(
    width: int = 400,
    height: int = 400,
    color=(200, 30, 30),
    fmt: str = "PNG",
    mode: str = "RGB",
) -> bytes:
    from PIL import Image

    img = Image.new(mode, (width, height), color)
    output = BytesIO()
    img.save(output, format=fmt)
    return output.getvalue()


def image_size(data: bytes):
    from PIL import Image

    with Image.open(BytesIO(data)) as img:
        return img.format, img.size


class FakeOrigin:
    """
    In-process origin host.

    Assets are registered by path ("avatar.png" -> bytes); unknown paths
    answer 404. Set `delay` to make every response slow, or `fail` to make
    the transport raise.
    """

    def __init__(self):
        self.assets: Dict[str, bytes] = {}
        self.requests: Dict[str, int] = {}
        self.delay: float = 0.0
        self.fail: Optional[Exception] = None
        self.transport = httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests[path] = self.requests.get(path, 0) + 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail is not None:
            raise self.fail
        data = self.assets.get(path.lstrip("/"))
        if data is None:
            return httpx.Response(404, content=b"not found")
        return httpx.Response(200, content=data)

    @property
    def total_requests(self) -> int:
        return sum(self.requests.values())


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def origin():
    return FakeOrigin()


@pytest.fixture
async def fetcher(origin):
    client = httpx.AsyncClient(transport=origin.transport)
    yield OriginFetcher(ORIGIN_URL, client=client)
    await client.aclose()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def disk_store(tmp_path):
    return DiskStore(tmp_path / "data")


@pytest.fixture
def transformer():
    return ImageTransformer()


@pytest.fixture
def resolver(memory_store, fetcher, transformer):
    return CacheResolver(memory_store, fetcher, transformer)


@pytest.fixture
def disk_resolver(disk_store, fetcher, transformer):
    return CacheResolver(disk_store, fetcher, transformer)


@pytest.fixture
def settings(tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return ProxySettings(port=8080, data_dir=data_dir, origin_url=ORIGIN_URL)


@pytest.fixture
async def app_client(settings, fetcher):
    """
    HTTP client talking to the app in-process, backed by a DiskStore
    under settings.data_dir and the fake origin.
    """
    app = create_app(settings, fetcher=fetcher)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://proxy.test") as client:
        yield client
