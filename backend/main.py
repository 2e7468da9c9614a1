"""
Image Proxy Server

Entry point: reads settings from the environment, wires the cache
resolver to its collaborators and serves the FastAPI app with uvicorn.

    P42_PORT=8080 P42_DATA_DIR=./data python backend/main.py
"""

import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request

from cache.base import AssetStore
from cache.disk_store import DiskStore
from image_proxy.config import ConfigError, ProxySettings, load_settings
from image_proxy.origin_fetcher import OriginFetcher
from image_proxy.resolver import CacheResolver
from image_proxy.routes_fastapi import router
from image_proxy.transformer import ImageTransformer

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)


def create_app(
    settings: ProxySettings,
    fetcher: Optional[OriginFetcher] = None,
    store: Optional[AssetStore] = None,
) -> FastAPI:
    """Build the app; fetcher and store can be injected for tests."""
    fetcher = fetcher or OriginFetcher(settings.origin_url, timeout=settings.fetch_timeout)
    store = store or DiskStore(settings.data_dir)
    resolver = CacheResolver(store, fetcher, ImageTransformer())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Starting server on port {settings.port} with data_dir = {settings.data_dir}, "
            f"origin = {settings.origin_url}"
        )
        yield
        await fetcher.close()

    app = FastAPI(title="Image Proxy", lifespan=lifespan)
    app.state.settings = settings
    app.state.resolver = resolver

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({elapsed_ms:.1f}ms)"
        )
        return response

    app.include_router(router)
    return app


def main() -> None:
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.log_level)
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
