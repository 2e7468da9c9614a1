"""
Image Proxy API Routes

Provides endpoints for:
- Resized images: GET /proxy/{width}x{height}/{path}
- Health and cache statistics: GET /health
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from .errors import InputError, ProxyError, describe_error
from .models import CacheKey, LogicalPath, Size
from .resolver import CacheResolver
from .transformer import OUTPUT_CONTENT_TYPE

logger = logging.getLogger(__name__)

# ============================================
# Router
# ============================================

router = APIRouter(tags=["Image Proxy"])


def get_resolver(request: Request) -> CacheResolver:
    return request.app.state.resolver


# ============================================
# Endpoints
# ============================================

@router.get("/proxy/{size}/{path:path}")
async def proxy_image(size: str, path: str, request: Request):
    """
    Serve an origin image resized to the requested size, as PNG.

    This endpoint:
    1. Parses the size token and the asset path (400 if malformed)
    2. Serves the stored derivative if there is one
    3. Otherwise fetches the origin once, resizes, stores and serves it

    Example:
        GET /proxy/200x100/users/1/avatar.jpg
    """
    try:
        key = CacheKey(Size.parse(size), LogicalPath.parse(path))
    except InputError as e:
        logger.info(f"[ImageProxy] Rejected {request.url.path}: {e}")
        return PlainTextResponse(f"Invalid request: {e}", status_code=400)

    resolver = get_resolver(request)
    try:
        data = await resolver.resolve(key)
    except ProxyError as e:
        chain = describe_error(e)
        logger.error(f"[ImageProxy] Failed to resolve {key}: {chain}", exc_info=True)
        return PlainTextResponse(f"Something went wrong: {chain}", status_code=500)

    return Response(content=data, media_type=OUTPUT_CONTENT_TYPE)


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    return JSONResponse(content={
        "status": "healthy",
        "service": "image-proxy",
        "stats": get_resolver(request).stats(),
    })
