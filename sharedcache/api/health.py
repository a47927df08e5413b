"""
Health check endpoint for the shared document store.

Load balancers use it to take an instance out of rotation when the shared
store is unreachable.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..registration import SharedCacheServices
from .dependencies import get_shared_cache_services

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/cache")
async def cache_health(
    services: SharedCacheServices = Depends(get_shared_cache_services),
) -> JSONResponse:
    """
    Store connectivity check.

    Returns 200 with latency when the store answers, 503 otherwise.
    """
    health_status: Dict[str, Any] = await services.factory.health_check()
    health_status["cache_collection"] = services.settings.CACHE_COLLECTION
    health_status["key_ring_collection"] = services.settings.KEY_RING_COLLECTION
    health_status["enforce_expiration"] = services.cache.enforce_expiration

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=health_status)
