"""Health check endpoint for infrastructure monitoring."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from chatbot.dependencies import get_store
from chatbot.storage import ChatStore

logger = logging.getLogger(__name__)
router = APIRouter()


async def _check_storage(store: ChatStore) -> dict[str, Any]:
    """Ping the store and return status."""
    try:
        healthy = await store.ping()
    except Exception as exc:
        logger.warning("Storage health check failed: %s", exc)
        return {"status": "unhealthy", "backend": store.backend, "error": str(exc)}
    return {"status": "healthy" if healthy else "unhealthy", "backend": store.backend}


@router.get("")
async def health_check(store: ChatStore = Depends(get_store)) -> dict[str, Any]:
    """Return aggregate health of backend services."""
    services = {"storage": await _check_storage(store)}

    overall = (
        "healthy"
        if all(s["status"] == "healthy" for s in services.values())
        else "degraded"
    )

    return {
        "status": overall,
        "services": services,
    }
