"""
Health check endpoint.

Used by:
  - Load balancers / orchestrators
  - The POS dashboard, to check API connectivity before showing AI panels

Reports whether the Supabase store is configured, whether AI calls are
mocked, and a snapshot of the AI queue so operators can see back-pressure
(pending count, rejections, expiries) without digging through logs.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from zwift_api.ai.gemini_client import gemini_client
from zwift_api.core.config import settings
from zwift_api.core.request_queue import RateLimitedRequestQueue, get_ai_queue
from zwift_api.services.supabase_store import SupabaseStore, get_store

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    store: str  # "configured" | "not_configured"
    ai_mode: str  # "mock" | "real"
    environment: str
    queue: dict[str, Any]


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check(
    queue: RateLimitedRequestQueue = Depends(get_ai_queue),
    store: SupabaseStore = Depends(get_store),
) -> HealthResponse:
    """
    Returns the liveness status of the API.

    Always HTTP 200 while the process is up, even with no store configured
    or a full AI queue; the body says which.
    """
    return HealthResponse(
        status="ok",
        version="0.1.0",
        store="configured" if store.enabled else "not_configured",
        ai_mode="mock" if gemini_client.mock_mode else "real",
        environment=settings.environment,
        queue=queue.stats(),
    )
