"""
Zwift POS AI API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups,
and owns the process-wide AI request queue.

Extension points:
  - Add new route groups with app.include_router() below
  - Tune the AI queue with the AI_QUEUE_* env vars (see core/config.py)
  - Change startup / shutdown behaviour in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from zwift_api.core.config import settings
from zwift_api.core.rate_limit import limiter
from zwift_api.core.request_queue import RateLimitedRequestQueue
from zwift_api.routes.chat import router as chat_router
from zwift_api.routes.health import router as health_router
from zwift_api.routes.inventory_insights import router as inventory_insights_router
from zwift_api.routes.profit_insights import router as profit_insights_router
from zwift_api.routes.restocking import router as restocking_router
from zwift_api.routes.roi_insights import router as roi_insights_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage startup and shutdown lifecycle.

    On shutdown the AI queue is closed: anything still waiting fails with
    QueueClosedError (→ 503) instead of hanging until the process dies.
    """
    logger.info(
        "Starting Zwift POS AI API (env: %s, ai_mock_mode: %s)",
        settings.environment,
        settings.ai_mock_mode,
    )
    yield
    logger.info("Shutting down Zwift POS AI API")
    await app.state.ai_queue.close()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Zwift POS AI API",
    description=(
        "AI insights for the Zwift point-of-sale dashboard: inventory, ROI, "
        "profit and restocking, plus an inventory chat assistant. All AI results "
        "are advisory."
    ),
    version="0.1.0",
    lifespan=lifespan,
    # Disable docs in production to reduce attack surface
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── AI request queue ──────────────────────────────────────────────────────────
# One per process, shared by every AI route through Depends(get_ai_queue).
app.state.ai_queue = RateLimitedRequestQueue.from_settings(settings)

# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Per-client limits on top of the queue.
# Routes opt-in with @limiter.limit("N/minute") + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
# CORS: allow the POS dashboard to call the API.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])

app.include_router(inventory_insights_router)
app.include_router(roi_insights_router)
app.include_router(profit_insights_router)
app.include_router(restocking_router)
app.include_router(chat_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "Zwift POS AI API",
        "version": "0.1.0",
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
