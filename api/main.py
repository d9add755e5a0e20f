"""
Fal Bites Subscriptions — FastAPI Backend
Delivery calendars, pause/resume and franchise service areas.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from db.database import engine, init_models, is_sqlite
from jobs.scheduler import get_job_status, shutdown_scheduler, start_scheduler
from routers import app_settings, franchises, subscription_orders
from services.errors import ScheduleError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Subscriptions API starting...")
    if is_sqlite:
        await init_models()
    if settings.enable_scheduler:
        start_scheduler()
    yield
    shutdown_scheduler()
    await engine.dispose()
    logger.info("Subscriptions API shut down.")


app = FastAPI(
    title="Fal Bites Subscriptions API",
    description="Subscription delivery scheduling and franchise geofencing",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ────────────────────────────────────────────────
app.include_router(subscription_orders.router, prefix="/api/subscription-orders", tags=["Subscription Orders"])
app.include_router(franchises.router, prefix="/api/franchises", tags=["Franchises"])
app.include_router(app_settings.router, prefix="/api/settings", tags=["Settings"])


# ── Errors ─────────────────────────────────────────────────
@app.exception_handler(ScheduleError)
async def schedule_error_handler(request: Request, exc: ScheduleError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.code, "message": exc.message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "INTERNAL_ERROR", "message": "Internal Server Error"},
    )


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "Fal Bites Subscriptions API"}


@app.get("/health/jobs")
async def health_jobs():
    return {"jobs": get_job_status()}
