"""safetrail FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from safetrail.api import alerts, health, sessions, ws
from safetrail.core.config import settings
from safetrail.core.rate_limit import limiter
from safetrail.core.relay import SessionRelay
from safetrail.services.jobs import run_expiry_sweep

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.relay = SessionRelay(
        validate_session=ws.validate_session,
        record_position=ws.record_position,
    )

    scheduler = BackgroundScheduler(job_defaults={"misfire_grace_time": 60, "coalesce": True})
    if settings.expiry_sweep_enabled:
        # Corrective pass alongside the lazy expiry checks
        scheduler.add_job(
            run_expiry_sweep,
            IntervalTrigger(minutes=settings.expiry_sweep_interval_minutes),
            id="expiry_sweep",
            replace_existing=True,
        )
        scheduler.start()
    logger.info("%s started", settings.app_name)

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await app.state.relay.close()
    logger.info("%s stopped", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(health.router)
app.include_router(sessions.router)
app.include_router(alerts.router)
app.include_router(ws.router)


# ---------- Error handlers: every error body is {"error": <message>} ----------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    limit = getattr(exc, "limit", None)
    if limit is not None and limit.error_message:
        message = exc.detail
    else:
        message = f"Too many requests ({exc.detail}). Please try again later."
    logger.warning("Rate limit hit: %s %s", request.client.host if request.client else "-", request.url.path)
    return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request").removeprefix("Value error, ")
        detail = f"{field}: {message}" if field else message
    else:
        detail = "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": detail})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )
