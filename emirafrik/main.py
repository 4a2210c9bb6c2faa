from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from emirafrik import db
from emirafrik.config import AppInfo, Settings, get_settings
from emirafrik.core.logging import get_logger, setup_logging
from emirafrik.core.runtime_state import set_scheduler_active
import emirafrik.models  # registers the tables
from emirafrik.providers import PROVIDER_MODES, missing_live_credentials
from emirafrik.routers import get_api_router
from emirafrik.services.cron import expire_stale_payments_once
from emirafrik.services.scheduler_lock import (
    refresh_scheduler_lock,
    release_scheduler_lock,
    try_acquire_scheduler_lock,
)
from emirafrik.utils.errors import INVALID_INPUT, error_response

logger = get_logger(__name__)
scheduler: AsyncIOScheduler | None = None
ALLOWED_CREATE_ENV = {"dev", "local", "test"}


def _current_settings() -> Settings:
    return get_settings()


def _configure_middlewares(fastapi_app: FastAPI) -> None:
    """Configure middleware using a fresh snapshot of the settings."""

    runtime_settings = _current_settings()
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=runtime_settings.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    if runtime_settings.PROMETHEUS_ENABLED:
        from starlette_exporter import PrometheusMiddleware, handle_metrics

        fastapi_app.add_middleware(PrometheusMiddleware, app_name="emirafrik_payments")
        fastapi_app.add_route("/metrics", handle_metrics)

    if runtime_settings.SENTRY_DSN:
        import sentry_sdk

        sentry_sdk.init(dsn=runtime_settings.SENTRY_DSN, traces_sample_rate=0.2)


def _assert_runtime_configuration(settings: Any) -> None:
    """Fail fast on configurations that cannot serve payments outside dev."""

    env_lower = settings.app_env.lower()
    if settings.MOMO_PROVIDER_MODE not in PROVIDER_MODES:
        raise RuntimeError(f"Unknown MOMO_PROVIDER_MODE {settings.MOMO_PROVIDER_MODE!r}.")

    if settings.MOMO_PROVIDER_MODE == "live":
        missing = missing_live_credentials(settings)
        if missing and env_lower != "dev":
            logger.error(
                "Live provider mode without credentials",
                extra={"env": settings.app_env, "missing": missing},
            )
            raise RuntimeError(f"Missing provider credentials: {', '.join(missing)}")
    elif env_lower in {"prod", "production"}:
        logger.warning(
            "Simulated mobile-money providers enabled in production.",
            extra={"env": settings.app_env},
        )

    if settings.AUTH_MODE == "jwt" and not settings.AUTH_JWT_SECRET and env_lower != "dev":
        raise RuntimeError("AUTH_MODE=jwt requires AUTH_JWT_SECRET outside dev.")

    if not settings.momo_webhook_secret and env_lower != "dev":
        logger.warning(
            "MOMO_WEBHOOK_SECRET is not configured; webhooks are accepted on payload shape only.",
            extra={"env": settings.app_env},
        )


def _start_scheduler(settings: Settings) -> bool:
    """Start the expiry job on the runner holding the DB lock."""

    global scheduler
    if not (settings.SCHEDULER_ENABLED and settings.PENDING_PAYMENT_EXPIRY_HOURS):
        return False
    if not try_acquire_scheduler_lock():
        logger.warning(
            "Scheduler disabled because lock is already held by another instance.",
            extra={"env": settings.app_env},
        )
        return False

    scheduler = AsyncIOScheduler()
    scheduler.start()
    scheduler.add_job(
        expire_stale_payments_once,
        "interval",
        minutes=15,
        id="expire-stale-payments",
        replace_existing=True,
    )
    scheduler.add_job(
        refresh_scheduler_lock,
        "interval",
        seconds=60,
        id="scheduler-lock-heartbeat",
        replace_existing=True,
    )
    set_scheduler_active(True)
    logger.info(
        "Stale payment expiry scheduled",
        extra={"expiry_hours": settings.PENDING_PAYMENT_EXPIRY_HOURS},
    )
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = _current_settings()
    setup_logging(settings.LOG_LEVEL, env=settings.app_env)
    logger.info("Application startup", extra={"env": settings.app_env})
    _assert_runtime_configuration(settings)

    db.init_engine()
    env_lower = settings.app_env.lower()
    if settings.ALLOW_DB_CREATE_ALL and env_lower in ALLOWED_CREATE_ENV:
        logger.warning(
            "Running Base.metadata.create_all() because APP_ENV=%s and ALLOW_DB_CREATE_ALL=True",
            settings.app_env,
        )
        db.create_all()
    else:
        logger.info("Skipping create_all(); use Alembic migrations. APP_ENV=%s", settings.app_env)

    set_scheduler_active(False)
    lock_acquired = _start_scheduler(settings)
    try:
        yield
    finally:
        if scheduler:
            scheduler.shutdown(wait=False)
        if lock_acquired:
            release_scheduler_lock()
        set_scheduler_active(False)
        db.close_engine()
        logger.info("Application shutdown", extra={"env": settings.app_env})


app_info = AppInfo()

app = FastAPI(title=app_info.name, version=app_info.version, lifespan=lifespan)

_configure_middlewares(app)
app.include_router(get_api_router())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", exc_info=exc)
    payload = error_response("INTERNAL_SERVER_ERROR", "An unexpected error occurred.")
    return JSONResponse(status_code=500, content=payload)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict) and "error" in detail:
        content: dict[str, Any] = detail
    else:
        content = error_response("HTTP_ERROR", str(detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    # loc is ("body" | "query", field, ...)
    loc = [str(part) for part in first.get("loc", ())[1:]]
    field = ".".join(loc) or "body"
    content = error_response(
        INVALID_INPUT,
        f"Invalid value for {field}: {first.get('msg', 'invalid input')}.",
        {"field": field},
    )
    return JSONResponse(status_code=400, content=content)


__all__ = ["app"]
