import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import FastAPI, HTTPException, status
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.config import settings
from app.auth import router as auth_router
from app.routers.gyms import router as gyms_router
from app.routers.locations import router as locations_router
from app.routers.coaches import router as coaches_router
from app.routers.schedules import router as schedules_router
from app.routers.schedule_overview import router as schedule_overview_router
from app.routers.clients import router as clients_router
from app.routers.progression import router as progression_router
from app.routers.benchmarks import router as benchmarks_router
from app.routers.workouts import router as workouts_router
from app.routers.programs import router as programs_router
from app.routers.benchmark_templates import router as benchmark_templates_router
from app.routers.catalog import groups_router, templates_router
from app.routers.audit import router as audit_router, gym_router as gym_audit_router
from app.routers.dev import router as dev_router
from app.core import exceptions
from app.database import AsyncSessionLocal, engine
from app.services.progression import ProgressionService

from fastapi.middleware.cors import CORSMiddleware

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)
PROGRESSION_SCHEDULER_LOCK_KEY = 771204913
progression_scheduler_task: asyncio.Task | None = None

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

# CORS must be added before other middleware
configured_origins = [str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS]
default_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]
allow_origins = configured_origins if settings.APP_ENV == "production" else list(dict.fromkeys([*default_origins, *configured_origins]))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response

# Exception Handlers
app.add_exception_handler(RequestValidationError, exceptions.validation_exception_handler)  # type: ignore
app.add_exception_handler(IntegrityError, exceptions.integrity_exception_handler)  # type: ignore
app.add_exception_handler(exceptions.DomainError, exceptions.domain_exception_handler)  # type: ignore
app.add_exception_handler(StarletteHTTPException, exceptions.http_exception_handler)  # type: ignore
app.add_exception_handler(Exception, exceptions.unhandled_exception_handler)

# Routers
API = settings.API_V1_STR
GYM = f"{API}/gyms/{{gym_id}}"
app.include_router(auth_router.router, prefix=f"{API}/auth", tags=["Auth"])
app.include_router(gyms_router, prefix=f"{API}/gyms", tags=["Gyms"])
app.include_router(locations_router, prefix=f"{GYM}/locations", tags=["Locations"])
app.include_router(coaches_router, prefix=f"{GYM}/coaches", tags=["Coaches"])
app.include_router(schedules_router, prefix=f"{GYM}/coaches/{{coach_id}}/schedules", tags=["Schedules"])
app.include_router(schedule_overview_router, prefix=f"{GYM}/schedules", tags=["Schedules"])
app.include_router(clients_router, prefix=f"{GYM}/clients", tags=["Clients"])
app.include_router(progression_router, prefix=f"{GYM}/clients", tags=["Progression"])
app.include_router(benchmarks_router, prefix=f"{GYM}/clients/{{client_id}}/benchmarks", tags=["Benchmarks"])
app.include_router(workouts_router, prefix=f"{GYM}/clients/{{client_id}}", tags=["Workouts"])
app.include_router(programs_router, prefix=f"{GYM}/programs", tags=["Programs"])
app.include_router(gym_audit_router, prefix=GYM, tags=["Audit"])
app.include_router(benchmark_templates_router, prefix=f"{API}/benchmark-templates", tags=["Benchmark Templates"])
app.include_router(groups_router, prefix=f"{API}/activity-groups", tags=["Activity Catalog"])
app.include_router(templates_router, prefix=f"{API}/activity-templates", tags=["Activity Catalog"])
app.include_router(audit_router, prefix=f"{API}/audit", tags=["Audit"])
if settings.APP_ENV == "development":
    app.include_router(dev_router, prefix=f"{API}/dev", tags=["Dev"])

@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.get("/healthz")
async def healthz():
    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.exception("Health check failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="database unavailable",
        ) from exc
    return {"status": "ok", "database": "ok"}

@app.get("/")
async def root():
    return {"message": f"Welcome to the {settings.PROJECT_NAME}", "docs": "/docs"}


def _seconds_until_next_run(now_utc: datetime) -> float:
    """Seconds until the next configured weekday/hour (UTC) at which programs advance."""
    target = now_utc.replace(hour=settings.PROGRESSION_AUTO_HOUR_UTC, minute=0, second=0, microsecond=0)
    target += timedelta(days=(settings.PROGRESSION_AUTO_WEEKDAY - now_utc.weekday()) % 7)
    if target <= now_utc:
        target += timedelta(days=7)
    return max((target - now_utc).total_seconds(), 1.0)


async def _run_weekly_progression_once() -> None:
    use_lock = engine.dialect.name == "postgresql"
    async with AsyncSessionLocal() as db:
        if use_lock:
            locked = bool(
                (await db.execute(text("SELECT pg_try_advisory_lock(:key)"), {"key": PROGRESSION_SCHEDULER_LOCK_KEY})).scalar()
            )
            if not locked:
                logger.info("Progression scheduler lock busy; skipping this cycle")
                return
        try:
            summaries = await ProgressionService.weekly_auto_progression(db)
            logger.info(
                "Progression scheduler run complete: gyms=%s advanced=%s failed=%s",
                len(summaries),
                sum(s.successful_updates for s in summaries.values()),
                sum(s.failed_updates for s in summaries.values()),
            )
        finally:
            if use_lock:
                await db.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": PROGRESSION_SCHEDULER_LOCK_KEY})
                await db.commit()


async def _progression_scheduler_loop() -> None:
    while True:
        delay = _seconds_until_next_run(datetime.now(timezone.utc))
        await asyncio.sleep(delay)
        try:
            await _run_weekly_progression_once()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Progression scheduler iteration failed")


@app.on_event("startup")
async def startup_progression_scheduler() -> None:
    global progression_scheduler_task
    _validate_security_settings()
    if not settings.PROGRESSION_AUTO_ENABLED:
        logger.info("Weekly progression scheduler disabled by config")
        return
    if progression_scheduler_task and not progression_scheduler_task.done():
        return
    progression_scheduler_task = asyncio.create_task(_progression_scheduler_loop())
    logger.info(
        "Progression scheduler started (weekday=%s hour_utc=%s)",
        settings.PROGRESSION_AUTO_WEEKDAY,
        settings.PROGRESSION_AUTO_HOUR_UTC,
    )


@app.on_event("shutdown")
async def shutdown_progression_scheduler() -> None:
    global progression_scheduler_task
    if progression_scheduler_task and not progression_scheduler_task.done():
        progression_scheduler_task.cancel()
        try:
            await progression_scheduler_task
        except asyncio.CancelledError:
            pass
    progression_scheduler_task = None


def _validate_security_settings() -> None:
    if settings.APP_ENV != "production":
        return

    errors: list[str] = []
    if len(settings.SECRET_KEY.strip()) < 24:
        errors.append("SECRET_KEY must be at least 24 characters in production.")
    if not settings.BACKEND_CORS_ORIGINS:
        errors.append("BACKEND_CORS_ORIGINS must be explicitly configured in production.")

    if errors:
        raise RuntimeError("; ".join(errors))
