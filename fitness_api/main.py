import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fitness_api.auth import CredentialStore
from fitness_api.config import Settings, settings as default_settings
from fitness_api.db import create_schema
from fitness_api.errors import AuthError, FitnessError
from fitness_api.tracker.exercise_router import admin_router as admin_exercise_router
from fitness_api.tracker.exercise_router import router as exercise_router
from fitness_api.tracker.profile_router import router as profile_router
from fitness_api.tracker.progress_router import router as progress_router
from fitness_api.tracker.workout_router import router as workout_router

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level.upper(), format=settings.log_format)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.settings.create_schema_on_startup:
        await create_schema()
        logger.info("Database schema ensured")
    yield


async def fitness_error_handler(request: Request, exc: FitnessError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Basic"} if isinstance(exc, AuthError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.title, "message": exc.message},
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Rejected inputs (NaN, Infinity) are not echoed back; they are not valid JSON output.
    errors = [{k: v for k, v in err.items() if k != "input"} for err in exc.errors()]
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(title="Fitness Tracker API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.credentials = CredentialStore.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Authorization", "Content-Type", "X-CSRF-Token"],
        expose_headers=["Link"],
        max_age=300,
    )
    app.middleware("http")(log_requests)
    app.add_exception_handler(FitnessError, fitness_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(profile_router)
    app.include_router(exercise_router)
    app.include_router(admin_exercise_router)
    app.include_router(workout_router)
    app.include_router(progress_router)

    app.add_api_route("/", root, methods=["GET"])
    app.add_api_route("/health", health, methods=["GET"])

    logger.info(
        "Application initialised",
        extra={"users": len(settings.whitelisted_users), "admins": len(settings.whitelisted_admins)},
    )
    return app


async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "users": {"create": "/users", "me": "/users/me"},
        "exercises": {
            "list": "/exercises",
            "search": "/exercises/search",
            "detail": "/exercises/{id}",
            "by_name": "/exercises/name/{name}",
            "admin": "/admin/exercises",
        },
        "workout": {"create": "/workout/manual", "me": "/workout/me", "volume": "/workout/volume"},
        "progress": {
            "log": "/progress",
            "me": "/progress/me",
            "summary": "/progress/me/summary",
            "trend": "/progress/me/trend",
        },
    }


async def health() -> dict[str, str]:
    return {"status": "ok"}


app = create_app()
