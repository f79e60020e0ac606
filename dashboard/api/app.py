"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..app import Application
from ..errors import DashboardError
from ..logging_config import get_logger
from .routes import activities, commands, messaging, observability, participants, realtime

logger = get_logger(__name__)

# Global application instance
_app: Application | None = None


def get_app() -> Application:
    """Get the global application instance."""
    global _app
    if not _app:
        _app = Application()
    return _app


def set_app(application: Application | None) -> None:
    """Replace the global application instance."""
    global _app
    _app = application


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan."""
    # Startup
    application = get_app()
    await application.start()
    yield
    # Shutdown
    await application.stop()


async def handle_dashboard_error(request: Request, exc: DashboardError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": str(exc)},
    )


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    if application is not None:
        set_app(application)
    application = get_app()

    fastapi_app = FastAPI(
        title="Agent Dashboard API",
        description="Realtime dashboard for a team of AI agents and their owner",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Enable CORS
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=application.settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    fastapi_app.add_exception_handler(DashboardError, handle_dashboard_error)

    # Include routers
    fastapi_app.include_router(observability.create_observability_router(application))
    fastapi_app.include_router(participants.create_participants_router(application))
    fastapi_app.include_router(messaging.create_messaging_router(application))
    fastapi_app.include_router(activities.create_activities_router(application))
    fastapi_app.include_router(commands.create_commands_router(application))
    fastapi_app.include_router(realtime.create_realtime_router(application))

    return fastapi_app
