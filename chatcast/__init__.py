# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.staticfiles import StaticFiles

from chatcast.constants import WS_GOING_AWAY_CODE
from chatcast.logging import logger
from chatcast.managers.websocket_connection_manager import ConnectionManager
from chatcast.middlewares.correlation_id import CorrelationIDMiddleware
from chatcast.routing import collect_subrouters
from chatcast.settings import app_settings
from chatcast.startup_validation import validate_settings
from chatcast.utils.metrics import app_info

__version__ = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager for startup and shutdown.

    Startup operations:
    - Validates settings (fails fast on a missing static directory)
    - Initializes Prometheus application info

    Shutdown operations:
    - Closes every open connection with 1001 (going away) and unregisters it
    """
    logger.info("Application startup initiated")

    validate_settings()

    app_info.labels(
        version=__version__,
        python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        environment=app_settings.ENVIRONMENT.value,
    ).set(1)
    logger.info("Initialized Prometheus metrics")

    yield  # Application runs here

    logger.info("Application shutdown initiated")

    manager: ConnectionManager = app.state.connection_manager
    closed = await manager.close_all(WS_GOING_AWAY_CODE)
    if closed:
        logger.info(f"Closed {closed} open connections during shutdown")

    logger.info("Application shutdown complete")


def application() -> FastAPI:
    """
    Initializes and configures the FastAPI application.

    - Attaches a fresh ``ConnectionManager`` to ``app.state``
    - Includes the routers collected by ``collect_subrouters()``
      (``/health``, ``/metrics`` and the ``/ws/{client_id}`` endpoint)
    - Mounts ``STATIC_DIR`` at ``STATIC_URL`` when configured
    - Adds ``CorrelationIDMiddleware`` for HTTP request tracing
    """
    app = FastAPI(
        title="Chat broadcast service",
        description="Rebroadcasts every received WebSocket message to all connected clients",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.connection_manager = ConnectionManager()

    app.include_router(collect_subrouters())

    if app_settings.STATIC_DIR is not None:
        # Directory existence is checked by validate_settings() on startup
        app.mount(
            app_settings.STATIC_URL,
            StaticFiles(directory=app_settings.STATIC_DIR, check_dir=False),
            name="static",
        )

    app.add_middleware(CorrelationIDMiddleware)

    return app


app = application()  # Need for fastapi cli
