import os
import pkgutil
from importlib import import_module

from fastapi import APIRouter

from chatcast.logging import logger

# Track registered modules to prevent duplicate logging
_registered_http_modules: set[str] = set()
_registered_ws_modules: set[str] = set()


def _include_modules(
    main_router: APIRouter, directory: str, package: str, kind: str
) -> None:
    registered = (
        _registered_http_modules if kind == "api" else _registered_ws_modules
    )

    for _, module, _ in pkgutil.iter_modules([directory]):
        api = import_module(f".{module}", package=package)
        main_router.include_router(api.router)

        # Only log on first registration
        if module not in registered:
            logger.info(f'Register "{module}" {kind}')
            registered.add(module)


def collect_subrouters() -> APIRouter:
    """
    Collects all HTTP and WebSocket routers of the application.

    Every module in ``api/http`` and ``api/ws/consumers`` exposes a
    ``router`` attribute; each one is included into a single main router.
    """
    main_router: APIRouter = APIRouter()

    app_dir = os.path.dirname(__file__)
    app_name = os.path.basename(app_dir)

    _include_modules(
        main_router, f"{app_dir}/api/http", f"{app_name}.api.http", "api"
    )
    _include_modules(
        main_router,
        f"{app_dir}/api/ws/consumers",
        f"{app_name}.api.ws.consumers",
        "websocket consumer",
    )

    return main_router
