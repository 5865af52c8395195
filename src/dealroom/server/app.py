"""
ASGI application — FastAPI routes with the Socket.IO server in front.

Run locally:
    uvicorn dealroom.server.app:create_asgi_app --factory --port 8080
or:
    dealroom serve
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import socketio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dealroom import __version__
from dealroom.config import Settings
from dealroom.errors import AuthenticationError, InvalidArgument, PersistenceError
from dealroom.server import api
from dealroom.server.services import Services, build_services
from dealroom.server.sockets import SOCKETIO_PATH

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: Services = app.state.services
    await services.startup()
    yield
    await services.shutdown()


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": getattr(exc, "message", str(exc))})
    return handler


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    services = services or build_services(settings or Settings())
    app = FastAPI(
        title="Dealroom",
        version=__version__,
        description="Real-time founder/investor chat and notifications",
        lifespan=lifespan,
    )
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=services.settings.cors_origin_list,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AuthenticationError, _error_handler(401))
    app.add_exception_handler(InvalidArgument, _error_handler(400))
    app.add_exception_handler(PersistenceError, _error_handler(503))
    app.include_router(api.router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


def create_asgi_app(settings: Optional[Settings] = None) -> socketio.ASGIApp:
    """FastAPI app wrapped by the Socket.IO ASGI app (lifespan is forwarded)."""
    app = create_app(settings)
    services: Services = app.state.services
    return socketio.ASGIApp(services.sio, other_asgi_app=app, socketio_path=SOCKETIO_PATH)
