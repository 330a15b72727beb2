"""FastAPI status server.

    GET /health    -> {"status": "ok", "active_sessions": 2}
    GET /sessions  -> [{"username": "bob", "remote": "10.0.0.5", ...}, ...]
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel

from sshchat import __version__
from sshchat.config.settings import StatusConfig
from sshchat.domain.models import SessionInfo
from sshchat.registry import SessionRegistry

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str = "ok"
    active_sessions: int = 0


def create_app(registry: SessionRegistry) -> FastAPI:
    """Create the status application over a live session registry."""
    app = FastAPI(
        title="sshchat status",
        description="Health and active session listing for the sshchat server",
        version=__version__,
    )
    app.state.registry = registry

    @app.get("/health")
    async def health_check() -> HealthResponse:
        return HealthResponse(status="ok", active_sessions=len(app.state.registry))

    @app.get("/sessions")
    async def list_sessions() -> list[SessionInfo]:
        return app.state.registry.sessions()

    return app


def create_server(registry: SessionRegistry, config: StatusConfig) -> uvicorn.Server:
    """Build a uvicorn server for the status app, ready to ``await server.serve()``."""
    app = create_app(registry)
    uv_config = uvicorn.Config(app, host=config.host, port=config.port, log_level="warning")
    logger.info("Status endpoint on http://%s:%d", config.host, config.port)
    return uvicorn.Server(uv_config)
