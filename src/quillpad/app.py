"""FastAPI application for the quillpad editor service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI
from pydantic import BaseModel

from . import __version__
from .http_rpc import router as rpc_router
from .session import Workspace

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    open_notes: int


def create_app(workspace: Workspace | None = None) -> FastAPI:
    """Create the FastAPI application around a workspace.

    Args:
        workspace: Workspace to serve (defaults to one over the SQLite store)

    Returns:
        FastAPI application instance
    """
    workspace = workspace if workspace is not None else Workspace()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        # Write out whatever is still inside a debounce window
        if not app.state.workspace.close_all():
            logger.warning("Some notes failed to save on shutdown")

    app = FastAPI(
        title="Quillpad",
        description="Block-based note editor core over JSON-RPC",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.workspace = workspace

    @app.get("/health", response_model=HealthResponse)
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "open_notes": len(app.state.workspace.open_note_ids()),
        }

    app.include_router(rpc_router)
    return app


app = create_app()
