"""
Preview application factory - serves a template bundle for headless capture.

The app is short-lived: the render pipeline spawns it, loads one page from
it, and terminates it.
"""

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from resumepdf.config import DEFAULT_PREVIEW_ROOT
from resumepdf.modules.preview import NoopRemoteSync, RemoteSync
from resumepdf.modules.preview.router import router as preview_router
from resumepdf.shared.logging import get_logger

logger = get_logger(__name__)


def write_status_file(path: Path, url: str) -> None:
    """Publish the server URL atomically so readers never see a partial write."""
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(url, encoding="utf-8")
    os.replace(tmp_path, path)


def build_app(
    root: Path | None = None,
    remote_sync: RemoteSync | None = None,
) -> FastAPI:
    """
    Build the preview application.

    Args:
        root: Template bundle directory containing index.html
        remote_sync: Sync capability exposed to the template (no-op by default)

    Returns:
        Configured FastAPI application
    """
    root = Path(root or DEFAULT_PREVIEW_ROOT)
    if not (root / "index.html").is_file():
        raise FileNotFoundError(f"Template bundle has no index.html: {root}")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(f"Serving template bundle from {root}")
        yield
        logger.info("Preview server stopped")

    app = FastAPI(
        title="resumepdf preview",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.remote_sync = remote_sync or NoopRemoteSync()

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(preview_router)

    # Mounted last so API routes win over bundle files
    app.mount("/", StaticFiles(directory=root, html=True), name="bundle")

    return app
