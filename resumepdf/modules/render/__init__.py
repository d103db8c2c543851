"""Render module - resume JSON to PDF using Playwright."""

from .schemas import PdfArtifact, RenderRequest, RenderResult, RenderState, build_request
from .service import RenderService

__all__ = [
    "PdfArtifact",
    "RenderRequest",
    "RenderResult",
    "RenderService",
    "RenderState",
    "build_request",
]
