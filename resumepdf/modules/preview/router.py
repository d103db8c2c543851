"""Preview module routes."""

from fastapi import APIRouter, Request

from .schemas import LocaleResponse, SyncRequest, SyncResponse
from .service import LocaleService

router = APIRouter(prefix="/api", tags=["preview"])


@router.post("/sync/{procedure:path}")
async def sync(procedure: str, body: SyncRequest, request: Request) -> SyncResponse:
    """
    Accept a sync call from the template.

    Nothing is persisted; the response says so.
    """
    remote_sync = request.app.state.remote_sync
    persisted = await remote_sync.call(procedure, body.input)
    return SyncResponse(procedure=procedure, persisted=persisted)


@router.get("/locale")
async def locale() -> LocaleResponse:
    service = LocaleService()
    return LocaleResponse(locale=service.locale, rtl=service.is_rtl())
