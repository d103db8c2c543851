"""Preview module schemas."""

from typing import Any

from pydantic import BaseModel, Field


class SyncRequest(BaseModel):
    """A template's attempt to push resume changes upstream."""
    input: dict[str, Any] = Field(default_factory=dict, description="Procedure input")


class SyncResponse(BaseModel):
    procedure: str
    accepted: bool = True
    persisted: bool = False


class LocaleResponse(BaseModel):
    locale: str = "en-US"
    rtl: bool = False
