"""
Collaborators the template expects from the hosting application.

The preview is read-only, so these are explicit no-op capabilities rather
than the real sync client.
"""

from typing import Any, Protocol

from resumepdf.shared.logging import get_logger

logger = get_logger(__name__)


class RemoteSync(Protocol):
    """Pushes resume edits back to the hosting application."""

    async def call(self, procedure: str, payload: dict[str, Any]) -> bool:
        """Returns True if the update was persisted."""
        ...


class NoopRemoteSync:
    """Accepts every update and persists nothing."""

    def __init__(self) -> None:
        self.calls = 0

    async def call(self, procedure: str, payload: dict[str, Any]) -> bool:
        self.calls += 1
        logger.debug(f"Ignoring sync call {procedure}")
        return False


class LocaleService:
    """Fixed English locale for previews."""

    locale = "en-US"

    def is_rtl(self) -> bool:
        return False
