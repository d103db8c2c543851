"""Preview module - stand-ins for hosting-application collaborators."""

from .router import router
from .service import LocaleService, NoopRemoteSync, RemoteSync

__all__ = ["router", "LocaleService", "NoopRemoteSync", "RemoteSync"]
