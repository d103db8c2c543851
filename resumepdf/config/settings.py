"""
Runtime settings loaded from the environment and an optional .env file.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Bundled template used when no external template build is configured
DEFAULT_PREVIEW_ROOT = Path(__file__).parent.parent / "resources" / "preview"

ENV_PREFIX = "RESUMEPDF_"

# Read without the prefix as well; these are the names users already know
UNPREFIXED = {"chrome_path": "CHROME_PATH", "printer_endpoint": "PRINTER_ENDPOINT"}

_settings: "Settings | None" = None


class Settings(BaseModel):
    """resumepdf settings. Tuning values use the RESUMEPDF_ prefix."""

    model_config = ConfigDict(frozen=True)

    log_level: str = "INFO"

    # Browser target
    chrome_path: str | None = None
    printer_endpoint: str | None = None

    # Rendering server
    preview_root: Path = DEFAULT_PREVIEW_ROOT
    server_command: str | None = Field(
        default=None,
        description="Custom server command; {port}, {host}, {root} and {status_file} are substituted",
    )
    server_host: str = "127.0.0.1"
    server_port: int | None = None

    # Timeouts (seconds)
    server_start_timeout: float = 60.0
    reachability_timeout: float = 15.0
    navigation_timeout: float = 60.0
    font_timeout: float = 10.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables. Blank values count as unset."""
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            keys = [f"{ENV_PREFIX}{name.upper()}"]
            if name in UNPREFIXED:
                keys.insert(0, UNPREFIXED[name])
            for key in keys:
                value = environ.get(key, "").strip()
                if value:
                    values[name] = value
                    break
        return cls(**values)


def load_env_file(path: str | Path, *, override: bool = False) -> None:
    """Load key=value pairs from a .env-style file into os.environ.

    Keeps existing env values unless override=True.
    """
    env_path = Path(path)
    if not env_path.is_file():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not override and key in os.environ:
            continue
        os.environ[key] = value.strip().strip("'").strip('"')


def get_settings() -> Settings:
    """Get cached settings, loading .env and the environment on first use."""
    global _settings
    if _settings is None:
        load_env_file(os.getenv(f"{ENV_PREFIX}ENV_FILE", ".env"))
        _settings = Settings.from_env()
    return _settings


def init_settings(settings: Settings) -> Settings:
    """Install an explicit settings instance (tests, embedding)."""
    global _settings
    _settings = settings
    return _settings


def reset_settings() -> None:
    """Drop cached settings. Call after changing environment variables."""
    global _settings
    _settings = None
