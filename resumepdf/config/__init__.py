"""Configuration package."""

from .settings import (
    DEFAULT_PREVIEW_ROOT,
    Settings,
    get_settings,
    init_settings,
    load_env_file,
    reset_settings,
)

__all__ = [
    "DEFAULT_PREVIEW_ROOT",
    "Settings",
    "get_settings",
    "init_settings",
    "load_env_file",
    "reset_settings",
]
