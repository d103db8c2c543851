"""Shared pytest fixtures."""

import shlex
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from resumepdf.app import build_app
from resumepdf.config import DEFAULT_PREVIEW_ROOT, Settings, init_settings, reset_settings


@pytest.fixture(autouse=True)
def settings() -> Settings:
    """Deterministic settings, independent of the machine's environment."""
    reset_settings()
    test_settings = init_settings(Settings(
        chrome_path=None,
        printer_endpoint=None,
        server_port=None,
        server_command=None,
        server_start_timeout=5.0,
        reachability_timeout=2.0,
        navigation_timeout=5.0,
        font_timeout=1.0,
    ))
    yield test_settings
    reset_settings()


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def status_file(tmp_path: Path) -> Path:
    return tmp_path / "server-url"


@pytest.fixture
def client():
    app = build_app(root=DEFAULT_PREVIEW_ROOT)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def resume_payload() -> dict:
    return {
        "basics": {"name": "Ada Lovelace", "headline": "Analyst", "email": "ada@example.com"},
        "summary": {"title": "Summary", "content": "<p>First programmer.</p>", "hidden": False},
        "sections": {
            "experience": {
                "title": "Experience",
                "hidden": False,
                "items": [
                    {"company": "Analytical Engine", "position": "Programmer", "period": "1842 - 1843"},
                ],
            },
        },
        "metadata": {
            "template": "chikorita",
            "page": {"format": "letter", "marginX": 20, "marginY": 10},
        },
    }


@pytest.fixture
def python_command():
    """Build a server_command that runs inline Python code."""

    def build(code: str, *extra: str) -> str:
        return shlex.join([sys.executable, "-c", code, *extra])

    return build
