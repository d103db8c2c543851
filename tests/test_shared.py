"""Tests for settings, error taxonomy and run-scoped logging."""

import logging
import os
from pathlib import Path

import pytest

from resumepdf.config import Settings, get_settings, init_settings, load_env_file, reset_settings
from resumepdf.shared.errors import (
    BrowserNotFound,
    FontReadinessTimeout,
    ServerExitedEarly,
    ServerSpawnError,
    ValidationError,
)
from resumepdf.shared.ids import generate_run_id
from resumepdf.shared.logging import (
    RunContextFilter,
    clear_run_context,
    get_run_id,
    set_run_context,
)


class TestSettings:

    def test_unprefixed_browser_variables(self) -> None:
        settings = Settings.from_env({
            "CHROME_PATH": "/opt/chrome/chrome",
            "PRINTER_ENDPOINT": "ws://localhost:4000?token=abc",
        })

        assert settings.chrome_path == "/opt/chrome/chrome"
        assert settings.printer_endpoint == "ws://localhost:4000?token=abc"

    def test_unprefixed_name_wins(self) -> None:
        settings = Settings.from_env({
            "CHROME_PATH": "/usr/bin/chromium",
            "RESUMEPDF_CHROME_PATH": "/opt/chrome/chrome",
        })
        assert settings.chrome_path == "/usr/bin/chromium"

    def test_prefixed_tuning_variables(self) -> None:
        settings = Settings.from_env({
            "RESUMEPDF_SERVER_START_TIMEOUT": "12.5",
            "RESUMEPDF_SERVER_PORT": "16000",
            "RESUMEPDF_LOG_LEVEL": "DEBUG",
        })

        assert settings.server_start_timeout == 12.5
        assert settings.server_port == 16000
        assert settings.log_level == "DEBUG"

    def test_defaults_and_blank_values(self) -> None:
        settings = Settings.from_env({"CHROME_PATH": "  "})

        assert settings.chrome_path is None
        assert settings.server_start_timeout == 60.0
        assert settings.reachability_timeout == 15.0
        assert (settings.preview_root / "index.html").is_file()

    def test_env_file_keeps_existing_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHROME_PATH", "/from/shell")
        monkeypatch.delenv("PRINTER_ENDPOINT", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# browser\nCHROME_PATH=/from/file\nPRINTER_ENDPOINT='ws://localhost:4000'\n",
            encoding="utf-8",
        )

        load_env_file(env_file)

        assert os.environ["CHROME_PATH"] == "/from/shell"
        assert os.environ["PRINTER_ENDPOINT"] == "ws://localhost:4000"

    def test_cached_until_reset(self) -> None:
        installed = init_settings(Settings(log_level="WARNING"))
        assert get_settings() is installed

        reset_settings()
        assert get_settings() is not installed


class TestErrors:

    def test_to_dict(self) -> None:
        error = ValidationError("format", "a3", ["a4", "letter", "free-form"])
        assert error.to_dict() == {
            "code": "VALIDATION_ERROR",
            "message": 'Invalid format "a3". Valid: a4, letter, free-form',
            "details": {"field": "format", "value": "a3", "allowed": ["a4", "letter", "free-form"]},
        }

    def test_browser_not_found_remediation(self) -> None:
        error = BrowserNotFound(["/usr/bin/chromium"])
        remediation = error.details["remediation"]

        assert error.details["searched"] == ["/usr/bin/chromium"]
        assert len(remediation) == 3
        assert "CHROME_PATH" in remediation[1]
        assert "PRINTER_ENDPOINT" in remediation[2]

    def test_exited_early_keeps_output_tail(self) -> None:
        error = ServerExitedEarly(2, "x" * 5000)
        assert error.returncode == 2
        assert len(error.details["output"]) == 2000

    def test_codes_are_distinct(self) -> None:
        assert FontReadinessTimeout("x").to_dict()["code"] == "FONT_READINESS_TIMEOUT"
        assert ServerSpawnError("x").to_dict()["code"] == "SERVER_SPAWN_ERROR"


class TestRunContext:

    def _record(self) -> logging.LogRecord:
        return logging.LogRecord("resumepdf", logging.INFO, __file__, 1, "hello", None, None)

    def test_filter_without_run(self) -> None:
        clear_run_context()
        record = self._record()
        assert RunContextFilter().filter(record) is True
        assert record.run_id == "-"

    def test_filter_with_run(self) -> None:
        run_id = generate_run_id()
        set_run_context(run_id)
        try:
            record = self._record()
            RunContextFilter().filter(record)
            assert record.run_id == run_id
            assert get_run_id() == run_id
        finally:
            clear_run_context()
        assert get_run_id() is None

    def test_run_id_format(self) -> None:
        run_id = generate_run_id()
        assert run_id.startswith("run_")
        assert len(run_id) == len("run_") + 12
