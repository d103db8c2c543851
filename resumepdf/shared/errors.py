"""
Error taxonomy for resumepdf.

Every failure the CLI reports is a ResumePdfError subclass carrying a stable
code, a one-line message and optional structured details.
"""

from typing import Any


class ResumePdfError(Exception):
    """Base error with a stable code."""

    code = "RESUMEPDF_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# INPUT
# =============================================================================

class InputError(ResumePdfError):
    """Input file could not be read or parsed."""
    code = "INPUT_ERROR"


class ValidationError(ResumePdfError):
    """Unknown template or page format."""
    code = "VALIDATION_ERROR"

    def __init__(self, field: str, value: Any, allowed: list[str]) -> None:
        super().__init__(
            f'Invalid {field} "{value}". Valid: {", ".join(allowed)}',
            details={"field": field, "value": value, "allowed": allowed},
        )


# =============================================================================
# RENDERING SERVER
# =============================================================================

class ServerSpawnError(ResumePdfError):
    """Server command missing, not executable or malformed."""
    code = "SERVER_SPAWN_ERROR"


class ServerStartTimeout(ResumePdfError):
    code = "SERVER_START_TIMEOUT"


class ServerExitedEarly(ResumePdfError):
    code = "SERVER_EXITED_EARLY"

    def __init__(self, returncode: int, output: str = "") -> None:
        super().__init__(
            f"Rendering server exited with code {returncode}",
            details={"returncode": returncode, "output": output[-2000:]},
        )
        self.returncode = returncode


class ServerUnreachable(ResumePdfError):
    code = "SERVER_UNREACHABLE"


# =============================================================================
# BROWSER
# =============================================================================

class BrowserNotFound(ResumePdfError):
    """No local Chrome/Chromium executable could be located."""
    code = "BROWSER_NOT_FOUND"

    REMEDIATION = [
        "Install Google Chrome or Chromium",
        "Set CHROME_PATH to your Chrome/Chromium executable",
        "Set PRINTER_ENDPOINT to a remote browser instance "
        "(e.g. PRINTER_ENDPOINT=ws://localhost:4000?token=1234567890; "
        "start one with: docker run -p 4000:3000 ghcr.io/browserless/chromium)",
    ]

    def __init__(self, searched: list[str] | None = None) -> None:
        super().__init__(
            "Could not find Chrome/Chromium on your system.",
            details={"searched": searched or [], "remediation": self.REMEDIATION},
        )


class BrowserLaunchError(ResumePdfError):
    code = "BROWSER_LAUNCH_ERROR"


# =============================================================================
# PAGE
# =============================================================================

class NavigationTimeout(ResumePdfError):
    code = "NAVIGATION_TIMEOUT"


class RenderError(ResumePdfError):
    code = "RENDER_ERROR"


class FontReadinessTimeout(ResumePdfError):
    """Font loading signal never arrived. Logged, never raised to the caller."""
    code = "FONT_READINESS_TIMEOUT"


class PdfCaptureError(ResumePdfError):
    code = "PDF_CAPTURE_ERROR"
