"""
Browser target resolution: local Chrome/Chromium discovery or a remote
CDP endpoint (e.g. browserless).
"""

import json
import os
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from playwright.async_api import Browser, Error as PlaywrightError, Playwright, async_playwright

from resumepdf.config import Settings, get_settings
from resumepdf.shared.errors import BrowserLaunchError, BrowserNotFound
from resumepdf.shared.logging import get_logger

logger = get_logger(__name__)


LOCAL_LAUNCH_ARGS = ["--disable-dev-shm-usage", "--no-sandbox", "--disable-setuid-sandbox"]
REMOTE_LAUNCH_ARGS = [
    "--disable-dev-shm-usage",
    "--disable-features=LocalNetworkAccessChecks,site-per-process,FedCm",
]


# =============================================================================
# LOCAL DISCOVERY
# =============================================================================

def candidate_paths(platform: str, env: Mapping[str, str] | None = None) -> list[str]:
    """Ordered Chrome/Chromium executable candidates for a platform."""
    env = env or {}

    if platform == "darwin":
        return [
            "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
            "/Applications/Chromium.app/Contents/MacOS/Chromium",
            "/Applications/Google Chrome Canary.app/Contents/MacOS/Google Chrome Canary",
            "/Applications/Brave Browser.app/Contents/MacOS/Brave Browser",
            "/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge",
        ]
    if platform.startswith("linux"):
        return [
            "/usr/bin/google-chrome",
            "/usr/bin/google-chrome-stable",
            "/usr/bin/chromium",
            "/usr/bin/chromium-browser",
            "/snap/bin/chromium",
        ]
    if platform == "win32":
        program_files = env.get("PROGRAMFILES") or "C:\\Program Files"
        program_files_x86 = env.get("PROGRAMFILES(X86)") or "C:\\Program Files (x86)"
        local_app_data = env.get("LOCALAPPDATA") or ""
        return [
            f"{program_files}\\Google\\Chrome\\Application\\chrome.exe",
            f"{program_files_x86}\\Google\\Chrome\\Application\\chrome.exe",
            f"{local_app_data}\\Google\\Chrome\\Application\\chrome.exe",
            f"{program_files}\\Microsoft\\Edge\\Application\\msedge.exe",
        ]
    return []


def find_local_browser(
    override: str | None,
    platform: str,
    env: Mapping[str, str] | None = None,
    exists: Callable[[str], bool] = os.path.exists,
) -> str | None:
    """Return the explicit override if it exists, else the first existing candidate."""
    if override and exists(override):
        return override
    for path in candidate_paths(platform, env):
        if exists(path):
            return path
    return None


# =============================================================================
# REMOTE ENDPOINT
# =============================================================================

@dataclass(frozen=True)
class RemoteEndpoint:
    url: str
    is_websocket: bool


def build_remote_endpoint(endpoint: str) -> RemoteEndpoint:
    """
    Append the browser launch arguments to a remote endpoint URL.

    The launch arguments travel as a JSON ``launch`` query parameter, which
    browserless-style services apply when starting the browser.
    """
    parts = urlsplit(endpoint)
    if not parts.scheme or not parts.netloc:
        raise BrowserLaunchError(f"Invalid PRINTER_ENDPOINT: {endpoint}")

    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append(("launch", json.dumps({"args": REMOTE_LAUNCH_ARGS}, separators=(",", ":"))))
    url = urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))

    return RemoteEndpoint(url=url, is_websocket=parts.scheme.startswith("ws"))


# =============================================================================
# HANDLE & RESOLVER
# =============================================================================

@dataclass
class BrowserHandle:
    """A connected browser plus the Playwright driver that owns it."""
    browser: Browser
    playwright: Playwright | None = None
    mode: str = "local"
    ignore_https_errors: bool = False

    async def close(self) -> None:
        try:
            await self.browser.close()
        finally:
            if self.playwright is not None:
                await self.playwright.stop()
                self.playwright = None


class RenderTargetResolver:
    """Acquires the browser for a render run."""

    def __init__(self, settings: Settings | None = None, platform: str | None = None) -> None:
        self.settings = settings or get_settings()
        self.platform = platform or sys.platform

    @property
    def is_remote(self) -> bool:
        return bool(self.settings.printer_endpoint)

    def resolve_executable(self) -> str:
        path = find_local_browser(self.settings.chrome_path, self.platform, os.environ)
        if path is None:
            searched = candidate_paths(self.platform, os.environ)
            if self.settings.chrome_path:
                searched.insert(0, self.settings.chrome_path)
            raise BrowserNotFound(searched)
        return path

    async def acquire(self) -> BrowserHandle:
        """
        Launch or connect to a browser.

        Raises:
            BrowserNotFound: local mode and no executable was found
            BrowserLaunchError: the browser could not be launched or reached
        """
        # Resolve before starting the driver so a missing browser costs nothing
        executable = None if self.is_remote else self.resolve_executable()

        try:
            playwright = await async_playwright().start()
        except (PlaywrightError, OSError) as e:
            raise BrowserLaunchError(f"Failed to start the Playwright driver: {e}") from e

        try:
            if self.is_remote:
                return await self._connect(playwright)
            return await self._launch(playwright, executable)
        except BaseException:
            await playwright.stop()
            raise

    async def _connect(self, playwright: Playwright) -> BrowserHandle:
        endpoint = build_remote_endpoint(self.settings.printer_endpoint or "")
        kind = "websocket" if endpoint.is_websocket else "http"
        logger.info(f"Connecting to browser at {self.settings.printer_endpoint} ({kind})")
        try:
            browser = await playwright.chromium.connect_over_cdp(
                endpoint.url,
                timeout=self.settings.navigation_timeout * 1000,
            )
        except PlaywrightError as e:
            raise BrowserLaunchError(f"Failed to connect to remote browser: {e}") from e
        return BrowserHandle(
            browser=browser,
            playwright=playwright,
            mode="remote",
            ignore_https_errors=True,
        )

    async def _launch(self, playwright: Playwright, executable: str | None) -> BrowserHandle:
        logger.info(f"Launching Chrome: {executable}")
        try:
            browser = await playwright.chromium.launch(
                headless=True,
                executable_path=executable,
                args=LOCAL_LAUNCH_ARGS,
            )
        except PlaywrightError as e:
            raise BrowserLaunchError(f"Failed to launch {executable}: {e}") from e
        return BrowserHandle(browser=browser, playwright=playwright, mode="local")
