"""
Document rendering: load the preview in a browser page and measure it.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from playwright.async_api import (
    BrowserContext,
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
)

from resumepdf.config import Settings, get_settings
from resumepdf.shared.errors import FontReadinessTimeout, NavigationTimeout, RenderError
from resumepdf.shared.logging import get_logger

from .geometry import (
    APPLY_SCRIPT,
    PAGE_DIMENSIONS,
    SNAPSHOT_SCRIPT,
    DomSnapshot,
    LayoutPlan,
    PageGeometry,
    plan_layout,
)
from .schemas import RenderRequest, RenderState
from .target import BrowserHandle

logger = get_logger(__name__)


# Global the template reads once at startup
PAYLOAD_GLOBAL = "__RESUME_DATA__"
FONTS_READY_SCRIPT = "() => document.body && document.body.getAttribute('data-wf-loaded') === 'true'"


def payload_init_script(payload: dict[str, Any]) -> str:
    """Script that parses the serialized payload into the well-known global."""
    serialized = json.dumps(json.dumps(payload, ensure_ascii=False))
    return f"window.{PAYLOAD_GLOBAL} = JSON.parse({serialized});"


@dataclass
class Measurements:
    content_height_px: float | None
    fonts_ready: bool
    page_count: int = 0


@dataclass
class RenderedDocument:
    """An open page ready for capture. Owns its browser context."""
    page: Page
    context: BrowserContext
    measurements: Measurements | None = None

    async def close(self) -> None:
        await self.context.close()


class DocumentRenderer:
    """Drives one browser page through load, font wait and measurement."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    async def open(
        self,
        browser: BrowserHandle,
        server_url: str,
        request: RenderRequest,
    ) -> RenderedDocument:
        """
        Open a page on ``server_url`` with the request payload injected.

        The returned document is owned by the caller, who must close it even
        when a later step fails.

        Raises:
            NavigationTimeout: the page never went network-idle in time
            RenderError: navigation failed for another reason
        """
        dimensions = PAGE_DIMENSIONS.get(request.page_format, PAGE_DIMENSIONS["a4"])
        context = await browser.browser.new_context(
            ignore_https_errors=browser.ignore_https_errors,
        )
        try:
            page = await context.new_page()

            # Must be registered before navigation: the template reads it on startup
            await page.add_init_script(script=payload_init_script(request.payload))
            await page.set_viewport_size({"width": dimensions["width"], "height": dimensions["height"]})

            logger.info("Loading preview...")
            timeout_ms = self.settings.navigation_timeout * 1000
            try:
                await page.goto(server_url, wait_until="networkidle", timeout=timeout_ms)
            except PlaywrightTimeoutError as e:
                raise NavigationTimeout(
                    f"Preview at {server_url} did not finish loading within "
                    f"{self.settings.navigation_timeout:g}s"
                ) from e
            except PlaywrightError as e:
                raise RenderError(f"Failed to load preview at {server_url}: {e}") from e
        except BaseException:
            await context.close()
            raise

        return RenderedDocument(page=page, context=context)

    async def wait_for_fonts(self, page: Page) -> bool:
        """Wait for the template's font signal. Never fails the run."""
        try:
            await page.wait_for_function(FONTS_READY_SCRIPT, timeout=self.settings.font_timeout * 1000)
            return True
        except PlaywrightTimeoutError:
            warning = FontReadinessTimeout("Font loading signal not detected, proceeding anyway...")
            logger.warning(warning.message)
            return False

    async def measure(self, page: Page, geometry: PageGeometry) -> tuple[DomSnapshot, LayoutPlan]:
        """Snapshot the page, plan pagination and apply the plan in place."""
        try:
            snapshot = DomSnapshot.from_page(await page.evaluate(SNAPSHOT_SCRIPT))
            plan = plan_layout(
                snapshot,
                margin_y_px=geometry.margin_y_px,
                is_free_form=geometry.is_free_form,
                min_height_px=geometry.height_px,
            )
            await page.evaluate(APPLY_SCRIPT, plan.to_page())
        except PlaywrightError as e:
            raise RenderError(f"Failed to measure page layout: {e}") from e

        logger.debug(f"Layout plan for {len(snapshot.pages)} page(s): {plan}")
        return snapshot, plan

    async def render(
        self,
        browser: BrowserHandle,
        server_url: str,
        request: RenderRequest,
        geometry: PageGeometry,
        on_progress: Callable[[RenderState], None] | None = None,
    ) -> RenderedDocument:
        """
        Open, wait for fonts and measure. Closes the page on failure.

        Args:
            on_progress: Called with MEASURING_GEOMETRY once the page is loaded
        """
        document = await self.open(browser, server_url, request)
        try:
            fonts_ready = await self.wait_for_fonts(document.page)
            if on_progress:
                on_progress(RenderState.MEASURING_GEOMETRY)
            snapshot, plan = await self.measure(document.page, geometry)
        except BaseException:
            await document.close()
            raise

        document.measurements = Measurements(
            content_height_px=plan.content_height_px,
            fonts_ready=fonts_ready,
            page_count=len(snapshot.pages),
        )
        return document
