"""PDF capture from a measured page."""

from typing import Any

from playwright.async_api import Error as PlaywrightError, Page

from resumepdf.shared.errors import PdfCaptureError
from resumepdf.shared.logging import get_logger

from .geometry import PageGeometry, capture_height, css_px

logger = get_logger(__name__)


FONTS_LOADED_SCRIPT = "() => document.fonts.ready.then(() => true)"


def pdf_options(geometry: PageGeometry, content_height: float | None = None) -> dict[str, Any]:
    """
    Build ``page.pdf`` keyword arguments for a geometry.

    Bottom margin is always zero; bottom spacing comes from content height.
    """
    return {
        "width": css_px(geometry.width_px),
        "height": css_px(capture_height(geometry, content_height)),
        "print_background": True,
        "tagged": True,
        "margin": {
            "top": css_px(geometry.margin_y_px),
            "right": css_px(geometry.margin_x_px),
            "bottom": css_px(0),
            "left": css_px(geometry.margin_x_px),
        },
    }


class PdfExporter:
    """Captures the page as PDF bytes."""

    async def capture(
        self,
        page: Page,
        geometry: PageGeometry,
        content_height: float | None = None,
    ) -> bytes:
        options = pdf_options(geometry, content_height)
        logger.info(f"Generating PDF: {options['width']} x {options['height']}")

        try:
            await page.evaluate(FONTS_LOADED_SCRIPT)
            pdf_bytes = await page.pdf(**options)
        except PlaywrightError as e:
            raise PdfCaptureError(f"PDF capture failed: {e}") from e

        logger.info(f"Generated PDF: {len(pdf_bytes)} bytes")
        return pdf_bytes
