"""
Print geometry: page dimensions, margins and pagination.

The in-page work is split into a read-only snapshot, a pure layout plan
computed here in Python, and an apply step that writes the plan back into
the DOM. Only the snapshot and apply scripts touch the page.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any

from .schemas import PRINT_MARGIN_TEMPLATES, RenderRequest

# Page dimensions in pixels at 96 DPI
PAGE_DIMENSIONS = {
    "a4": {"width": 794, "height": 1123},
    "letter": {"width": 816, "height": 1056},
    "free-form": {"width": 794, "height": 1123},
}

DEFAULT_MARGIN_X = 14
DEFAULT_MARGIN_Y = 12

# Raw margin units are points; 1px = 0.75pt
PT_PER_PX = 0.75

_CSS_NUMBER = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


@dataclass(frozen=True)
class PageGeometry:
    width_px: int
    height_px: int
    margin_x_px: int = 0
    margin_y_px: int = 0
    is_free_form: bool = False


@dataclass(frozen=True)
class PageBox:
    """One [data-page-index] element as measured in the page."""
    index: int
    height: float
    margin_bottom: float = 0.0


@dataclass(frozen=True)
class DomSnapshot:
    pages: tuple[PageBox, ...] = ()
    root_page_height: str = ""
    container_page_height: str | None = None

    @property
    def has_container(self) -> bool:
        return self.container_page_height is not None

    @classmethod
    def from_page(cls, raw: dict[str, Any]) -> "DomSnapshot":
        return cls(
            pages=tuple(
                PageBox(
                    index=int(p.get("index") or 0),
                    height=float(p.get("height") or 0),
                    margin_bottom=float(p.get("marginBottom") or 0),
                )
                for p in raw.get("pages") or []
            ),
            root_page_height=raw.get("rootPageHeight") or "",
            container_page_height=raw.get("containerPageHeight"),
        )


@dataclass(frozen=True)
class LayoutPlan:
    """DOM mutations to perform before capture, plus the free-form height."""
    is_free_form: bool
    spacing_px: float | None = None
    page_height: str | None = None
    break_before: tuple[bool, ...] = field(default_factory=tuple)
    content_height_px: float | None = None

    def to_page(self) -> dict[str, Any]:
        return {
            "isFreeForm": self.is_free_form,
            "spacing": self.spacing_px,
            "pageHeight": self.page_height,
            "breakBefore": list(self.break_before),
        }


# =============================================================================
# PURE COMPUTATION
# =============================================================================

def js_round(value: float) -> int:
    """Round half up, matching Math.round in the page."""
    return math.floor(value + 0.5)


def _raw_margin(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def resolve_margins(
    template: str,
    page_settings: dict[str, Any] | None = None,
    margin_x: float | None = None,
    margin_y: float | None = None,
) -> tuple[int, int]:
    """
    Resolve PDF margins in pixels for a template.

    Only print-margin templates get margins; everything else is zero no
    matter what the payload says. Explicit overrides win over payload values.

    Returns:
        (margin_x_px, margin_y_px)
    """
    if template not in PRINT_MARGIN_TEMPLATES:
        return 0, 0

    page_settings = page_settings or {}
    raw_x = margin_x if margin_x is not None else _raw_margin(page_settings.get("marginX"), DEFAULT_MARGIN_X)
    raw_y = margin_y if margin_y is not None else _raw_margin(page_settings.get("marginY"), DEFAULT_MARGIN_Y)
    return js_round(raw_x / PT_PER_PX), js_round(raw_y / PT_PER_PX)


def compute_geometry(request: RenderRequest) -> PageGeometry:
    dimensions = PAGE_DIMENSIONS.get(request.page_format, PAGE_DIMENSIONS["a4"])
    margin_x, margin_y = resolve_margins(
        request.template,
        request.page_settings,
        request.margin_x,
        request.margin_y,
    )
    return PageGeometry(
        width_px=dimensions["width"],
        height_px=dimensions["height"],
        margin_x_px=margin_x,
        margin_y_px=margin_y,
        is_free_form=request.is_free_form,
    )


def parse_css_px(value: str | None) -> float | None:
    """Leading-number parse of a CSS length, like parseFloat. None if absent."""
    if not value:
        return None
    match = _CSS_NUMBER.match(value)
    return float(match.group(1)) if match else None


def css_px(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value)}px"
    return f"{value}px"


def plan_layout(
    snapshot: DomSnapshot,
    margin_y_px: int,
    is_free_form: bool,
    min_height_px: int,
) -> LayoutPlan:
    """
    Compute pagination for a measured page.

    Free-form: the vertical margin becomes spacing between page elements and
    the content height is the sum of element heights plus spacing, never
    below ``min_height_px``.

    Fixed: the page height property is clamped to ``min_height_px``, reduced
    by the vertical margin, and every page after the first starts on a new
    sheet.
    """
    if is_free_form:
        spacing = margin_y_px * PT_PER_PX
        count = len(snapshot.pages)
        total = 0.0
        for i, box in enumerate(snapshot.pages):
            bottom = spacing if i < count - 1 else box.margin_bottom
            total += box.height + bottom
        return LayoutPlan(
            is_free_form=True,
            spacing_px=spacing,
            content_height_px=max(total, float(min_height_px)),
        )

    current = snapshot.container_page_height or snapshot.root_page_height
    height = parse_css_px(current)
    page_height = None
    if height is not None:
        page_height = css_px(max(height, float(min_height_px)) - margin_y_px)

    return LayoutPlan(
        is_free_form=False,
        page_height=page_height,
        break_before=tuple(box.index > 0 for box in snapshot.pages),
    )


def capture_height(geometry: PageGeometry, content_height: float | None) -> float:
    if geometry.is_free_form and content_height:
        return max(content_height, float(geometry.height_px))
    return float(geometry.height_px)


# =============================================================================
# IN-PAGE SCRIPTS
# =============================================================================

SNAPSHOT_SCRIPT = """() => {
    const root = document.documentElement;
    const container = document.querySelector(".resume-preview-container");
    const pages = Array.from(document.querySelectorAll("[data-page-index]")).map((el) => ({
        index: Number.parseInt(el.getAttribute("data-page-index") ?? "0", 10) || 0,
        height: el.offsetHeight,
        marginBottom: Number.parseFloat(getComputedStyle(el).marginBottom) || 0,
    }));
    return {
        pages,
        rootPageHeight: getComputedStyle(root).getPropertyValue("--page-height").trim(),
        containerPageHeight: container
            ? getComputedStyle(container).getPropertyValue("--page-height").trim()
            : null,
    };
}"""

APPLY_SCRIPT = """(plan) => {
    const root = document.documentElement;
    const container = document.querySelector(".resume-preview-container");
    const pages = document.querySelectorAll("[data-page-index]");

    if (plan.isFreeForm) {
        for (let i = 0; i < pages.length - 1; i++) {
            pages[i].style.marginBottom = `${plan.spacing}px`;
        }
        return;
    }

    if (plan.pageHeight !== null) {
        if (container) container.style.setProperty("--page-height", plan.pageHeight);
        root.style.setProperty("--page-height", plan.pageHeight);
    }
    pages.forEach((el, i) => {
        if (plan.breakBefore[i]) el.style.breakBefore = "page";
        el.style.breakInside = "auto";
    });
}"""
