"""
Render module schemas: request, artifact and result models.
"""

import copy
from enum import Enum
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

from resumepdf.shared.errors import ValidationError


# =============================================================================
# TEMPLATES & FORMATS
# =============================================================================

TemplateId = Literal[
    "azurill", "bronzor", "chikorita", "ditgar", "ditto",
    "gengar", "glalie", "kakuna", "lapras", "leafish",
    "onyx", "pikachu", "rhyhorn",
]
PageFormat = Literal["a4", "letter", "free-form"]

VALID_TEMPLATES: list[str] = list(get_args(TemplateId))
VALID_FORMATS: list[str] = list(get_args(PageFormat))

# Templates whose layout expects the PDF margin to be applied at capture time
PRINT_MARGIN_TEMPLATES = frozenset({
    "azurill", "bronzor", "kakuna", "lapras", "onyx", "pikachu", "rhyhorn",
})

DEFAULT_TEMPLATE = "onyx"
DEFAULT_FORMAT = "a4"


# =============================================================================
# REQUEST
# =============================================================================

class RenderRequest(BaseModel):
    """A single resume to render. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    payload: dict[str, Any] = Field(..., description="Resume data, overrides already merged")
    template: TemplateId = DEFAULT_TEMPLATE
    page_format: PageFormat = DEFAULT_FORMAT
    margin_x: float | None = Field(None, description="Raw horizontal margin override")
    margin_y: float | None = Field(None, description="Raw vertical margin override")

    @property
    def page_settings(self) -> dict[str, Any]:
        metadata = self.payload.get("metadata") or {}
        page = metadata.get("page") if isinstance(metadata, dict) else None
        return page if isinstance(page, dict) else {}

    @property
    def is_free_form(self) -> bool:
        return self.page_format == "free-form"


def validate_overrides(template: str | None = None, page_format: str | None = None) -> None:
    """Reject unknown template/format overrides before any work starts."""
    if template is not None and template not in VALID_TEMPLATES:
        raise ValidationError("template", template, VALID_TEMPLATES)
    if page_format is not None and page_format not in VALID_FORMATS:
        raise ValidationError("format", page_format, VALID_FORMATS)


def build_request(
    payload: dict[str, Any],
    template: str | None = None,
    page_format: str | None = None,
    margin_x: float | None = None,
    margin_y: float | None = None,
) -> RenderRequest:
    """
    Merge CLI overrides into the payload metadata and build a RenderRequest.

    Overrides win over values embedded in the payload. The caller's payload
    is never mutated.

    Raises:
        ValidationError: if the effective template or format is unknown
    """
    validate_overrides(template, page_format)

    merged = copy.deepcopy(payload)
    metadata = merged.get("metadata")
    if not isinstance(metadata, dict):
        metadata = merged["metadata"] = {}
    page = metadata.get("page")
    if not isinstance(page, dict):
        page = metadata["page"] = {}

    if template is not None:
        metadata["template"] = template
    if page_format is not None:
        page["format"] = page_format

    effective_template = str(metadata.get("template") or DEFAULT_TEMPLATE)
    effective_format = str(page.get("format") or DEFAULT_FORMAT)

    if effective_template not in VALID_TEMPLATES:
        raise ValidationError("template", effective_template, VALID_TEMPLATES)
    if effective_format not in VALID_FORMATS:
        raise ValidationError("format", effective_format, VALID_FORMATS)

    return RenderRequest(
        payload=merged,
        template=effective_template,
        page_format=effective_format,
        margin_x=margin_x,
        margin_y=margin_y,
    )


# =============================================================================
# PIPELINE STATE & RESULTS
# =============================================================================

class RenderState(str, Enum):
    INIT = "init"
    SERVER_STARTING = "server_starting"
    SERVER_READY = "server_ready"
    TARGET_ACQUIRING = "target_acquiring"
    RENDERING = "rendering"
    MEASURING_GEOMETRY = "measuring_geometry"
    EXPORTING = "exporting"
    DONE = "done"
    FAILED = "failed"


class PdfArtifact(BaseModel):
    """A PDF written to disk. The bytes themselves are not kept."""
    path: str
    size_bytes: int


class RenderResult(BaseModel):
    """Final result of one render run."""
    success: bool
    run_id: str
    state: RenderState
    artifact: PdfArtifact | None = None
    error: dict[str, Any] | None = None
    duration_ms: int | None = None
