"""
Document preview schemas.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResumeTemplateId(str, Enum):
    """Known resume templates."""

    PROFESSIONAL = "professional"
    ELEGANT_DIVIDER = "elegant-divider"
    MINIMALIST_ATS = "minimalist-ats"
    MODERN_SIDEBAR = "modern-sidebar"


class CoverLetterTemplateId(str, Enum):
    """Known cover letter templates."""

    STANDARD = "standard"
    MODERN = "modern"
    PROFESSIONAL = "professional"


class DocumentKind(str, Enum):
    RESUME = "resume"
    COVER_LETTER = "cover-letter"


class RenderedDocument(CamelModel):
    """HTML produced by a template renderer."""

    template_id: str
    kind: DocumentKind
    title: str
    html: str


class TemplateInfo(CamelModel):
    id: str
    kind: DocumentKind
    name: str


class ResumePreviewRequest(CamelModel):
    template_id: str = Field(description="Resume template id")
    data: dict[str, Any] = Field(default_factory=dict, description="Resume document")


class CoverLetterPreviewRequest(CamelModel):
    template_id: str = Field(description="Cover letter template id")
    data: dict[str, Any] = Field(default_factory=dict, description="Cover letter document")


class LayoutElement(CamelModel):
    """Measured box of a rendered section or item, in screen pixels."""

    id: str | None = None
    top: float = Field(ge=0)
    height: float = Field(ge=0)
    classes: list[str] = Field(default_factory=list)
    break_inside: str | None = Field(
        None, description="Computed CSS break-inside / page-break-inside value"
    )


class PageBreakRequest(CamelModel):
    elements: list[LayoutElement] = Field(default_factory=list)
    scale: float = Field(1.0, gt=0)


class PageBreakEstimate(CamelModel):
    """Estimated break positions, in the same scaled pixels as the input."""

    breaks: list[float] = Field(default_factory=list)
    page_count: int = 1
    page_height: float


class ZoomAction(str, Enum):
    ZOOM_IN = "in"
    ZOOM_OUT = "out"
    FIT = "fit"


class ZoomRequest(CamelModel):
    viewport_width: float = Field(gt=0)
    viewport_height: float = Field(gt=0)
    scale: float | None = Field(None, gt=0, description="Current zoom; omitted means fitted")
    action: ZoomAction = ZoomAction.FIT


class ZoomResponse(CamelModel):
    scale: float
    fit_scale: float
    device_class: str
    min_scale: float
    max_scale: float
