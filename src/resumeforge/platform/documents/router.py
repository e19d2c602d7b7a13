"""
Document preview router.

Renders resume and cover letter previews and serves the zoom and
page-break hints the editor uses.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from resumeforge.platform.auth.core import UserInfo, get_current_user
from resumeforge.platform.documents.layout import (
    DEVICE_PROFILES,
    ZoomState,
    compute_fit_scale,
    device_class_for,
    estimate_page_breaks,
)
from resumeforge.platform.documents.models import (
    CoverLetterPreviewRequest,
    PageBreakEstimate,
    PageBreakRequest,
    RenderedDocument,
    ResumePreviewRequest,
    TemplateInfo,
    ZoomAction,
    ZoomRequest,
    ZoomResponse,
)
from resumeforge.platform.documents.templates import (
    UnknownTemplateError,
    get_cover_letter_renderer,
    get_resume_renderer,
    list_templates,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


@router.get("/templates", response_model=list[TemplateInfo])
async def get_templates(
    current_user: Annotated[UserInfo, Depends(get_current_user)],
) -> list[TemplateInfo]:
    """List the available resume and cover letter templates."""
    return list_templates()


@router.post("/resume/preview", response_model=RenderedDocument)
async def preview_resume(
    request: ResumePreviewRequest,
    current_user: Annotated[UserInfo, Depends(get_current_user)],
) -> RenderedDocument:
    """Render a resume with the selected template."""
    try:
        return get_resume_renderer(request.template_id).render(request.data)
    except UnknownTemplateError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/cover-letter/preview", response_model=RenderedDocument)
async def preview_cover_letter(
    request: CoverLetterPreviewRequest,
    current_user: Annotated[UserInfo, Depends(get_current_user)],
) -> RenderedDocument:
    """Render a cover letter with the selected template."""
    try:
        return get_cover_letter_renderer(request.template_id).render(request.data)
    except UnknownTemplateError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/page-breaks", response_model=PageBreakEstimate)
async def page_breaks(
    request: PageBreakRequest,
    current_user: Annotated[UserInfo, Depends(get_current_user)],
) -> PageBreakEstimate:
    """Estimate page breaks for measured preview elements."""
    return estimate_page_breaks(request.elements, scale=request.scale)


@router.post("/zoom", response_model=ZoomResponse)
async def zoom(
    request: ZoomRequest,
    current_user: Annotated[UserInfo, Depends(get_current_user)],
) -> ZoomResponse:
    """Apply a zoom action for the given viewport."""
    fit = compute_fit_scale(request.viewport_width, request.viewport_height)
    state = ZoomState(scale=request.scale if request.scale is not None else fit, fit_scale=fit)

    if request.action is ZoomAction.ZOOM_IN:
        state.zoom_in()
    elif request.action is ZoomAction.ZOOM_OUT:
        state.zoom_out()
    else:
        state.reset_to_fit(request.viewport_width, request.viewport_height)

    device = device_class_for(request.viewport_width)
    profile = DEVICE_PROFILES[device]
    return ZoomResponse(
        scale=state.scale,
        fit_scale=state.fit_scale,
        device_class=device.value,
        min_scale=profile.min_scale,
        max_scale=profile.max_scale,
    )
