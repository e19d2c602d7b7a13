"""
Preview geometry.

Adaptive zoom fits an A4 page into the space left by the editor chrome;
page-break estimation marks where unsplittable blocks would straddle a page.
Both are display hints only. Real pagination belongs to the PDF renderer.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from resumeforge.platform.documents.models import LayoutElement, PageBreakEstimate
from resumeforge.platform.settings import settings

CSS_DPI = 96
MM_PER_INCH = 25.4

A4_WIDTH_MM = 210
A4_HEIGHT_MM = 297

ZOOM_STEP = 0.1
ZOOM_MIN = 0.2
ZOOM_MAX = 1.5
FIT_ROUNDING_STEP = 0.05

MOBILE_BREAKPOINT_PX = 768

AVOID_BREAK_CLASSES = frozenset(
    {"avoid-break", "no-break", "page-break-avoid", "break-inside-avoid"}
)
AVOID_BREAK_VALUES = frozenset({"avoid", "avoid-page"})


def mm_to_px(mm: float) -> float:
    return mm * CSS_DPI / MM_PER_INCH


PAGE_WIDTH_PX = round(mm_to_px(A4_WIDTH_MM))
PAGE_HEIGHT_PX = round(mm_to_px(A4_HEIGHT_MM))


class DeviceClass(str, Enum):
    """Viewport classes with their own zoom bounds."""

    MOBILE = "mobile"
    DESKTOP = "desktop"


@dataclass(frozen=True)
class DeviceProfile:
    min_scale: float
    max_scale: float


DEVICE_PROFILES: dict[DeviceClass, DeviceProfile] = {
    DeviceClass.MOBILE: DeviceProfile(min_scale=0.4, max_scale=1.0),
    DeviceClass.DESKTOP: DeviceProfile(min_scale=0.5, max_scale=1.2),
}


def device_class_for(viewport_width: float) -> DeviceClass:
    return DeviceClass.MOBILE if viewport_width < MOBILE_BREAKPOINT_PX else DeviceClass.DESKTOP


def available_area(
    viewport_width: float, viewport_height: float, device: DeviceClass
) -> tuple[float, float]:
    """Space left for the page once controls and the editor sidebar are subtracted."""
    if device is DeviceClass.MOBILE:
        width, height = viewport_width - 40, viewport_height - 180
    else:
        width, height = viewport_width * 0.6 - 100, viewport_height - 200
    return max(width, 0.0), max(height, 0.0)


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def compute_fit_scale(viewport_width: float, viewport_height: float) -> float:
    """
    Scale at which a full A4 page fits the preview area.

    The raw fit is clamped to the device class bounds and rounded to the
    nearest 0.05 so small resizes do not make the page jitter.

    Args:
        viewport_width: Window width in CSS pixels
        viewport_height: Window height in CSS pixels

    Returns:
        Zoom factor
    """
    device = device_class_for(viewport_width)
    profile = DEVICE_PROFILES[device]
    width, height = available_area(viewport_width, viewport_height, device)
    raw = min(width / PAGE_WIDTH_PX, height / PAGE_HEIGHT_PX)
    clamped = _clamp(raw, profile.min_scale, profile.max_scale)
    return round(round(clamped / FIT_ROUNDING_STEP) * FIT_ROUNDING_STEP, 2)


@dataclass
class ZoomState:
    """Current preview zoom; manual steps are independent of the fitted scale."""

    scale: float = 1.0
    fit_scale: float = 1.0

    @classmethod
    def fitted(cls, viewport_width: float, viewport_height: float) -> "ZoomState":
        fit = compute_fit_scale(viewport_width, viewport_height)
        return cls(scale=fit, fit_scale=fit)

    def _set(self, value: float) -> float:
        self.scale = round(_clamp(value, ZOOM_MIN, ZOOM_MAX), 2)
        return self.scale

    def zoom_in(self) -> float:
        return self._set(self.scale + ZOOM_STEP)

    def zoom_out(self) -> float:
        return self._set(self.scale - ZOOM_STEP)

    def reset_to_fit(self, viewport_width: float, viewport_height: float) -> float:
        """Recompute the fitted scale for the viewport and jump to it."""
        self.fit_scale = compute_fit_scale(viewport_width, viewport_height)
        return self._set(self.fit_scale)


def is_unsplittable(element: LayoutElement) -> bool:
    if AVOID_BREAK_CLASSES.intersection(element.classes):
        return True
    return (element.break_inside or "").strip().lower() in AVOID_BREAK_VALUES


def estimate_page_breaks(
    elements: Iterable[LayoutElement], scale: float = 1.0
) -> PageBreakEstimate:
    """
    Estimate where page breaks fall in a rendered preview.

    Positions are in rendered (scaled) pixels. An unsplittable element that
    crosses a page boundary gets a break marker at its top edge, unless it
    sits within the top offset of the document or closer than the minimum
    separation to a marker already recorded.

    Args:
        elements: Measured boxes of the rendered sections and items
        scale: Current preview zoom

    Returns:
        Sorted break positions and the estimated page count
    """
    if scale <= 0:
        raise ValueError("scale must be positive")

    page_height = PAGE_HEIGHT_PX * scale
    min_separation = mm_to_px(settings.documents.min_break_separation_mm) * scale
    min_offset = mm_to_px(settings.documents.min_break_offset_mm) * scale

    ordered = sorted(elements, key=lambda e: e.top)
    breaks: list[float] = []
    for element in ordered:
        if not is_unsplittable(element):
            continue
        bottom = element.top + element.height
        boundary = (math.floor(element.top / page_height) + 1) * page_height
        if bottom <= boundary or element.top <= min_offset:
            continue
        if any(abs(element.top - existing) < min_separation for existing in breaks):
            continue
        breaks.append(element.top)

    content_bottom = max((e.top + e.height for e in ordered), default=0.0)
    page_count = max(1, math.ceil(content_bottom / page_height))
    return PageBreakEstimate(breaks=sorted(breaks), page_count=page_count, page_height=page_height)
