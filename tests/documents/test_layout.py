"""
Tests for preview zoom and page-break estimation.
"""

import pytest

from resumeforge.platform.documents.layout import (
    DEVICE_PROFILES,
    PAGE_HEIGHT_PX,
    PAGE_WIDTH_PX,
    DeviceClass,
    ZoomState,
    compute_fit_scale,
    device_class_for,
    estimate_page_breaks,
    is_unsplittable,
    mm_to_px,
)
from resumeforge.platform.documents.models import LayoutElement

pytestmark = pytest.mark.unit


def _block(top, height, classes=("avoid-break",), break_inside=None):
    return LayoutElement(top=top, height=height, classes=list(classes), break_inside=break_inside)


class TestGeometry:
    def test_a4_in_css_pixels(self):
        assert PAGE_WIDTH_PX == 794
        assert PAGE_HEIGHT_PX == 1123
        assert mm_to_px(25.4) == pytest.approx(96)

    @pytest.mark.parametrize(
        "width,expected",
        [(375, DeviceClass.MOBILE), (767, DeviceClass.MOBILE), (768, DeviceClass.DESKTOP)],
    )
    def test_device_class(self, width, expected):
        assert device_class_for(width) is expected


class TestComputeFitScale:
    """Test the fitted zoom for a viewport."""

    def test_desktop(self):
        assert compute_fit_scale(1920, 1080) == pytest.approx(0.8)

    def test_mobile(self):
        assert compute_fit_scale(375, 667) == pytest.approx(0.4)

    def test_clamped_to_device_minimum(self):
        assert compute_fit_scale(800, 300) == pytest.approx(
            DEVICE_PROFILES[DeviceClass.DESKTOP].min_scale
        )

    def test_clamped_to_device_maximum(self):
        assert compute_fit_scale(3840, 2160) == pytest.approx(
            DEVICE_PROFILES[DeviceClass.DESKTOP].max_scale
        )

    def test_result_is_on_the_rounding_grid(self):
        for width, height in [(1280, 720), (1440, 900), (1024, 1366), (414, 896)]:
            scale = compute_fit_scale(width, height)
            assert round(scale / 0.05) * 0.05 == pytest.approx(scale)

    def test_result_has_no_float_residue(self):
        # 23 * 0.05 is 1.1500000000000001 in binary floating point
        assert compute_fit_scale(1760, 1500) == 1.15


class TestZoomState:
    """Test manual zoom steps."""

    def test_steps_are_independent_of_fit(self):
        state = ZoomState.fitted(1920, 1080)

        assert state.zoom_in() == pytest.approx(0.9)
        assert state.zoom_in() == pytest.approx(1.0)
        assert state.fit_scale == pytest.approx(0.8)

    def test_zoom_is_bounded(self):
        state = ZoomState(scale=1.45)
        assert state.zoom_in() == 1.5
        assert state.zoom_in() == 1.5

        state = ZoomState(scale=0.25)
        assert state.zoom_out() == 0.2
        assert state.zoom_out() == 0.2

    def test_reset_to_fit(self):
        state = ZoomState(scale=1.5, fit_scale=1.0)

        assert state.reset_to_fit(375, 667) == pytest.approx(0.4)
        assert state.fit_scale == pytest.approx(0.4)


class TestIsUnsplittable:
    @pytest.mark.parametrize("cls", ["avoid-break", "no-break", "break-inside-avoid"])
    def test_marker_classes(self, cls):
        assert is_unsplittable(_block(0, 10, classes=("entry", cls)))

    @pytest.mark.parametrize("value", ["avoid", "AVOID-PAGE", " avoid "])
    def test_break_inside_style(self, value):
        assert is_unsplittable(_block(0, 10, classes=(), break_inside=value))

    def test_plain_element(self):
        assert not is_unsplittable(_block(0, 10, classes=("entry",), break_inside="auto"))


class TestEstimatePageBreaks:
    """Test page-break markers for measured elements."""

    def test_straddling_block_gets_marker(self):
        result = estimate_page_breaks([_block(100, 300), _block(1000, 200)])

        assert result.breaks == [1000]
        assert result.page_count == 2
        assert result.page_height == PAGE_HEIGHT_PX

    def test_markers_closer_than_separation_are_dropped(self):
        result = estimate_page_breaks([_block(1100, 100), _block(1000, 200)])

        assert result.breaks == [1000]

    def test_splittable_and_top_blocks_get_no_marker(self):
        elements = [
            _block(20, 2000),
            _block(2000, 500, classes=("entry",)),
        ]

        result = estimate_page_breaks(elements)

        assert result.breaks == []
        assert result.page_count == 3

    def test_top_offset_is_fifty_millimetres_scaled(self):
        # 50mm is ~189px at full size and ~94px at half zoom
        full = estimate_page_breaks([_block(150, 1000)])
        half = estimate_page_breaks([_block(150, 500)], scale=0.5)

        assert full.breaks == []
        assert half.breaks == [150]

    def test_positions_follow_scale(self):
        result = estimate_page_breaks([_block(500, 100)], scale=0.5)

        assert result.breaks == [500]
        assert result.page_height == pytest.approx(PAGE_HEIGHT_PX * 0.5)

    def test_block_inside_a_page_gets_no_marker(self):
        assert estimate_page_breaks([_block(1200, 300)]).breaks == []

    def test_breaks_are_sorted(self):
        result = estimate_page_breaks([_block(2200, 200), _block(1000, 200)])

        assert result.breaks == [1000, 2200]

    def test_empty_document_is_one_page(self):
        result = estimate_page_breaks([])

        assert result.breaks == []
        assert result.page_count == 1

    @pytest.mark.parametrize("scale", [0, -1])
    def test_non_positive_scale(self, scale):
        with pytest.raises(ValueError):
            estimate_page_breaks([], scale=scale)
