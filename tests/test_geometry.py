"""
Tests for crop planning: smart crop, aspect ratio crop and auto-trim.
"""

import pytest
import numpy as np

from cropsight.processing.errors import InvalidAspectRatioSpecError, InvalidDimensionsError
from cropsight.processing.geometry import (
    AspectCropSpec, ContentBounds, CropOptions, Rect, SmartCropPlanner,
    crop_to_aspect_ratio, plan_aspect_crop, plan_contain_fit, plan_crop, plan_split,
    plan_trim_and_fit,
)
from cropsight.processing.geometry.auto_trim import DEFAULT_TRIM_OPTIONS, fit_to_canvas
from cropsight.processing.geometry.models import round_half_up
from cropsight.processing.geometry.smart_crop import (
    plan_preview_size, plan_smart_crop_resize, plan_smart_crop_split,
)
from cropsight.processing.pixels import PixelBuffer


@pytest.fixture
def framed_image():
    """1000x800 white image with a black 200x100 block at (400, 350)."""
    data = np.full((800, 1000, 3), 255, dtype=np.uint8)
    data[350:450, 400:600] = 0
    return PixelBuffer.from_array(data)


class TestRounding:
    """Test half-up rounding."""

    def test_halves_round_up(self):
        """Halves round towards positive infinity."""
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(-0.5) == 0
        assert round_half_up(2.49) == 2


class TestPlanCrop:
    """Test padded crops around detected bounds."""

    def test_scenario_crop(self, framed_image):
        """A 200x100 block with padding 20 crops to 240x140."""
        options = CropOptions(padding=20, tolerance=10, min_content_ratio=0.01)
        bounds, crop = SmartCropPlanner().plan(framed_image, options)
        assert bounds.has_content
        assert crop.as_tuple() == (380, 330, 240, 140)

    def test_default_options_reproduce_scenario(self, framed_image):
        """Default content ratio keeps the padded crop."""
        _, crop = SmartCropPlanner().plan(framed_image, CropOptions(padding=20, tolerance=10))
        assert crop.as_tuple() == (380, 330, 240, 140)

    def test_small_content_is_noop(self, framed_image):
        """Content below the minimum ratio is a no-op."""
        # 200x100 of 1000x800 is 2.5 %, below a 10 % minimum
        _, crop = SmartCropPlanner().plan(framed_image, CropOptions(min_content_ratio=0.1))
        assert crop is None

    def test_no_content_is_noop(self):
        """No detected content is a no-op."""
        crop = plan_crop(100, 100, ContentBounds.full_image(100, 100), CropOptions())
        assert crop is None

    def test_padding_clamped_at_top_left(self):
        """Padding is clamped at the top-left edges."""
        bounds = ContentBounds.from_extent(5, 5, 54, 54)
        crop = plan_crop(100, 100, bounds, CropOptions(padding=20))
        assert crop.as_tuple() == (0, 0, 90, 90)

    def test_padding_clamped_at_bottom_right(self):
        """Padding is clamped at the bottom-right edges."""
        bounds = ContentBounds.from_extent(80, 80, 99, 99)
        crop = plan_crop(100, 100, bounds, CropOptions(padding=20, min_content_ratio=0.0))
        assert crop.as_tuple() == (60, 60, 40, 40)

    def test_per_side_padding(self):
        """Per-side padding overrides the shared value."""
        bounds = ContentBounds.from_extent(400, 350, 599, 449)
        options = CropOptions(padding=20, padding_top=0, min_content_ratio=0.01)
        crop = plan_crop(1000, 800, bounds, options)
        assert crop.as_tuple() == (380, 350, 240, 120)

    def test_crop_always_inside_image(self):
        """Crops contain the content and stay inside the image."""
        for left, top in [(0, 0), (10, 90), (95, 3), (50, 50)]:
            bounds = ContentBounds.from_extent(left, top, min(99, left + 4), min(99, top + 4))
            crop = plan_crop(100, 100, bounds, CropOptions(padding=30, min_content_ratio=0.0))
            assert crop.fits_within(100, 100)
            assert crop.width >= bounds.width and crop.height >= bounds.height
            assert crop.width > 0 and crop.height > 0

    def test_invalid_dimensions(self):
        """Zero image dimensions are rejected."""
        with pytest.raises(InvalidDimensionsError):
            plan_crop(0, 100, ContentBounds.full_image(1, 1), CropOptions())

    def test_invalid_options(self):
        """Negative padding and ratios above 1 are rejected."""
        with pytest.raises(ValueError):
            CropOptions(padding=-1)
        with pytest.raises(ValueError):
            CropOptions(min_content_ratio=1.5)

    def test_rejects_negative_tolerance(self):
        """A negative tolerance is rejected instead of meaning different things per strategy."""
        with pytest.raises(ValueError):
            CropOptions(tolerance=-1)

    def test_plan_region_falls_back_to_full_image(self, framed_image):
        """plan_region returns the whole image on a no-op."""
        region = SmartCropPlanner().plan_region(framed_image, CropOptions(min_content_ratio=0.1))
        assert region.as_tuple() == (0, 0, 1000, 800)


class TestSplitAndFit:
    """Test quadrant split and contain-fit layouts."""

    def test_split_quadrants(self):
        """Odd sizes split into equal floor-sized quadrants."""
        tiles = plan_split(101, 51)
        assert [t.as_tuple() for t in tiles] == [
            (0, 0, 50, 25), (50, 0, 50, 25), (0, 25, 50, 25), (50, 25, 50, 25),
        ]

    def test_split_too_small(self):
        """Images narrower than 2 pixels cannot be split."""
        with pytest.raises(InvalidDimensionsError):
            plan_split(1, 10)

    def test_split_of_smart_crop(self, framed_image):
        """The smart crop region is split into quadrants."""
        options = CropOptions(padding=20, min_content_ratio=0.01)
        tiles = plan_smart_crop_split(framed_image, options)
        assert tiles[0].as_tuple() == (380, 330, 120, 70)
        assert tiles[3].as_tuple() == (500, 400, 120, 70)

    def test_contain_fit_letterbox(self):
        """Contain-fit letterboxes and pillarboxes."""
        assert plan_contain_fit(200, 100, 100, 100).as_tuple() == (0, 25, 100, 50)
        assert plan_contain_fit(100, 200, 100, 100).as_tuple() == (25, 0, 50, 100)

    def test_smart_crop_resize(self, framed_image):
        """The smart crop region is fitted onto a canvas."""
        options = CropOptions(padding=20, min_content_ratio=0.01)
        region, placement = plan_smart_crop_resize(framed_image, 480, 480, options)
        assert region.as_tuple() == (380, 330, 240, 140)
        assert placement.as_tuple() == (0, 100, 480, 280)

    def test_preview_size(self):
        """Previews fit within 400 pixels without upscaling."""
        assert plan_preview_size(800, 400) == (400, 200)
        assert plan_preview_size(300, 600) == (200, 400)
        assert plan_preview_size(100, 50) == (100, 50)


class TestAspectCrop:
    """Test fixed aspect ratio crops."""

    def test_square_from_landscape(self):
        """A centred square is cut from a landscape image."""
        rect = plan_aspect_crop(1920, 1080, AspectCropSpec(1, 1))
        assert rect.as_tuple() == (420, 0, 1080, 1080)

    def test_position_extremes(self):
        """Positions 0 and 100 pin the crop to the edges."""
        assert plan_aspect_crop(1920, 1080, AspectCropSpec(1, 1, 0, 0)).left == 0
        assert plan_aspect_crop(1920, 1080, AspectCropSpec(1, 1, 100, 100)).left == 840

    def test_taller_source_trims_top_bottom(self):
        """Taller sources are trimmed top and bottom."""
        rect = plan_aspect_crop(1000, 1000, AspectCropSpec(4, 3))
        assert rect.as_tuple() == (0, 125, 1000, 750)

    def test_matching_ratio_is_full_image(self):
        """A matching ratio keeps the whole image."""
        assert plan_aspect_crop(500, 500, AspectCropSpec(1, 1)).as_tuple() == (0, 0, 500, 500)

    def test_result_matches_ratio(self):
        """Crops match the requested ratio and fit the image."""
        for ratio in ["16:9", "4:5", "3:2", "9:16"]:
            spec = AspectCropSpec.parse(ratio)
            rect = plan_aspect_crop(1234, 987, spec)
            assert rect.fits_within(1234, 987)
            assert abs(rect.width / rect.height - spec.ratio) < 0.01

    def test_string_shorthand(self):
        """crop_to_aspect_ratio accepts a W:H string."""
        rect = crop_to_aspect_ratio(1920, 1080, "1:1", position_x=0)
        assert rect.as_tuple() == (0, 0, 1080, 1080)

    def test_ratio_property(self):
        """ratio is width over height."""
        assert AspectCropSpec.parse("16:9").ratio == pytest.approx(16 / 9)

    @pytest.mark.parametrize("ratio", ["16-9", "a:b", "0:1", "1:-2", "1:2:3"])
    def test_invalid_ratio_strings(self, ratio):
        """Malformed ratio strings are rejected."""
        with pytest.raises(InvalidAspectRatioSpecError):
            AspectCropSpec.parse(ratio)

    def test_accepts_numpy_ratios(self):
        """numpy scalars are valid ratio and position values."""
        spec = AspectCropSpec(np.int64(16), np.int64(9), np.float32(25))
        assert spec.ratio == pytest.approx(16 / 9)
        assert plan_aspect_crop(1600, 1600, spec).as_tuple() == (0, 350, 1600, 900)

    def test_rejects_boolean_ratio(self):
        """Booleans are not accepted as ratio or position values."""
        with pytest.raises(InvalidAspectRatioSpecError):
            AspectCropSpec(True, 1)
        with pytest.raises(InvalidAspectRatioSpecError):
            AspectCropSpec(1, 1, position_x=False)

    def test_invalid_position(self):
        """Positions outside 0-100 are rejected."""
        with pytest.raises(InvalidAspectRatioSpecError):
            AspectCropSpec(1, 1, position_x=101)
        # Also usable as a plain ValueError
        with pytest.raises(ValueError):
            AspectCropSpec(1, 1, position_y=-1)

    def test_invalid_dimensions(self):
        """Zero image dimensions are rejected."""
        with pytest.raises(InvalidDimensionsError):
            plan_aspect_crop(0, 100, AspectCropSpec(1, 1))


class TestAutoTrim:
    """Test trimming onto a fixed-size canvas."""

    @pytest.fixture
    def sticker(self):
        data = np.zeros((100, 200, 4), dtype=np.uint8)
        data[20:70, 10:60] = (255, 0, 0, 255)
        return PixelBuffer.from_array(data)

    def test_trim_and_fit(self, sticker):
        """Trimmed content is scaled and centred on the canvas."""
        result = plan_trim_and_fit(sticker, 100, 200)
        assert result.trimmed
        assert result.crop.as_tuple() == (10, 20, 50, 50)
        assert result.scale == pytest.approx(2.0)
        assert result.placement.as_tuple() == (0, 50, 100, 100)

    def test_empty_image_fits_whole(self):
        """Without content the whole image is fitted."""
        empty = PixelBuffer.from_array(np.zeros((100, 200, 4), dtype=np.uint8))
        result = plan_trim_and_fit(empty, 100, 100)
        assert not result.trimmed
        assert result.crop.as_tuple() == (0, 0, 200, 100)
        assert result.placement.as_tuple() == (0, 25, 100, 50)

    def test_placement_inside_canvas(self, sticker):
        """Placements stay inside any canvas size."""
        for width, height in [(1, 1), (33, 77), (512, 512), (1000, 10)]:
            result = plan_trim_and_fit(sticker, width, height)
            assert result.placement.fits_within(width, height)

    def test_default_options(self):
        """Trim defaults use padding 0 and tolerance 100."""
        assert DEFAULT_TRIM_OPTIONS.padding == 0
        assert DEFAULT_TRIM_OPTIONS.tolerance == 100

    def test_invalid_target(self):
        """A zero target size is rejected."""
        with pytest.raises(InvalidDimensionsError):
            fit_to_canvas(Rect(0, 0, 10, 10), 0, 10)
