"""
Content-aware cropping for CropSight

Turns detected content bounds plus padding settings into a crop rectangle,
and builds the derived layouts used by batch modes (quadrant split and
contain-fit resizing of the smart-cropped region).
"""

from typing import List, Optional, Tuple
import logging

from ..errors import GeometryOutOfBoundsError, InvalidDimensionsError
from ..pixels import PixelBuffer
from .content_bounds import ContentBoundsAnalyzer, PaletteExpander
from .models import ContentBounds, CropOptions, Rect, round_half_up

logger = logging.getLogger(__name__)


def _require_dimensions(width: int, height: int):
    if not width or not height or width < 0 or height < 0:
        raise InvalidDimensionsError(f"Invalid image dimensions: {width}x{height}")


def plan_crop(width: int, height: int, bounds: ContentBounds,
              options: CropOptions) -> Optional[Rect]:
    """
    Compute a padded crop around detected content

    Padding is clamped against the image edge instead of being shrunk
    symmetrically, so content near an edge gets asymmetric padding.

    Args:
        width: Buffer width
        height: Buffer height
        bounds: Detected content bounds
        options: Padding and minimum content ratio

    Returns:
        Crop rectangle, or None meaning "use the original image unchanged"
    """
    _require_dimensions(width, height)

    if not bounds.has_content:
        logger.debug("No content detected, keeping original image")
        return None

    content_ratio = (bounds.width * bounds.height) / (width * height)
    if content_ratio < options.min_content_ratio:
        logger.debug(
            f"Content ratio {content_ratio:.4f} below minimum "
            f"{options.min_content_ratio}, keeping original image"
        )
        return None

    pad_top, pad_right, pad_bottom, pad_left = options.resolved_padding()

    crop_left = max(0, bounds.left - pad_left)
    crop_top = max(0, bounds.top - pad_top)
    crop_width = min(bounds.width + pad_left + pad_right, width - crop_left)
    crop_height = min(bounds.height + pad_top + pad_bottom, height - crop_top)

    rect = Rect(crop_left, crop_top, crop_width, crop_height)
    if rect.width <= 0 or rect.height <= 0 or not rect.fits_within(width, height):
        raise GeometryOutOfBoundsError(
            f"Crop {rect.as_tuple()} exceeds image {width}x{height}",
            rect=rect, bounds=(width, height)
        )
    return rect


class SmartCropPlanner:
    """Detects content and plans the padded crop in one step"""

    def __init__(self, expander: Optional[PaletteExpander] = None):
        self.analyzer = ContentBoundsAnalyzer(expander)

    def plan(self, buffer: PixelBuffer, options: CropOptions) -> Tuple[ContentBounds, Optional[Rect]]:
        """
        Args:
            buffer: Decoded image
            options: Crop options (tolerance drives detection)

        Returns:
            Tuple of (detected bounds, crop rectangle or None for no-op)
        """
        bounds = self.analyzer.analyze(buffer, options.tolerance)
        return bounds, plan_crop(buffer.width, buffer.height, bounds, options)

    def plan_region(self, buffer: PixelBuffer, options: CropOptions) -> Rect:
        """Crop rectangle, falling back to the whole image on a no-op."""
        _, rect = self.plan(buffer, options)
        if rect is None:
            return Rect(0, 0, buffer.width, buffer.height)
        return rect


def plan_split(width: int, height: int) -> List[Rect]:
    """
    Split an image into four equal quadrants

    Odd dimensions drop the last row/column.

    Returns:
        Rects in order top-left, top-right, bottom-left, bottom-right
    """
    _require_dimensions(width, height)
    half_w = width // 2
    half_h = height // 2
    if half_w == 0 or half_h == 0:
        raise InvalidDimensionsError(f"Image {width}x{height} is too small to split")

    return [
        Rect(0, 0, half_w, half_h),
        Rect(half_w, 0, half_w, half_h),
        Rect(0, half_h, half_w, half_h),
        Rect(half_w, half_h, half_w, half_h),
    ]


def plan_smart_crop_split(buffer: PixelBuffer, options: CropOptions,
                          expander: Optional[PaletteExpander] = None) -> List[Rect]:
    """Quadrants of the smart-cropped region, in source coordinates."""
    region = SmartCropPlanner(expander).plan_region(buffer, options)
    return [tile.offset(region.left, region.top) for tile in plan_split(region.width, region.height)]


def plan_contain_fit(source_width: int, source_height: int,
                     target_width: int, target_height: int) -> Rect:
    """
    Letterbox a source onto a target canvas, preserving aspect ratio

    Returns:
        Placement of the scaled source on the target canvas
    """
    _require_dimensions(source_width, source_height)
    _require_dimensions(target_width, target_height)

    scale = min(target_width / source_width, target_height / source_height)
    scaled_width = min(target_width, max(1, round_half_up(source_width * scale)))
    scaled_height = min(target_height, max(1, round_half_up(source_height * scale)))
    left = (target_width - scaled_width) // 2
    top = (target_height - scaled_height) // 2
    return Rect(left, top, scaled_width, scaled_height)


def plan_smart_crop_resize(buffer: PixelBuffer, target_width: int, target_height: int,
                           options: CropOptions,
                           expander: Optional[PaletteExpander] = None) -> Tuple[Rect, Rect]:
    """
    Smart crop then contain-fit onto a target canvas

    Returns:
        Tuple of (crop region in source, placement on target canvas)
    """
    region = SmartCropPlanner(expander).plan_region(buffer, options)
    placement = plan_contain_fit(region.width, region.height, target_width, target_height)
    return region, placement


def plan_preview_size(width: int, height: int, preview_size: int = 400) -> Tuple[int, int]:
    """
    Dimensions of a preview that fits inside preview_size, never enlarging

    Args:
        width: Source width
        height: Source height
        preview_size: Maximum length of the longer side

    Returns:
        (preview_width, preview_height)
    """
    _require_dimensions(width, height)
    aspect = width / height
    if aspect > 1:
        new_width = min(preview_size, width)
        new_height = max(1, round_half_up(new_width / aspect))
    else:
        new_height = min(preview_size, height)
        new_width = max(1, round_half_up(new_height * aspect))
    return new_width, new_height
