"""
Fixed aspect ratio cropping for CropSight

Pure geometry: the largest crop of the requested ratio is placed inside the
source according to a 0-100 % focal position, independent of content.
"""

from typing import List, Tuple
import logging

from ..errors import GeometryOutOfBoundsError, InvalidDimensionsError
from .models import AspectCropSpec, Rect, round_half_up

logger = logging.getLogger(__name__)

# Ratios offered by default in the batch UI
COMMON_ASPECT_RATIOS: List[Tuple[int, int]] = [
    (1, 1),
    (4, 3),
    (3, 2),
    (16, 9),
    (4, 5),
    (2, 3),
    (9, 16),
]


def plan_aspect_crop(width: int, height: int, spec: AspectCropSpec) -> Rect:
    """
    Compute a crop of the target aspect ratio

    Args:
        width: Source width
        height: Source height
        spec: Target ratio and focal position

    Returns:
        Crop rectangle inside the source

    Raises:
        InvalidDimensionsError: If the source dimensions are missing
        GeometryOutOfBoundsError: If the rounded crop does not fit the source
    """
    if not width or not height or width < 0 or height < 0:
        raise InvalidDimensionsError(f"Invalid image dimensions: {width}x{height}")

    target_ratio = spec.ratio
    source_ratio = width / height

    if source_ratio > target_ratio:
        # Source is wider than the target, trim the sides
        crop_height = height
        crop_width = round_half_up(crop_height * target_ratio)
    else:
        # Source is taller than the target, trim top/bottom
        crop_width = width
        crop_height = round_half_up(crop_width / target_ratio)

    crop_width = max(1, crop_width)
    crop_height = max(1, crop_height)

    max_x = width - crop_width
    max_y = height - crop_height

    crop_x = round_half_up(max_x * (spec.position_x / 100))
    crop_y = round_half_up(max_y * (spec.position_y / 100))
    crop_x = max(0, min(crop_x, max_x))
    crop_y = max(0, min(crop_y, max_y))

    rect = Rect(crop_x, crop_y, crop_width, crop_height)
    if rect.right > width or rect.bottom > height:
        raise GeometryOutOfBoundsError(
            f"Aspect crop {rect.as_tuple()} exceeds image {width}x{height}",
            rect=rect, bounds=(width, height)
        )

    logger.debug(
        f"Aspect crop {spec.ratio_width:g}:{spec.ratio_height:g} at "
        f"({spec.position_x:g}%, {spec.position_y:g}%) -> {rect.as_tuple()}"
    )
    return rect


def crop_to_aspect_ratio(width: int, height: int, ratio: str,
                         position_x: float = 50.0, position_y: float = 50.0) -> Rect:
    """Shorthand taking the ratio as a "W:H" string."""
    return plan_aspect_crop(width, height, AspectCropSpec.parse(ratio, position_x, position_y))
