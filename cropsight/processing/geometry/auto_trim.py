"""
Auto-trim and fixed-size normalisation for CropSight

Trims transparent/background margins and scales the remaining content to fit
a canvas of fixed size, centred. Splitting the trim from a plain
resize-to-fit keeps the proportions of the trimmed content.
"""

from typing import Optional
import logging

from ..errors import GeometryOutOfBoundsError, InvalidDimensionsError
from ..pixels import PixelBuffer
from .content_bounds import PaletteExpander
from .models import CropOptions, Rect, TrimPlacement, round_half_up
from .smart_crop import SmartCropPlanner

logger = logging.getLogger(__name__)

# Auto-trim keeps anything that is not almost fully transparent
DEFAULT_TRIM_OPTIONS = CropOptions(padding=0, tolerance=100, min_content_ratio=0.01)


def fit_to_canvas(crop: Rect, target_width: int, target_height: int,
                  trimmed: bool = True) -> TrimPlacement:
    """
    Scale a region to fit a target canvas and centre it

    Args:
        crop: Region of the source to place
        target_width: Canvas width
        target_height: Canvas height
        trimmed: Whether the region came from an actual trim

    Returns:
        TrimPlacement describing scale and canvas offsets
    """
    if not target_width or not target_height or target_width < 0 or target_height < 0:
        raise InvalidDimensionsError(f"Invalid target size: {target_width}x{target_height}")

    scale = min(target_width / crop.width, target_height / crop.height)
    scaled_width = max(1, round_half_up(crop.width * scale))
    scaled_height = max(1, round_half_up(crop.height * scale))

    offset_x = round_half_up((target_width - scaled_width) / 2)
    offset_y = round_half_up((target_height - scaled_height) / 2)

    placement = Rect(offset_x, offset_y, scaled_width, scaled_height)
    if not placement.fits_within(target_width, target_height):
        raise GeometryOutOfBoundsError(
            f"Placement {placement.as_tuple()} exceeds canvas {target_width}x{target_height}",
            rect=placement, bounds=(target_width, target_height)
        )

    return TrimPlacement(
        crop=crop,
        scale=scale,
        scaled_width=scaled_width,
        scaled_height=scaled_height,
        placement=placement,
        canvas_width=target_width,
        canvas_height=target_height,
        trimmed=trimmed,
    )


def plan_trim_and_fit(buffer: PixelBuffer, target_width: int, target_height: int,
                      options: Optional[CropOptions] = None,
                      expander: Optional[PaletteExpander] = None) -> TrimPlacement:
    """
    Trim content margins and fit the result onto a fixed-size canvas

    When the planner signals a no-op the whole image is fitted instead.

    Args:
        buffer: Decoded image
        target_width: Output canvas width
        target_height: Output canvas height
        options: Trim options, DEFAULT_TRIM_OPTIONS when omitted
        expander: Palette expander for indexed sources

    Returns:
        TrimPlacement for the caller to extract, resize and composite
    """
    options = options or DEFAULT_TRIM_OPTIONS
    _, crop = SmartCropPlanner(expander).plan(buffer, options)

    trimmed = crop is not None
    if crop is None:
        crop = Rect(0, 0, buffer.width, buffer.height)

    result = fit_to_canvas(crop, target_width, target_height, trimmed=trimmed)
    logger.debug(
        f"Trim {buffer.width}x{buffer.height} -> {crop.width}x{crop.height}, "
        f"scaled {result.scaled_width}x{result.scaled_height} at "
        f"({result.placement.left}, {result.placement.top}) on {target_width}x{target_height}"
    )
    return result
