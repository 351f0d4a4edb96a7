"""
Layer placement for the multi-layer compositor

Layer transforms are authored against a fixed-size preview canvas. Export
happens at a different output size, so scale and offsets have to be
re-projected before the layer can be placed.
"""

from dataclasses import replace
from typing import List, Optional, Tuple
import logging

from ..errors import InvalidDimensionsError, InvalidLayerTransformError
from .models import LayerPlacement, LayerTransform, Rect, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_CANVAS_SIZE = 400


def _validate_canvas(preview_canvas_size: int, output_canvas_size: int):
    if not preview_canvas_size or preview_canvas_size <= 0:
        raise InvalidLayerTransformError(f"Preview canvas size must be positive, got {preview_canvas_size}")
    if not output_canvas_size or output_canvas_size <= 0:
        raise InvalidLayerTransformError(f"Output canvas size must be positive, got {output_canvas_size}")


def resolve_sub_crop(source_width: int, source_height: int,
                     transform: LayerTransform) -> Optional[Rect]:
    """
    Convert the percentage crop of a layer into source pixels

    Returns:
        Crop rectangle clamped to the source, or None when cropping is off
    """
    if not transform.crop_enabled:
        return None

    left = round_half_up(transform.crop_x * source_width / 100)
    top = round_half_up(transform.crop_y * source_height / 100)
    left = max(0, min(left, source_width - 1))
    top = max(0, min(top, source_height - 1))

    width = round_half_up(transform.crop_width * source_width / 100)
    height = round_half_up(transform.crop_height * source_height / 100)
    width = max(1, min(width, source_width - left))
    height = max(1, min(height, source_height - top))

    return Rect(left, top, width, height)


def resolve_layer(source_width: int, source_height: int, transform: LayerTransform,
                  preview_canvas_size: int = DEFAULT_PREVIEW_CANVAS_SIZE,
                  output_canvas_size: int = 1024) -> LayerPlacement:
    """
    Resolve a preview-space layer transform into output canvas pixels

    Args:
        source_width: Width of the layer image
        source_height: Height of the layer image
        transform: Scale, offset and optional percentage crop
        preview_canvas_size: Canvas size the transform was authored on
        output_canvas_size: Canvas size of the export

    Returns:
        LayerPlacement with the optional source crop and the placement rect
    """
    if not source_width or not source_height or source_width < 0 or source_height < 0:
        raise InvalidDimensionsError(f"Invalid layer dimensions: {source_width}x{source_height}")
    _validate_canvas(preview_canvas_size, output_canvas_size)

    crop = resolve_sub_crop(source_width, source_height, transform)
    base_width, base_height = (crop.width, crop.height) if crop else (source_width, source_height)

    ratio = preview_canvas_size / output_canvas_size
    effective_scale = transform.scale / ratio

    final_width = max(1, min(round_half_up(base_width * effective_scale), output_canvas_size))
    final_height = max(1, min(round_half_up(base_height * effective_scale), output_canvas_size))

    position_scale = output_canvas_size / preview_canvas_size
    center_x = output_canvas_size / 2 + transform.x * position_scale
    center_y = output_canvas_size / 2 + transform.y * position_scale

    left = round_half_up(center_x - final_width / 2)
    top = round_half_up(center_y - final_height / 2)
    left = max(0, min(left, output_canvas_size - final_width))
    top = max(0, min(top, output_canvas_size - final_height))

    placement = Rect(left, top, final_width, final_height)
    logger.debug(
        f"Layer {transform.name or '<unnamed>'}: scale {transform.scale} -> "
        f"{effective_scale:.4f}, placed at {placement.as_tuple()} on {output_canvas_size}px"
    )
    return LayerPlacement(placement=placement, effective_scale=effective_scale, crop=crop)


def resolve_layers(layers: List[Tuple[int, int, LayerTransform]],
                   preview_canvas_size: int = DEFAULT_PREVIEW_CANVAS_SIZE,
                   output_canvas_size: int = 1024) -> List[Optional[LayerPlacement]]:
    """
    Resolve a stack of layers; invisible layers yield None

    Args:
        layers: (source_width, source_height, transform) per layer, bottom first
    """
    placements = []
    for source_width, source_height, transform in layers:
        if not transform.visible:
            placements.append(None)
            continue
        placements.append(resolve_layer(source_width, source_height, transform,
                                        preview_canvas_size, output_canvas_size))
    return placements


def initial_preview_scale(image_width: int, image_height: int, output_canvas_size: int,
                          preview_canvas_size: int = DEFAULT_PREVIEW_CANVAS_SIZE) -> float:
    """
    Preview scale at which a freshly loaded layer fills the output canvas

    Rounded to two decimals, the precision of the scale slider.
    """
    if not image_width or not image_height:
        raise InvalidDimensionsError(f"Invalid layer dimensions: {image_width}x{image_height}")
    _validate_canvas(preview_canvas_size, output_canvas_size)

    scale_to_output = min(output_canvas_size / image_width, output_canvas_size / image_height)
    preview_scale = scale_to_output * (preview_canvas_size / output_canvas_size)
    return round_half_up(preview_scale * 100) / 100


def normalize_layer_crop(transform: LayerTransform) -> LayerTransform:
    """Pull the crop origin back so the crop window stays inside 0-100 %."""
    max_x = 100 - transform.crop_width
    max_y = 100 - transform.crop_height
    crop_x = min(transform.crop_x, max_x)
    crop_y = min(transform.crop_y, max_y)
    if crop_x == transform.crop_x and crop_y == transform.crop_y:
        return transform
    return replace(transform, crop_x=crop_x, crop_y=crop_y)
