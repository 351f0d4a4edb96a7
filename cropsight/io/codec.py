"""
Codec adapter for CropSight

Bridges the pure planners and the raster libraries: Pillow decodes and
composites, OpenCV resizes and filters. Everything here consumes and returns
PixelBuffers so planners never touch a library type.
"""

from io import BytesIO
from pathlib import Path
from typing import Iterable, Tuple, Union
import logging

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from ..processing.color.color_matching import AdjustmentPlan, ColorAdjustment
from ..processing.errors import GeometryOutOfBoundsError, ProcessingError
from ..processing.geometry.models import LayerPlacement, Rect, TrimPlacement
from ..processing.pixels import PixelBuffer

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, Image.Image]

# Pillow modes that already carry an alpha channel
_ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}


class CodecError(ProcessingError):
    """Raised when an image cannot be decoded or converted."""
    pass


def _open(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        return source
    try:
        if isinstance(source, bytes):
            image = Image.open(BytesIO(source))
        else:
            image = Image.open(Path(source))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise CodecError(f"Could not decode image: {e}") from e
    return image


def decode_image(source: ImageSource) -> PixelBuffer:
    """
    Decode an image into a PixelBuffer

    Palette images are rendered to RGB and flagged as palette sources; their
    transparency is only recovered through expand_palette().

    Args:
        source: File path, encoded bytes or an open PIL image

    Returns:
        PixelBuffer with 3 or 4 channels
    """
    image = _open(source)

    if image.mode == "P":
        rgb = np.asarray(image.convert("RGB"))
        return PixelBuffer.from_array(rgb, has_alpha=False, is_palette=True, source=image)

    if image.mode in _ALPHA_MODES or "transparency" in image.info:
        rgba = np.asarray(image.convert("RGBA"))
        return PixelBuffer.from_array(rgba, has_alpha=True, source=image)

    rgb = np.asarray(image.convert("RGB"))
    return PixelBuffer.from_array(rgb, has_alpha=False, source=image)


def expand_palette(buffer: PixelBuffer) -> PixelBuffer:
    """
    Expand an indexed image to full RGBA depth

    Raises:
        CodecError: If the buffer has no palette source to expand
    """
    source = buffer.source
    if not isinstance(source, Image.Image) or source.mode != "P":
        raise CodecError("Buffer has no palette source to expand")

    rgba = np.asarray(source.convert("RGBA"))
    has_transparency = "transparency" in source.info
    logger.debug(f"Expanded palette image {buffer.width}x{buffer.height} "
                 f"(transparency={has_transparency})")
    return PixelBuffer.from_array(rgba, has_alpha=has_transparency)


def to_pil(buffer: PixelBuffer) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(buffer.data))


def extract(buffer: PixelBuffer, rect: Rect) -> PixelBuffer:
    """Copy a rectangular region out of a buffer."""
    if rect.width <= 0 or rect.height <= 0 or not rect.fits_within(buffer.width, buffer.height):
        raise GeometryOutOfBoundsError(
            f"Region {rect.as_tuple()} outside image {buffer.width}x{buffer.height}",
            rect=rect, bounds=(buffer.width, buffer.height)
        )
    region = buffer.data[rect.top:rect.bottom, rect.left:rect.right].copy()
    return PixelBuffer.from_array(region, has_alpha=buffer.has_alpha)


def resize(buffer: PixelBuffer, width: int, height: int) -> PixelBuffer:
    """Resize to exact dimensions, area-averaging when shrinking."""
    if width == buffer.width and height == buffer.height:
        return buffer
    shrinking = width < buffer.width or height < buffer.height
    interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
    resized = cv2.resize(buffer.data, (width, height), interpolation=interpolation)
    return PixelBuffer.from_array(resized, has_alpha=buffer.has_alpha)


def compose(width: int, height: int,
            layers: Iterable[Tuple[PixelBuffer, Rect]]) -> PixelBuffer:
    """
    Alpha-composite layers onto a transparent canvas

    Each layer is resized to its placement rect first. Layers are drawn in
    iteration order, bottom first.
    """
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    for layer, placement in layers:
        scaled = resize(layer, placement.width, placement.height)
        canvas.alpha_composite(to_pil(scaled).convert("RGBA"), dest=(placement.left, placement.top))
    return PixelBuffer.from_array(np.asarray(canvas), has_alpha=True)


def render_trim_placement(buffer: PixelBuffer, plan: TrimPlacement) -> PixelBuffer:
    """Extract the trimmed region and centre it on the fixed-size canvas."""
    region = extract(buffer, plan.crop)
    return compose(plan.canvas_width, plan.canvas_height, [(region, plan.placement)])


def render_layer(buffer: PixelBuffer, placement: LayerPlacement,
                 output_canvas_size: int) -> PixelBuffer:
    """Render one layer onto its own square output canvas."""
    source = extract(buffer, placement.crop) if placement.crop else buffer
    return compose(output_canvas_size, output_canvas_size, [(source, placement.placement)])


def _split_alpha(buffer: PixelBuffer) -> Tuple[np.ndarray, Union[np.ndarray, None]]:
    rgb = buffer.data[:, :, :3].astype(np.float32) / 255.0
    alpha = buffer.data[:, :, 3:] if buffer.channels == 4 else None
    return rgb, alpha


def _merge_alpha(rgb: np.ndarray, alpha, has_alpha: bool) -> PixelBuffer:
    out = (np.clip(rgb, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
    if alpha is not None:
        out = np.concatenate([out, alpha], axis=2)
    return PixelBuffer.from_array(out, has_alpha=has_alpha)


def modulate(buffer: PixelBuffer, adjustment: ColorAdjustment) -> PixelBuffer:
    """Scale saturation and brightness and rotate hue in HSV space."""
    if adjustment.is_identity:
        return buffer
    rgb, alpha = _split_alpha(buffer)
    hsv = cv2.cvtColor(rgb, cv2.COLOR_RGB2HSV)
    hsv[:, :, 0] = (hsv[:, :, 0] + adjustment.hue_rotation_degrees) % 360.0
    hsv[:, :, 1] = np.clip(hsv[:, :, 1] * adjustment.saturation_multiplier, 0.0, 1.0)
    hsv[:, :, 2] = np.clip(hsv[:, :, 2] * adjustment.brightness_multiplier, 0.0, 1.0)
    return _merge_alpha(cv2.cvtColor(hsv, cv2.COLOR_HSV2RGB), alpha, buffer.has_alpha)


def linear(buffer: PixelBuffer, a: float, b: float) -> PixelBuffer:
    """Apply out = a * in + b on the 0-255 scale."""
    rgb, alpha = _split_alpha(buffer)
    return _merge_alpha(rgb * a + b / 255.0, alpha, buffer.has_alpha)


def gamma(buffer: PixelBuffer, value: float) -> PixelBuffer:
    rgb, alpha = _split_alpha(buffer)
    return _merge_alpha(np.power(rgb, 1.0 / value), alpha, buffer.has_alpha)


def blur(buffer: PixelBuffer, sigma: float) -> PixelBuffer:
    rgb, alpha = _split_alpha(buffer)
    blurred = cv2.GaussianBlur(rgb, (0, 0), sigmaX=max(0.3, sigma))
    return _merge_alpha(blurred, alpha, buffer.has_alpha)


def sharpen(buffer: PixelBuffer, sigma: float, flat: float, jagged: float) -> PixelBuffer:
    """
    Unsharp mask with separate strengths for flat and jagged areas

    Detail below two levels (of 255) counts as flat.
    """
    rgb, alpha = _split_alpha(buffer)
    detail = rgb - cv2.GaussianBlur(rgb, (0, 0), sigmaX=sigma)
    amount = np.where(np.abs(detail) <= 2.0 / 255.0, flat, jagged)
    return _merge_alpha(rgb + detail * amount, alpha, buffer.has_alpha)


def median(buffer: PixelBuffer, size: int) -> PixelBuffer:
    ksize = size if size % 2 == 1 else size + 1
    if ksize < 3:
        return buffer
    filtered = cv2.medianBlur(np.ascontiguousarray(buffer.data[:, :, :3]), ksize)
    if buffer.channels == 4:
        filtered = np.concatenate([filtered, buffer.data[:, :, 3:]], axis=2)
    return PixelBuffer.from_array(filtered, has_alpha=buffer.has_alpha)


def apply_plan(buffer: PixelBuffer, plan: AdjustmentPlan) -> PixelBuffer:
    """Run every step of an AdjustmentPlan in order."""
    result = buffer
    if plan.match is not None:
        result = modulate(result, plan.match)
    if plan.modulate is not None:
        result = modulate(result, plan.modulate)
    if plan.linear is not None:
        result = linear(result, *plan.linear)
    if plan.gamma is not None:
        result = gamma(result, plan.gamma)
    if plan.sharpen is not None:
        result = sharpen(result, *plan.sharpen)
    if plan.blur is not None:
        result = blur(result, plan.blur)
    if plan.median is not None:
        result = median(result, plan.median)
    return result
