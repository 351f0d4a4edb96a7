"""
CropSight: content-aware crop, layout and color matching engine

Locates the meaningful content of raster images and derives crop
rectangles, layer placements and color adjustments from it.
"""

__version__ = "0.1.0"

from .config import load_config
from .processing.pixels import PixelBuffer
from .processing.geometry import (
    AspectCropSpec, ContentBounds, CropOptions, LayerTransform, Rect,
    analyze_content_bounds, plan_aspect_crop, plan_crop, plan_trim_and_fit, resolve_layer,
)
from .processing.color import ColorAdjustment, ColorProfile, analyze_profile, calculate_adjustment

__all__ = [
    "load_config",
    "PixelBuffer",
    "AspectCropSpec",
    "ContentBounds",
    "CropOptions",
    "LayerTransform",
    "Rect",
    "analyze_content_bounds",
    "plan_aspect_crop",
    "plan_crop",
    "plan_trim_and_fit",
    "resolve_layer",
    "ColorAdjustment",
    "ColorProfile",
    "analyze_profile",
    "calculate_adjustment",
]
