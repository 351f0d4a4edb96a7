"""
Geometry planning modules for CropSight

Includes content bounds detection, smart and aspect ratio cropping,
auto-trim normalisation and layer placement.
"""

from .models import (
    Rect, ContentBounds, CropOptions, AspectCropSpec, LayerTransform,
    TrimPlacement, LayerPlacement,
)
from .content_bounds import ContentBoundsAnalyzer, analyze_content_bounds
from .smart_crop import SmartCropPlanner, plan_crop, plan_split, plan_contain_fit
from .aspect_crop import plan_aspect_crop, crop_to_aspect_ratio
from .auto_trim import plan_trim_and_fit
from .layer_transform import resolve_layer, initial_preview_scale

__all__ = [
    "Rect",
    "ContentBounds",
    "CropOptions",
    "AspectCropSpec",
    "LayerTransform",
    "TrimPlacement",
    "LayerPlacement",
    "ContentBoundsAnalyzer",
    "analyze_content_bounds",
    "SmartCropPlanner",
    "plan_crop",
    "plan_split",
    "plan_contain_fit",
    "plan_aspect_crop",
    "crop_to_aspect_ratio",
    "plan_trim_and_fit",
    "resolve_layer",
    "initial_preview_scale",
]
