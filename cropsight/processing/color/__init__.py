"""
Color processing modules for CropSight

Includes color profile analysis and reference-based color matching.
"""

from .color_profile import ColorProfile, analyze_profile
from .color_matching import (
    ColorAdjustment, ColorMatcher, AdvancedColorOptions, AdjustmentPlan,
    calculate_adjustment, plan_advanced_adjustments,
)

__all__ = [
    "ColorProfile",
    "analyze_profile",
    "ColorAdjustment",
    "ColorMatcher",
    "AdvancedColorOptions",
    "AdjustmentPlan",
    "calculate_adjustment",
    "plan_advanced_adjustments",
]
