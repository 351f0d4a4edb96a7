"""
Statistics-driven color matching for CropSight

Derives multiplicative saturation/brightness adjustments that pull a target
image towards a reference image's color profile, and translates the advanced
color controls into parameters for the codec's primitive operations.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple
import logging
import math

from ..errors import InvalidColorParametersError
from ..pixels import PixelBuffer
from .color_profile import MAX_SAMPLES, ColorProfile, analyze_profile

logger = logging.getLogger(__name__)

# Clamp ranges for the final multipliers
SATURATION_RANGE = (0.1, 5.0)
BRIGHTNESS_RANGE = (0.2, 3.0)

# Amplification per 100 % of intensity above full match
SATURATION_AMPLIFICATION = 1.5
BRIGHTNESS_AMPLIFICATION = 1.2

# Statistics below this are treated as zero to avoid blowing up ratios
MIN_STATISTIC = 0.01

CONTRAST_BOOST_THRESHOLD = 150
CONTRAST_BOOST_WEIGHT = 0.3


@dataclass(frozen=True)
class ColorAdjustment:
    """Multiplicative adjustment for the codec's modulate primitive"""
    saturation_multiplier: float = 1.0
    brightness_multiplier: float = 1.0
    hue_rotation_degrees: float = 0.0  # Reserved, always 0 for now

    @property
    def is_identity(self) -> bool:
        return (self.saturation_multiplier == 1.0 and self.brightness_multiplier == 1.0
                and self.hue_rotation_degrees == 0.0)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _clamp(value: float, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def _validate_intensity(intensity) -> float:
    if isinstance(intensity, bool) or not isinstance(intensity, (int, float)):
        raise InvalidColorParametersError(f"Intensity must be a number, got {intensity!r}")
    if not math.isfinite(intensity) or intensity < 0:
        raise InvalidColorParametersError(f"Intensity must be a non-negative percentage, got {intensity}")
    return float(intensity)


def _channel_multiplier(source: float, target: float, intensity: float,
                        amplification_weight: float) -> float:
    if source <= MIN_STATISTIC:
        return 1.0

    raw_delta = (target / source - 1) * (intensity / 100)
    if intensity > 100:
        extra = (intensity - 100) / 100
        return 1 + raw_delta * (1 + extra * amplification_weight)
    return 1 + raw_delta


def calculate_adjustment(source: ColorProfile, target: ColorProfile,
                         intensity: float = 100) -> ColorAdjustment:
    """
    Compute the adjustment that moves source towards target

    Above 100 % intensity the change is amplified non-linearly, and above
    150 % a higher target contrast additionally boosts saturation. The final
    multipliers are clamped, so extreme inputs never fail.

    Args:
        source: Profile of the image being adjusted
        target: Profile of the reference image
        intensity: Percentage, 100 = match the reference literally

    Returns:
        ColorAdjustment with clamped multipliers
    """
    intensity = _validate_intensity(intensity)

    saturation = _channel_multiplier(source.saturation, target.saturation,
                                     intensity, SATURATION_AMPLIFICATION)
    brightness = _channel_multiplier(source.brightness, target.brightness,
                                     intensity, BRIGHTNESS_AMPLIFICATION)

    if intensity > CONTRAST_BOOST_THRESHOLD and target.contrast > source.contrast:
        contrast_ratio = target.contrast / max(source.contrast, MIN_STATISTIC)
        boost = 1 + ((contrast_ratio - 1) * (intensity - CONTRAST_BOOST_THRESHOLD)
                     / CONTRAST_BOOST_THRESHOLD) * CONTRAST_BOOST_WEIGHT
        saturation *= boost

    return ColorAdjustment(
        saturation_multiplier=_clamp(saturation, SATURATION_RANGE),
        brightness_multiplier=_clamp(brightness, BRIGHTNESS_RANGE),
        hue_rotation_degrees=0.0,
    )


class ColorMatcher:
    """
    Matches images to a reference profile

    The reference is analysed once; every call to adjustment_for() only
    analyses the target.
    """

    def __init__(self, reference: ColorProfile, intensity: float = 100,
                 max_samples: int = MAX_SAMPLES):
        self.reference = reference
        self.intensity = _validate_intensity(intensity)
        self.max_samples = max_samples

    @classmethod
    def from_buffer(cls, reference: PixelBuffer, intensity: float = 100,
                    max_samples: int = MAX_SAMPLES) -> 'ColorMatcher':
        return cls(analyze_profile(reference, max_samples), intensity, max_samples)

    def adjustment_for(self, target: PixelBuffer) -> ColorAdjustment:
        profile = analyze_profile(target, self.max_samples)
        adjustment = calculate_adjustment(profile, self.reference, self.intensity)
        logger.info(
            f"Color match: saturation x{adjustment.saturation_multiplier:.3f}, "
            f"brightness x{adjustment.brightness_multiplier:.3f} at {self.intensity:g}%"
        )
        return adjustment


@dataclass(frozen=True)
class AdvancedColorOptions:
    """Manual color controls layered on top of reference matching (percentages)"""
    intensity: float = 100.0
    saturation_boost: float = 100.0
    brightness_boost: float = 100.0
    contrast_boost: float = 100.0
    hue_shift: float = 0.0  # Degrees
    sharpness: float = 100.0  # <100 blurs, >100 sharpens
    noise_reduction: float = 0.0  # 0-100
    gamma: float = 1.0

    def __post_init__(self):
        for name in ('intensity', 'saturation_boost', 'brightness_boost',
                     'contrast_boost', 'sharpness', 'noise_reduction'):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
                raise InvalidColorParametersError(f"{name} must be a non-negative number, got {value!r}")
        if self.noise_reduction > 100:
            raise InvalidColorParametersError(f"noise_reduction must be within [0, 100], got {self.noise_reduction}")
        if not isinstance(self.gamma, (int, float)) or not self.gamma > 0:
            raise InvalidColorParametersError(f"gamma must be positive, got {self.gamma!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AdvancedColorOptions':
        aliases = {
            'saturationBoost': 'saturation_boost',
            'brightnessBoost': 'brightness_boost',
            'contrastBoost': 'contrast_boost',
            'hueShift': 'hue_shift',
            'noiseReduction': 'noise_reduction',
        }
        kwargs = {aliases.get(key, key): value for key, value in data.items()}
        return cls(**kwargs)


@dataclass(frozen=True)
class AdjustmentPlan:
    """
    Ordered parameters for the codec's primitive operations

    A None field means the corresponding step is skipped.
    """
    match: Optional[ColorAdjustment] = None
    modulate: Optional[ColorAdjustment] = None
    linear: Optional[Tuple[float, float]] = None  # (a, b): out = a * in + b
    gamma: Optional[float] = None
    sharpen: Optional[Tuple[float, float, float]] = None  # (sigma, flat, jagged)
    blur: Optional[float] = None  # Gaussian sigma
    median: Optional[int] = None  # Kernel size

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in (
            self.match, self.modulate, self.linear, self.gamma,
            self.sharpen, self.blur, self.median,
        ))


def plan_advanced_adjustments(options: AdvancedColorOptions,
                              source: Optional[ColorProfile] = None,
                              reference: Optional[ColorProfile] = None) -> AdjustmentPlan:
    """
    Translate advanced color options into primitive parameters

    Args:
        options: Manual color controls
        source: Profile of the image being adjusted, enables matching
        reference: Profile of the reference image, enables matching

    Returns:
        AdjustmentPlan for the codec to apply in field order
    """
    match = None
    if options.intensity > 0 and source is not None and reference is not None:
        match = calculate_adjustment(source, reference, options.intensity)

    modulate = None
    if (options.saturation_boost != 100 or options.brightness_boost != 100
            or options.hue_shift != 0):
        modulate = ColorAdjustment(
            saturation_multiplier=options.saturation_boost / 100,
            brightness_multiplier=options.brightness_boost / 100,
            hue_rotation_degrees=float(options.hue_shift),
        )

    linear = None
    if options.contrast_boost != 100:
        a = options.contrast_boost / 100
        linear = (a, (1 - a) * 127.5)

    gamma = float(options.gamma) if options.gamma != 1.0 else None

    sharpen = None
    blur = None
    if options.sharpness > 100:
        extra = options.sharpness - 100
        sharpen = (
            max(0.5, 2 - extra / 100),
            min(2.0, extra / 50),
            min(3.0, extra / 50),
        )
    elif options.sharpness < 100:
        blur = (100 - options.sharpness) / 100 * 2

    median = None
    if options.noise_reduction > 0:
        median = max(1, min(5, int(options.noise_reduction // 20)))

    return AdjustmentPlan(match=match, modulate=modulate, linear=linear, gamma=gamma,
                          sharpen=sharpen, blur=blur, median=median)
