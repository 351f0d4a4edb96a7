"""
Color statistics for CropSight color matching

Samples an image and summarises it as mean HSV-style saturation, brightness
(value) and a simple per-pixel contrast (max - min channel), plus the mean of
each RGB channel.
"""

from dataclasses import dataclass, asdict
from typing import Dict
import logging

import numpy as np

from ..pixels import PixelBuffer, PixelSampler

logger = logging.getLogger(__name__)

MAX_SAMPLES = 10000


@dataclass(frozen=True)
class ColorProfile:
    """Aggregate color statistics, every field in [0, 1]"""
    saturation: float
    brightness: float
    contrast: float
    avg_red: float
    avg_green: float
    avg_blue: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def analyze_profile(buffer: PixelBuffer, max_samples: int = MAX_SAMPLES) -> ColorProfile:
    """
    Compute the color profile of an image

    Args:
        buffer: Decoded image
        max_samples: Approximate sample budget; the stride is
            max(1, total_pixels // max_samples)

    Returns:
        ColorProfile of the sampled pixels
    """
    samples = PixelSampler(buffer).sample_rgb(max_samples)

    channel_max = samples.max(axis=1)
    channel_min = samples.min(axis=1)
    delta = channel_max - channel_min

    saturation = np.divide(delta, channel_max, out=np.zeros_like(delta), where=channel_max > 0)
    means = samples.mean(axis=0)

    profile = ColorProfile(
        saturation=float(saturation.mean()),
        brightness=float(channel_max.mean()),
        contrast=float(delta.mean()),
        avg_red=float(means[0]),
        avg_green=float(means[1]),
        avg_blue=float(means[2]),
    )
    logger.debug(
        f"Color profile: saturation={profile.saturation:.3f} "
        f"brightness={profile.brightness:.3f} contrast={profile.contrast:.3f}"
    )
    return profile
