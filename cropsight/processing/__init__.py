"""
Processing modules for CropSight

Pure computation over decoded pixel buffers: geometry planning and color
statistics. Applying the results is left to the codec adapter in
cropsight.io.codec.
"""

from .errors import (
    ProcessingError, InvalidDimensionsError, GeometryOutOfBoundsError,
    InvalidAspectRatioSpecError, InvalidColorParametersError, InvalidLayerTransformError,
)
from .pixels import PixelBuffer, PixelSampler

__all__ = [
    "ProcessingError",
    "InvalidDimensionsError",
    "GeometryOutOfBoundsError",
    "InvalidAspectRatioSpecError",
    "InvalidColorParametersError",
    "InvalidLayerTransformError",
    "PixelBuffer",
    "PixelSampler",
]
