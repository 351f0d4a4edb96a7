"""
Exception hierarchy for CropSight processing

Every failure is scoped to a single image. Batch helpers catch these per item
so that one bad image never aborts its siblings.
"""


class ProcessingError(Exception):
    """Base exception for engine failures."""
    pass


class InvalidDimensionsError(ProcessingError):
    """Raised when buffer metadata is missing or inconsistent with its data."""
    pass


class GeometryOutOfBoundsError(ProcessingError):
    """Raised when a computed rectangle would fall outside its container."""

    def __init__(self, message: str, rect=None, bounds=None):
        super().__init__(message)
        self.rect = rect
        self.bounds = bounds


class InvalidAspectRatioSpecError(ProcessingError, ValueError):
    """Raised for non-positive ratios or out-of-range crop positions."""
    pass


class InvalidColorParametersError(ProcessingError, ValueError):
    """Raised for malformed intensity or advanced color options."""
    pass


class InvalidLayerTransformError(ProcessingError, ValueError):
    """Raised for non-positive scales, canvas sizes or bad crop percentages."""
    pass
