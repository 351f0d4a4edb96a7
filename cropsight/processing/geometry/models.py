"""
Data models for the geometry planners.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
import math
import numbers

from ..errors import InvalidAspectRatioSpecError, InvalidLayerTransformError


def round_half_up(value: float) -> int:
    """Round .5 towards positive infinity, matching browser canvas math."""
    return int(math.floor(value + 0.5))


def _is_real(value) -> bool:
    # bool is an int subclass but never a meaningful ratio or position
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in pixel coordinates."""
    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def fits_within(self, width: int, height: int) -> bool:
        return (self.left >= 0 and self.top >= 0 and
                self.right <= width and self.bottom <= height)

    def offset(self, dx: int, dy: int) -> 'Rect':
        return Rect(self.left + dx, self.top + dy, self.width, self.height)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return self.left, self.top, self.width, self.height

    def to_dict(self) -> Dict[str, int]:
        return {'left': self.left, 'top': self.top,
                'width': self.width, 'height': self.height}


@dataclass(frozen=True)
class ContentBounds:
    """Tightest rectangle around the foreground pixels of a buffer"""
    left: int
    top: int
    width: int
    height: int
    center_x: float
    center_y: float
    has_content: bool

    @classmethod
    def full_image(cls, width: int, height: int) -> 'ContentBounds':
        """Bounds used when no foreground pixel was found."""
        return cls(0, 0, width, height, width / 2, height / 2, False)

    @classmethod
    def from_extent(cls, min_x: int, min_y: int, max_x: int, max_y: int) -> 'ContentBounds':
        """Bounds from inclusive min/max pixel coordinates."""
        width = max_x - min_x + 1
        height = max_y - min_y + 1
        return cls(min_x, min_y, width, height,
                   min_x + width / 2, min_y + height / 2, True)

    @property
    def rect(self) -> Rect:
        return Rect(self.left, self.top, self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'left': self.left, 'top': self.top,
            'width': self.width, 'height': self.height,
            'center_x': self.center_x, 'center_y': self.center_y,
            'has_content': self.has_content,
        }


@dataclass(frozen=True)
class CropOptions:
    """Padding and detection settings for content-driven cropping"""
    padding: int = 20
    padding_top: Optional[int] = None
    padding_right: Optional[int] = None
    padding_bottom: Optional[int] = None
    padding_left: Optional[int] = None
    tolerance: int = 10
    min_content_ratio: float = 0.0  # Guard against noise-driven micro crops; 0 disables it

    def __post_init__(self):
        for name in ('padding', 'padding_top', 'padding_right', 'padding_bottom', 'padding_left'):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if self.tolerance < 0:
            raise ValueError(f"tolerance must be non-negative, got {self.tolerance}")
        if not 0.0 <= self.min_content_ratio <= 1.0:
            raise ValueError(f"min_content_ratio must be within [0, 1], got {self.min_content_ratio}")

    def resolved_padding(self) -> Tuple[int, int, int, int]:
        """Per-side padding as (top, right, bottom, left)."""
        def side(value: Optional[int]) -> int:
            return self.padding if value is None else value

        return (side(self.padding_top), side(self.padding_right),
                side(self.padding_bottom), side(self.padding_left))


@dataclass(frozen=True)
class AspectCropSpec:
    """Target aspect ratio and focal position (0-100 %) of a fixed-ratio crop"""
    ratio_width: float
    ratio_height: float
    position_x: float = 50.0
    position_y: float = 50.0

    def __post_init__(self):
        for name in ('ratio_width', 'ratio_height'):
            value = getattr(self, name)
            if not _is_real(value) or not math.isfinite(value) or value <= 0:
                raise InvalidAspectRatioSpecError(f"{name} must be a positive number, got {value!r}")
        for name in ('position_x', 'position_y'):
            value = getattr(self, name)
            if not _is_real(value) or not 0 <= value <= 100:
                raise InvalidAspectRatioSpecError(f"{name} must be within [0, 100], got {value!r}")

    @property
    def ratio(self) -> float:
        return self.ratio_width / self.ratio_height

    @classmethod
    def parse(cls, ratio: str, position_x: float = 50.0,
              position_y: float = 50.0) -> 'AspectCropSpec':
        """
        Create an aspect crop from a "W:H" string such as "16:9"

        Raises:
            InvalidAspectRatioSpecError: If the string is not two positive numbers
        """
        parts = str(ratio).split(':')
        if len(parts) != 2:
            raise InvalidAspectRatioSpecError(f"Aspect ratio must look like 'W:H', got {ratio!r}")
        try:
            ratio_width, ratio_height = float(parts[0]), float(parts[1])
        except ValueError:
            raise InvalidAspectRatioSpecError(f"Aspect ratio is not numeric: {ratio!r}") from None
        return cls(ratio_width, ratio_height, position_x, position_y)


@dataclass(frozen=True)
class LayerTransform:
    """User-facing transform of one compositor layer, authored in preview space"""
    visible: bool = True
    scale: float = 1.0
    x: float = 0.0  # Pixel offset from canvas centre, preview space
    y: float = 0.0
    crop_enabled: bool = False
    crop_x: float = 0.0  # Percent of source image
    crop_y: float = 0.0
    crop_width: float = 100.0
    crop_height: float = 100.0
    name: Optional[str] = None

    def __post_init__(self):
        if not self.scale > 0 or not math.isfinite(self.scale):
            raise InvalidLayerTransformError(f"Layer scale must be a finite positive number, got {self.scale}")
        for attr in ('x', 'y'):
            value = getattr(self, attr)
            if not math.isfinite(value):
                raise InvalidLayerTransformError(f"Layer offset {attr} must be finite, got {value}")
        for attr in ('crop_x', 'crop_y', 'crop_width', 'crop_height'):
            value = getattr(self, attr)
            if not 0 <= value <= 100:
                raise InvalidLayerTransformError(f"{attr} must be within [0, 100], got {value}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LayerTransform':
        """Build from a camelCase or snake_case mapping, filling UI defaults."""
        def pick(snake: str, camel: str, default):
            if snake in data and data[snake] is not None:
                return data[snake]
            if camel in data and data[camel] is not None:
                return data[camel]
            return default

        return cls(
            visible=bool(pick('visible', 'visible', True)),
            scale=float(pick('scale', 'scale', 1.0)),
            x=float(pick('x', 'x', 0.0)),
            y=float(pick('y', 'y', 0.0)),
            crop_enabled=bool(pick('crop_enabled', 'cropEnabled', False)),
            crop_x=float(pick('crop_x', 'cropX', 0.0)),
            crop_y=float(pick('crop_y', 'cropY', 0.0)),
            crop_width=float(pick('crop_width', 'cropWidth', 100.0)),
            crop_height=float(pick('crop_height', 'cropHeight', 100.0)),
            name=pick('name', 'layerName', None),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'visible': self.visible, 'scale': self.scale, 'x': self.x, 'y': self.y,
            'crop_enabled': self.crop_enabled,
            'crop_x': self.crop_x, 'crop_y': self.crop_y,
            'crop_width': self.crop_width, 'crop_height': self.crop_height,
        }
        if self.name is not None:
            data['name'] = self.name
        return data


@dataclass(frozen=True)
class TrimPlacement:
    """Result of trimming content and fitting it onto a fixed-size canvas"""
    crop: Rect  # Trimmed region in source coordinates
    scale: float
    scaled_width: int
    scaled_height: int
    placement: Rect  # Where the scaled region lands on the canvas
    canvas_width: int
    canvas_height: int
    trimmed: bool = True  # False when the planner signalled a no-op

    def to_dict(self) -> Dict[str, Any]:
        return {
            'crop': self.crop.to_dict(),
            'scale': self.scale,
            'scaled_width': self.scaled_width,
            'scaled_height': self.scaled_height,
            'placement': self.placement.to_dict(),
            'canvas_width': self.canvas_width,
            'canvas_height': self.canvas_height,
            'trimmed': self.trimmed,
        }


@dataclass(frozen=True)
class LayerPlacement:
    """Absolute placement of a layer on the output canvas"""
    placement: Rect
    effective_scale: float
    crop: Optional[Rect] = None  # Source sub-crop, when enabled

    def to_dict(self) -> Dict[str, Any]:
        return {
            'crop': self.crop.to_dict() if self.crop else None,
            'placement': self.placement.to_dict(),
            'effective_scale': self.effective_scale,
        }
