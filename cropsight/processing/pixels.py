"""
Pixel buffer model and sampling helpers for CropSight

A PixelBuffer is the decoded form every analysis step works on: an
(height, width, channels) uint8 array plus the format metadata the codec
reported when decoding it.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple
import logging

import numpy as np

from .errors import InvalidDimensionsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PixelBuffer:
    """Decoded raster image, owned by the caller for one operation"""
    width: int
    height: int
    channels: int  # 3 (RGB) or 4 (RGBA)
    data: np.ndarray = field(repr=False, compare=False)
    has_alpha: bool = False
    is_palette: bool = False  # Low bit depth indexed source
    source: Any = field(default=None, repr=False, compare=False)  # Codec handle for re-expansion

    def __post_init__(self):
        if not self.width or not self.height:
            raise InvalidDimensionsError(
                f"Image dimensions are missing or zero: {self.width}x{self.height}"
            )
        if self.width < 0 or self.height < 0:
            raise InvalidDimensionsError(f"Negative image dimensions: {self.width}x{self.height}")
        if self.channels not in (3, 4):
            raise InvalidDimensionsError(f"Unsupported channel count: {self.channels}")
        if self.data.size != self.width * self.height * self.channels:
            raise InvalidDimensionsError(
                f"Buffer holds {self.data.size} values, expected "
                f"{self.width}x{self.height}x{self.channels}"
            )
        if self.has_alpha and self.channels != 4:
            raise InvalidDimensionsError("Alpha channel declared on a buffer without 4 channels")

    @classmethod
    def from_array(cls, array: np.ndarray, has_alpha: Optional[bool] = None,
                   is_palette: bool = False, source: Any = None) -> 'PixelBuffer':
        """
        Build a buffer from an (H, W, C) or (H, W) uint8 array

        Grayscale arrays are widened to RGB. Alpha is assumed present for
        4-channel arrays unless stated otherwise.
        """
        arr = np.asarray(array)
        if arr.ndim == 2:
            arr = np.repeat(arr[:, :, None], 3, axis=2)
        if arr.ndim != 3:
            raise InvalidDimensionsError(f"Expected a 2D or 3D array, got shape {arr.shape}")
        if arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255).astype(np.uint8)
        arr = np.ascontiguousarray(arr)
        if not arr.flags.writeable:
            # Arrays backed by PIL images are read-only; OpenCV wants owned memory
            arr = arr.copy()

        height, width, channels = arr.shape
        if has_alpha is None:
            has_alpha = channels == 4
        return cls(
            width=width,
            height=height,
            channels=channels,
            data=arr,
            has_alpha=has_alpha,
            is_palette=is_palette,
            source=source,
        )

    @property
    def total_pixels(self) -> int:
        return self.width * self.height

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.height, self.width, self.channels


class PixelSampler:
    """
    Per-pixel channel access over a PixelBuffer

    All accessors return views or small copies; the underlying buffer is
    never modified.
    """

    def __init__(self, buffer: PixelBuffer):
        self.buffer = buffer
        self._pixels = buffer.data.reshape(buffer.height, buffer.width, buffer.channels)

    def pixel(self, x: int, y: int) -> Tuple[int, ...]:
        """Return all channel values of the pixel at (x, y)."""
        if not (0 <= x < self.buffer.width and 0 <= y < self.buffer.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.buffer.width}x{self.buffer.height}")
        return tuple(int(v) for v in self._pixels[y, x])

    def channel(self, x: int, y: int, channel: int) -> int:
        return self.pixel(x, y)[channel]

    def alpha_plane(self) -> np.ndarray:
        """Alpha channel as an (H, W) uint8 array; opaque images report 255."""
        if self.buffer.channels == 4:
            return self._pixels[:, :, 3]
        return np.full((self.buffer.height, self.buffer.width), 255, dtype=np.uint8)

    def rgb_plane(self) -> np.ndarray:
        """Color channels as an (H, W, 3) uint8 view."""
        return self._pixels[:, :, :3]

    def corners(self) -> Tuple[Tuple[int, int, int], ...]:
        """RGB values of the top-left, top-right, bottom-left and bottom-right pixels."""
        w, h = self.buffer.width, self.buffer.height
        coords = [(0, 0), (w - 1, 0), (0, h - 1), (w - 1, h - 1)]
        return tuple(self.pixel(x, y)[:3] for x, y in coords)

    def sample_stride(self, max_samples: int = 10000) -> int:
        """Linear stride that keeps the sample count at roughly max_samples."""
        return max(1, self.buffer.total_pixels // max_samples)

    def sample_rgb(self, max_samples: int = 10000) -> np.ndarray:
        """
        Take every n-th pixel in row-major order

        Args:
            max_samples: Approximate upper bound on the number of samples

        Returns:
            (N, 3) float64 array of RGB values normalised to 0-1
        """
        stride = self.sample_stride(max_samples)
        flat = self.rgb_plane().reshape(-1, 3)
        samples = flat[::stride].astype(np.float64) / 255.0
        logger.debug(f"Sampled {len(samples)} of {self.buffer.total_pixels} pixels (stride {stride})")
        return samples
