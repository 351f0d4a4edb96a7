"""
Content bounds detection for CropSight

Finds the tightest rectangle around the "foreground" of an image. Three
interchangeable strategies are tried in priority order:

1. Alpha: transparency above the tolerance marks a pixel as content.
2. Palette: indexed images are expanded to full channel depth first and then
   handled like (1).
3. Background distance: for opaque images the background colour is taken from
   the corners and anything far enough away from it is content.

Transparency alone is unreliable for opaque and palette sources, which is why
the fallback chain exists.
"""

from collections import Counter
from typing import Callable, Optional, Tuple
import logging

import numpy as np

from ..errors import ProcessingError
from ..pixels import PixelBuffer, PixelSampler
from .models import ContentBounds

logger = logging.getLogger(__name__)

# Expands an indexed buffer into RGB(A); raises on failure
PaletteExpander = Callable[[PixelBuffer], PixelBuffer]


def bounds_from_mask(mask: np.ndarray) -> ContentBounds:
    """
    Reduce a boolean foreground mask to its bounding box

    Args:
        mask: (H, W) boolean array, True for foreground pixels

    Returns:
        ContentBounds; full-image bounds with has_content=False when the
        mask is empty
    """
    height, width = mask.shape
    rows = np.flatnonzero(mask.any(axis=1))
    if rows.size == 0:
        return ContentBounds.full_image(width, height)
    cols = np.flatnonzero(mask.any(axis=0))
    return ContentBounds.from_extent(int(cols[0]), int(rows[0]), int(cols[-1]), int(rows[-1]))


class AlphaBoundsStrategy:
    """Foreground = alpha strictly above tolerance (0-255)."""

    name = "alpha"

    def applies_to(self, buffer: PixelBuffer) -> bool:
        return buffer.has_alpha

    def detect(self, buffer: PixelBuffer, tolerance: int) -> ContentBounds:
        alpha = PixelSampler(buffer).alpha_plane()
        return bounds_from_mask(alpha > tolerance)


class PaletteBoundsStrategy:
    """
    Expand an indexed buffer and rerun alpha detection on the result

    Returns None when expansion is impossible so the caller can fall through
    to the next strategy.
    """

    name = "palette"

    def __init__(self, expander: Optional[PaletteExpander] = None):
        self.expander = expander
        self._alpha = AlphaBoundsStrategy()

    def applies_to(self, buffer: PixelBuffer) -> bool:
        return buffer.is_palette and not buffer.has_alpha

    def expand(self, buffer: PixelBuffer) -> Optional[PixelBuffer]:
        if self.expander is None:
            logger.debug("No palette expander configured, skipping palette strategy")
            return None
        try:
            expanded = self.expander(buffer)
        except (ProcessingError, OSError, ValueError) as e:
            logger.warning(f"Palette expansion failed, falling back to background detection: {e}")
            return None
        if not expanded.has_alpha:
            logger.debug("Expanded palette image carries no transparency")
            return None
        return expanded

    def detect(self, buffer: PixelBuffer, tolerance: int) -> Optional[ContentBounds]:
        expanded = self.expand(buffer)
        if expanded is None:
            return None
        return self._alpha.detect(expanded, tolerance)


class BackgroundDistanceStrategy:
    """Foreground = Euclidean RGB distance from the corner colour above tolerance."""

    name = "background"

    def applies_to(self, buffer: PixelBuffer) -> bool:
        return True

    def background_color(self, buffer: PixelBuffer) -> Tuple[int, int, int]:
        """
        Pick the assumed background colour from the four corners

        The most frequent corner colour wins; with no majority the top-left
        corner is used.
        """
        corners = PixelSampler(buffer).corners()
        color, count = Counter(corners).most_common(1)[0]
        if count == 1:
            return corners[0]
        return color

    def detect(self, buffer: PixelBuffer, tolerance: int) -> ContentBounds:
        background = np.array(self.background_color(buffer), dtype=np.int32)
        rgb = PixelSampler(buffer).rgb_plane().astype(np.int32)
        distance_sq = ((rgb - background) ** 2).sum(axis=2)
        return bounds_from_mask(distance_sq > float(tolerance) ** 2)


class ContentBoundsAnalyzer:
    """
    Selects a detection strategy for a buffer and runs it

    Stateless apart from the optional palette expander, so one instance can
    be shared across threads.
    """

    def __init__(self, expander: Optional[PaletteExpander] = None):
        self.alpha = AlphaBoundsStrategy()
        self.palette = PaletteBoundsStrategy(expander)
        self.background = BackgroundDistanceStrategy()

    def select_strategy(self, buffer: PixelBuffer) -> str:
        """Name of the first strategy that claims the buffer."""
        for strategy in (self.alpha, self.palette, self.background):
            if strategy.applies_to(buffer):
                return strategy.name
        return self.background.name

    def analyze(self, buffer: PixelBuffer, tolerance: int) -> ContentBounds:
        """
        Detect content bounds

        Args:
            buffer: Decoded image
            tolerance: Alpha threshold (0-255) or RGB distance threshold

        Returns:
            ContentBounds of the foreground pixels
        """
        if tolerance < 0:
            raise ValueError(f"tolerance must be non-negative, got {tolerance}")
        strategy = self.select_strategy(buffer)

        if strategy == self.alpha.name:
            bounds = self.alpha.detect(buffer, tolerance)
        elif strategy == self.palette.name:
            bounds = self.palette.detect(buffer, tolerance)
            if bounds is None:
                strategy = self.background.name
                bounds = self.background.detect(buffer, tolerance)
        else:
            bounds = self.background.detect(buffer, tolerance)

        logger.debug(
            f"Content bounds via {strategy}: {bounds.left},{bounds.top} "
            f"{bounds.width}x{bounds.height} (content={bounds.has_content})"
        )
        return bounds


def analyze_content_bounds(buffer: PixelBuffer, tolerance: int,
                           expander: Optional[PaletteExpander] = None) -> ContentBounds:
    """Convenience wrapper around ContentBoundsAnalyzer.analyze."""
    return ContentBoundsAnalyzer(expander).analyze(buffer, tolerance)
