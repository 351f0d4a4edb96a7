"""
Per-image batch execution for CropSight

Images are independent, so a batch is a plain fan-out over a thread pool.
A failure for one image is recorded on its result and never aborts the
siblings.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from tqdm import tqdm

from .color.color_matching import ColorAdjustment, calculate_adjustment
from .color.color_profile import MAX_SAMPLES, ColorProfile, analyze_profile
from .errors import ProcessingError
from .pixels import PixelBuffer
from ..utils.logging import StructuredLogger

logger = logging.getLogger(__name__)
batch_log = StructuredLogger(__name__)

T = TypeVar('T')


@dataclass
class BatchItemResult:
    """Outcome of processing one image in a batch."""
    index: int
    source: Any
    result: Any = None
    error: Optional[str] = None
    execution_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None


def _run_one(index: int, item: T, func: Callable[[T], Any]) -> BatchItemResult:
    start = time.perf_counter()
    try:
        result = func(item)
    except (ProcessingError, OSError, ValueError) as e:
        batch_log.error("Batch item failed", index=index, source=item, error=str(e))
        return BatchItemResult(index=index, source=item, error=str(e),
                               execution_time=time.perf_counter() - start)
    return BatchItemResult(index=index, source=item, result=result,
                           execution_time=time.perf_counter() - start)


def run_batch(items: Sequence[T], func: Callable[[T], Any],
              max_workers: Optional[int] = None,
              progress: bool = False,
              description: str = "Processing images") -> List[BatchItemResult]:
    """
    Apply func to every item concurrently

    Args:
        items: Inputs, one per image
        func: Pure per-image operation
        max_workers: Thread pool size (executor default when None)
        progress: Show a tqdm progress bar
        description: Progress bar label

    Returns:
        One BatchItemResult per item, in input order
    """
    results: List[Optional[BatchItemResult]] = [None] * len(items)
    if not items:
        return []

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="BatchWorker") as executor:
        futures = {
            executor.submit(_run_one, index, item, func): index
            for index, item in enumerate(items)
        }
        completed = as_completed(futures)
        if progress:
            completed = tqdm(completed, total=len(futures), desc=description)
        for future in completed:
            results[futures[future]] = future.result()

    failed = sum(1 for r in results if not r.success)
    logger.info(f"Batch finished: {len(results) - failed} succeeded, {failed} failed")
    return results


def batch_color_adjustments(reference: ColorProfile, targets: Sequence[PixelBuffer],
                            intensity: float = 100,
                            max_workers: Optional[int] = None,
                            progress: bool = False,
                            max_samples: int = MAX_SAMPLES) -> List[BatchItemResult]:
    """
    Color adjustments for a batch of targets against one reference profile

    Failed items carry their error and an identity adjustment so that the
    caller can keep the original image.
    """
    def adjust(target: PixelBuffer) -> ColorAdjustment:
        return calculate_adjustment(analyze_profile(target, max_samples), reference, intensity)

    results = run_batch(targets, adjust, max_workers=max_workers, progress=progress,
                        description="Matching colors")
    for item in results:
        if not item.success:
            item.result = ColorAdjustment()
    return results


@dataclass
class ColorMatchOutcome:
    """Profile and adjustment of one batch target; profile is None on failure."""
    profile: Optional[ColorProfile]
    adjustment: ColorAdjustment


def batch_color_match(reference: ColorProfile, sources: Sequence[Any],
                      load: Callable[[Any], PixelBuffer],
                      intensity: float = 100,
                      max_workers: Optional[int] = None,
                      progress: bool = False,
                      max_samples: int = MAX_SAMPLES) -> List[BatchItemResult]:
    """
    Load, profile and match every source inside its own batch item

    A source that cannot be loaded fails alone, with an identity adjustment.

    Args:
        reference: Profile to match against
        sources: Paths or other handles understood by load
        load: Decoder turning one source into a PixelBuffer
    """
    def match(source: Any) -> ColorMatchOutcome:
        profile = analyze_profile(load(source), max_samples)
        return ColorMatchOutcome(profile, calculate_adjustment(profile, reference, intensity))

    results = run_batch(sources, match, max_workers=max_workers, progress=progress,
                        description="Matching colors")
    for item in results:
        if not item.success:
            item.result = ColorMatchOutcome(None, ColorAdjustment())
    return results
