"""
Tests for batch execution and batch statistics.
"""

import pytest
import numpy as np

from cropsight.io.codec import CodecError
from cropsight.processing.batch import (
    BatchItemResult, batch_color_adjustments, batch_color_match, run_batch,
)
from cropsight.processing.color import analyze_profile
from cropsight.processing.errors import InvalidDimensionsError
from cropsight.processing.pixels import PixelBuffer
from cropsight.utils.logging import ProcessingStats


def gray(level):
    return PixelBuffer.from_array(np.full((16, 16, 3), level, dtype=np.uint8))


class TestRunBatch:
    """Test the thread pool fan-out."""

    def test_results_keep_input_order(self):
        """Results come back in input order regardless of completion order."""
        results = run_batch(list(range(20)), lambda x: x * 2, max_workers=4)
        assert [r.result for r in results] == [x * 2 for x in range(20)]
        assert [r.index for r in results] == list(range(20))
        assert all(r.success for r in results)

    def test_failure_is_isolated(self):
        """A processing error fails only its own item."""
        def work(x):
            if x == 2:
                raise InvalidDimensionsError("broken image")
            return x

        results = run_batch([1, 2, 3], work)
        assert results[0].result == 1
        assert results[2].result == 3
        assert not results[1].success
        assert "broken image" in results[1].error

    def test_unexpected_errors_propagate(self):
        """Errors outside the processing hierarchy are not swallowed."""
        def work(x):
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            run_batch([1], work)

    def test_empty_batch(self):
        """An empty batch returns no results."""
        assert run_batch([], lambda x: x) == []

    def test_progress_bar(self):
        """The tqdm progress bar does not change results."""
        results = run_batch([1, 2], lambda x: x, progress=True)
        assert [r.result for r in results] == [1, 2]


class TestBatchColorAdjustments:
    """Test matching a batch against one reference."""

    def test_adjustments_per_target(self):
        """Each target gets its own adjustment against the shared reference."""
        reference = analyze_profile(gray(200))
        results = batch_color_adjustments(reference, [gray(200), gray(100)], max_workers=2)
        assert results[0].result.brightness_multiplier == pytest.approx(1.0)
        assert results[1].result.brightness_multiplier == pytest.approx(2.0)

    def test_failed_target_gets_identity(self):
        """Failed targets carry an identity adjustment."""
        reference = analyze_profile(gray(200))
        results = batch_color_adjustments(reference, [gray(100)], intensity=-1)
        assert not results[0].success
        assert results[0].result.is_identity


class TestBatchColorMatch:
    """Test matching a batch of sources that are loaded per item."""

    def test_load_failure_is_isolated(self):
        """A source that cannot be loaded fails alone with an identity adjustment."""
        images = {"a.png": gray(100), "c.png": gray(200)}

        def load(name):
            if name not in images:
                raise CodecError(f"Could not decode image: {name}")
            return images[name]

        reference = analyze_profile(gray(200))
        results = batch_color_match(reference, ["a.png", "b.png", "c.png"], load, max_workers=3)

        assert [r.success for r in results] == [True, False, True]
        assert results[0].result.adjustment.brightness_multiplier == pytest.approx(2.0)
        assert results[0].result.profile.brightness == pytest.approx(analyze_profile(gray(100)).brightness)
        assert "b.png" in results[1].error
        assert results[1].result.profile is None
        assert results[1].result.adjustment.is_identity
        assert results[2].result.adjustment.brightness_multiplier == pytest.approx(1.0)


class TestProcessingStats:
    """Test batch statistics."""

    def test_record_batch(self):
        """Batch results fold into totals, rates and error entries."""
        results = [
            BatchItemResult(index=0, source="a.png", result=1, execution_time=0.5),
            BatchItemResult(index=1, source="b.png", error="decode failed", execution_time=1.5),
        ]
        stats = ProcessingStats().record_batch(results)
        summary = stats.get_summary()
        assert summary['total_images'] == 2
        assert summary['succeeded_images'] == 1
        assert summary['failed_images'] == 1
        assert summary['success_rate'] == pytest.approx(50.0)
        assert summary['average_time_per_image'] == pytest.approx(1.0)
        assert stats.errors[0]['source'] == "b.png"
        assert stats.get_progress_percentage() == pytest.approx(100.0)

    def test_empty_stats(self):
        """Empty statistics report zero progress and success rate."""
        stats = ProcessingStats()
        assert stats.get_progress_percentage() == 0.0
        assert stats.get_summary()['success_rate'] == 0
