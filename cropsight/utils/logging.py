"""
Logging utilities for CropSight

StructuredLogger appends a JSON metadata suffix to each message so batch
failures stay greppable. ProcessingStats folds batch results into a
summary for the console.
"""

import json
import logging
import sys
import time
from dataclasses import dataclass, field
from functools import partialmethod
from typing import Any, Dict, List, Optional

import colorlog

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

LEVEL_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

# Errors listed individually by log_summary
MAX_LISTED_ERRORS = 10

_CONSOLE_MARKER = '_cropsight_console'


class StructuredLogger:
    """Logger wrapper that renders keyword metadata as sorted JSON"""

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.metadata = dict(metadata or {})

    def bind(self, **metadata) -> 'StructuredLogger':
        """Child logger carrying extra default metadata"""
        return StructuredLogger(self.logger.name, {**self.metadata, **metadata})

    def render(self, message: str, **metadata) -> str:
        fields = {**self.metadata, **metadata}
        if not fields:
            return message
        return f"{message} | {json.dumps(fields, default=str, sort_keys=True)}"

    def log(self, level: int, message: str, **metadata):
        if self.logger.isEnabledFor(level):
            self.logger.log(level, self.render(message, **metadata))

    debug = partialmethod(log, logging.DEBUG)
    info = partialmethod(log, logging.INFO)
    warning = partialmethod(log, logging.WARNING)
    error = partialmethod(log, logging.ERROR)


@dataclass
class ProcessingStats:
    """Running totals for one batch run"""

    total_images: int = 0
    processed_images: int = 0
    succeeded_images: int = 0
    failed_images: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    processing_times: List[float] = field(default_factory=list)
    started: float = field(default_factory=time.monotonic)

    def set_total(self, total: int):
        self.total_images = total

    def add_result(self, succeeded: bool, processing_time: Optional[float] = None):
        self.processed_images += 1
        if succeeded:
            self.succeeded_images += 1
        else:
            self.failed_images += 1
        if processing_time is not None:
            self.processing_times.append(processing_time)

    def add_error(self, source: str, error: str):
        self.errors.append({'source': source, 'error': error, 'at': time.time()})

    def record_batch(self, results) -> 'ProcessingStats':
        """
        Fold BatchItemResult objects into the totals

        Args:
            results: Items returned by run_batch or batch_color_adjustments

        Returns:
            self, so construction and recording chain
        """
        self.set_total(self.total_images + len(results))
        for item in results:
            self.add_result(item.success, item.execution_time)
            if not item.success:
                self.add_error(str(item.source), item.error)
        return self

    def get_progress_percentage(self) -> float:
        if not self.total_images:
            return 0.0
        return 100.0 * self.processed_images / self.total_images

    def get_summary(self) -> Dict[str, Any]:
        times = self.processing_times
        return {
            'total_images': self.total_images,
            'processed_images': self.processed_images,
            'succeeded_images': self.succeeded_images,
            'failed_images': self.failed_images,
            'success_rate': (100.0 * self.succeeded_images / self.processed_images
                             if self.processed_images else 0),
            'errors': len(self.errors),
            'elapsed_time': time.monotonic() - self.started,
            'average_time_per_image': sum(times) / len(times) if times else 0.0,
        }

    def log_summary(self, target: Optional[logging.Logger] = None):
        target = target or logger
        summary = self.get_summary()
        target.info(
            "Processed %d/%d images: %d succeeded, %d failed in %.1fs",
            summary['processed_images'], summary['total_images'],
            summary['succeeded_images'], summary['failed_images'],
            summary['elapsed_time'],
        )
        for entry in self.errors[:MAX_LISTED_ERRORS]:
            target.error("  - %s: %s", entry['source'], entry['error'])
        hidden = len(self.errors) - MAX_LISTED_ERRORS
        if hidden > 0:
            target.error("  ... and %d more errors", hidden)


def setup_console_logging(level: str = "INFO", color: bool = True,
                          fmt: str = DEFAULT_FORMAT) -> logging.Handler:
    """
    Route root logging to stderr, colored when stderr is a terminal

    Calling it again replaces the handler installed by the previous call.

    Args:
        level: Level name such as "DEBUG"; unknown names mean INFO
        color: Allow colorlog formatting
        fmt: Record format in logging's %-style
    """
    if color and sys.stderr.isatty():
        colored = '%(log_color)s' + fmt.replace('%(message)s', '%(reset)s%(message)s')
        formatter = colorlog.ColoredFormatter(colored, log_colors=LEVEL_COLORS)
    else:
        formatter = logging.Formatter(fmt)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    setattr(handler, _CONSOLE_MARKER, True)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if getattr(h, _CONSOLE_MARKER, False)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
