"""
Utility modules for CropSight
"""

from .logging import StructuredLogger, ProcessingStats, setup_console_logging

__all__ = [
    "StructuredLogger",
    "ProcessingStats",
    "setup_console_logging",
]
