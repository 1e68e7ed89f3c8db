"""
Pipeline driver and progress reporting.
"""

from .driver import PushPipeline, build_pipeline
from .progress import ProgressReporter

__all__ = [
    "PushPipeline",
    "ProgressReporter",
    "build_pipeline",
]
