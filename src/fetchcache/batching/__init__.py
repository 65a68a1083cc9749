"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: batching/__init__.py.
"""

from .contracts import BatchOptions, FailurePolicy
from .processor import BatchHandler, BatchProcessor, FailureCallback

__all__ = [
    "BatchOptions",
    "FailurePolicy",
    "BatchHandler",
    "BatchProcessor",
    "FailureCallback",
]
