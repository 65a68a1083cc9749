"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: fetching/__init__.py.
"""

from .contracts import FetchOptions, FetchState, FetchStatus
from .debounce import Debouncer
from .orchestrator import (
    FetchOrchestrator,
    StateListener,
    query_cache_key,
    query_orchestrator,
)

__all__ = [
    "FetchOptions",
    "FetchState",
    "FetchStatus",
    "Debouncer",
    "FetchOrchestrator",
    "StateListener",
    "query_cache_key",
    "query_orchestrator",
]
