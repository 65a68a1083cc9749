"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error taxonomy shared by the store, orchestrator and batch processor.
"""

from __future__ import annotations


class FetchCacheError(RuntimeError):
    """Base class for all fetchcache errors."""


class OperationAborted(FetchCacheError):
    """
    Raised by a producer that observed its cancellation token.

    The orchestrator treats this as a silent no-op, never as a failure.
    """


class StoreRegistryError(FetchCacheError):
    """Raised when store registration or resolution fails."""


class BatchHandlerError(FetchCacheError):
    """Raised from ``BatchProcessor.join`` under the propagate policy."""

    def __init__(self, message: str, *, items: list[object]) -> None:
        super().__init__(message)
        self.items = items
