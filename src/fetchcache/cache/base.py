"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/base.py.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Protocol, Union

KeyMatcher = Union[Callable[[str], bool], re.Pattern[str], str]


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One stored value with insertion and expiration metadata."""

    value: Any
    inserted_at_s: float
    expires_at_s: float
    seq: int

    def is_expired(self, now: float) -> bool:
        return self.expires_at_s <= now


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Point-in-time counters for one store."""

    hits: int
    misses: int
    expirations: int
    evictions: int
    size: int
    max_entries: int


class CacheStore(Protocol):
    """Protocol implemented by stores consumed by fetch orchestrators."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(
        self,
        key: str,
        value: Any,
        ttl_s: float | None = None,
        *,
        generation: int | None = None,
    ) -> bool: ...

    def invalidate(self, key: str) -> None: ...

    def invalidate_pattern(self, matcher: KeyMatcher) -> int: ...

    def clear(self) -> None: ...

    def reserve(self, key: str) -> int: ...

    def release(self, key: str, generation: int) -> None: ...

    def keys(self) -> Iterator[str]: ...

    def __contains__(self, key: object) -> bool: ...


def compile_matcher(matcher: KeyMatcher) -> Callable[[str], bool]:
    """Normalize a predicate, compiled regex or regex string into a predicate."""
    if isinstance(matcher, str):
        matcher = re.compile(matcher)
    if isinstance(matcher, re.Pattern):
        pattern = matcher
        return lambda key: pattern.search(key) is not None
    return matcher
