"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/__init__.py.
"""

from .base import CacheEntry, CacheStats, CacheStore, KeyMatcher
from .inmemory import ExpiringBoundedStore
from .registry import list_stores, register_store, resolve_store, unregister_store

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "KeyMatcher",
    "ExpiringBoundedStore",
    "register_store",
    "unregister_store",
    "resolve_store",
    "list_stores",
]
