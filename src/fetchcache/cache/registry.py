"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/registry.py.
"""

from __future__ import annotations

from threading import Lock

from ..errors import StoreRegistryError
from .base import CacheStore

_REGISTRY: dict[str, CacheStore] = {}
_LOCK = Lock()


def _normalize(name: str) -> str:
    key = name.strip().lower()
    if not key:
        raise StoreRegistryError("Store name must be non-empty")
    return key


def register_store(
    name: str,
    store: CacheStore,
    *,
    overwrite: bool = False,
) -> None:
    """Register one store instance under `name`."""
    key = _normalize(name)
    with _LOCK:
        if key in _REGISTRY and not overwrite:
            raise StoreRegistryError(f"Store already registered: {key}")
        _REGISTRY[key] = store


def unregister_store(name: str) -> CacheStore | None:
    """Remove a registered store; returns it when present."""
    key = _normalize(name)
    with _LOCK:
        return _REGISTRY.pop(key, None)


def resolve_store(store: str | CacheStore) -> CacheStore:
    """Resolve a store from a registered name or pass an instance through."""
    if not isinstance(store, str):
        return store

    key = _normalize(store)
    with _LOCK:
        resolved = _REGISTRY.get(key)
    if resolved is None:
        raise StoreRegistryError(f"Unknown store '{store}'")
    return resolved


def list_stores() -> list[str]:
    """List registered store names."""
    with _LOCK:
        return sorted(_REGISTRY.keys())
