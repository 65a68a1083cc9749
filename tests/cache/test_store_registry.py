from __future__ import annotations

import pytest

from fetchcache import (
    ExpiringBoundedStore,
    StoreRegistryError,
    list_stores,
    register_store,
    resolve_store,
    unregister_store,
)


@pytest.fixture(autouse=True)
def _isolated_registry():
    for name in list_stores():
        unregister_store(name)
    yield
    for name in list_stores():
        unregister_store(name)


def test_register_and_resolve_by_name_is_case_insensitive():
    store = ExpiringBoundedStore()
    register_store("  Session ", store)

    assert resolve_store("session") is store
    assert resolve_store("SESSION") is store
    assert list_stores() == ["session"]


def test_resolve_passes_instances_through():
    store = ExpiringBoundedStore()
    assert resolve_store(store) is store


def test_duplicate_registration_requires_overwrite():
    first = ExpiringBoundedStore()
    second = ExpiringBoundedStore()
    register_store("app", first)

    with pytest.raises(StoreRegistryError, match="already registered"):
        register_store("app", second)

    register_store("app", second, overwrite=True)
    assert resolve_store("app") is second


def test_unknown_and_empty_names_raise():
    with pytest.raises(StoreRegistryError, match="Unknown store"):
        resolve_store("missing")
    with pytest.raises(StoreRegistryError, match="non-empty"):
        register_store("   ", ExpiringBoundedStore())


def test_unregister_returns_store():
    store = ExpiringBoundedStore()
    register_store("tmp", store)
    assert unregister_store("tmp") is store
    assert unregister_store("tmp") is None
    assert list_stores() == []
