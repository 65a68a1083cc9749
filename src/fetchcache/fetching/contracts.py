"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Options and observed state of the fetch orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

FetchStatus = Literal["idle", "loading", "success", "failed"]


class FetchOptions(BaseModel):
    """
    Per-orchestrator configuration.

    Attributes:
        cache_key: Store key the fetched value lives under.
        cache_ttl_s: Seconds until a stored value is considered stale.
        debounce_s: Trailing-edge coalescing window for ``refresh``.
        enable_lazy_loading: Toggles the pagination scaffolding.
        page_size: Page size handed to paginated producers.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    cache_key: str = Field(default="default", min_length=1)
    cache_ttl_s: float = Field(default=300.0, gt=0)
    debounce_s: float = Field(default=0.3, ge=0)
    enable_lazy_loading: bool = True
    page_size: int = Field(default=50, gt=0)


@dataclass(slots=True)
class FetchState:
    """Observed state of one orchestrator."""

    data: Any = None
    loading: bool = False
    error: BaseException | None = None
    page: int = 0
    has_more: bool = True
    from_cache: bool = False
    status: FetchStatus = "idle"
