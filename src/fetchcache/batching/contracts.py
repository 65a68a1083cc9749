"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Options for the batch processor.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

FailurePolicy = Literal["drop", "requeue", "propagate"]


class BatchOptions(BaseModel):
    """
    Batch processor configuration.

    Attributes:
        batch_size: Maximum items handed to the handler per drain.
        delay_s: Quiet period before each drain fires.
        failure_policy: What happens to a chunk whose handler raised:
            ``drop`` discards it and keeps draining, ``requeue`` puts it back
            at the head of the queue, ``propagate`` stops draining and
            surfaces the error from ``join()``.
        max_requeues: Consecutive failures tolerated under ``requeue`` before
            the chunk is dropped.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    batch_size: int = Field(default=10, gt=0)
    delay_s: float = Field(default=0.1, ge=0)
    failure_policy: FailurePolicy = "drop"
    max_requeues: int = Field(default=3, ge=0)
