"""
Batch planning for the lunch fan-out.

Planning also runs inside LunchDispatchWorkflow, so it MUST be deterministic:
no I/O, no system clock, and randomness only from the `rng` handed in
(`workflow.random()` in a workflow, `random.Random()` in process).

Every batch's fire time is computed upfront as `index * cooldown` from the
start of the dispatch. Batches are evenly spaced; a slow batch never pushes
the later ones back.
"""

import random
from typing import Mapping, Sequence

from lunchbell.domain.models import BatchDeliveryResult, BatchPlan, Subscriber


def plan_batches(
    identities: Sequence[str],
    batch_size: int,
    cooldown_seconds: float,
    rng: random.Random,
) -> list[BatchPlan]:
    """Shuffle `identities` and cut them into timed batches of at most `batch_size`.

    The shuffle is re-rolled on each call so nobody is always at the tail of
    the last batch.

    Examples:
        5 identities, batch_size=2, cooldown=1.0
        → 3 batches of sizes [2, 2, 1] at offsets [0.0, 1.0, 2.0]
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if cooldown_seconds < 0:
        raise ValueError(f"cooldown_seconds must be >= 0, got {cooldown_seconds}")

    order = list(identities)
    rng.shuffle(order)

    return [
        BatchPlan(
            index=index,
            offset_seconds=index * cooldown_seconds,
            identities=order[start : start + batch_size],
        )
        for index, start in enumerate(range(0, len(order), batch_size))
    ]


def failed_batch_result(batch: BatchPlan, subscribers: Mapping[str, Subscriber]) -> BatchDeliveryResult:
    """Result for a batch whose delivery crashed as a whole: every send counts as failed."""
    sends = sum(len(subscribers[identity].notifications) for identity in batch.identities)
    return BatchDeliveryResult(index=batch.index, fired_at=batch.offset_seconds, attempted=sends, failed=sends)
