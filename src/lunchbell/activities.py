"""
Temporal activities — thin wrappers delegating to the service layer.

An **activity** is where side-effects happen. Both activities here call into
the same BatchDispatcher the in-process backend uses, so a batch delivered by
a workflow behaves exactly like one delivered locally: every send is
attempted, failures are logged and counted, and the activity itself only
fails on something unexpected.

Each activity accepts a single Pydantic model as input, serialized by the
pydantic_data_converter configured on both the worker and the client.
"""

import logging

from temporalio import activity

from lunchbell.domain.models import (
    BatchDeliveryResult,
    DeliverBatchInput,
    DisplaySignalInput,
    DisplaySignalResult,
)
from lunchbell.services.factory import ServiceFactory

logger = logging.getLogger(__name__)


@activity.defn
async def deliver_batch(input: DeliverBatchInput) -> BatchDeliveryResult:
    """Notify one batch of subscribers on all of their channels."""
    logger.info(
        "Activity deliver_batch started for %s batch %d (%d subscribers)",
        input.dispatch_id,
        input.index,
        len(input.subscribers),
    )
    result = await ServiceFactory.get_dispatcher().deliver_batch(
        input.index,
        input.subscribers,
        input.message,
        fired_at=input.offset_seconds,
    )
    logger.info(
        "Activity deliver_batch completed for %s batch %d: %d sends, %d failed",
        input.dispatch_id,
        input.index,
        result.attempted,
        result.failed,
    )
    return result


@activity.defn
async def signal_displays(input: DisplaySignalInput) -> DisplaySignalResult:
    """Send the lunch signal to every registered display room."""
    logger.info("Activity signal_displays started for %s (%d rooms)", input.dispatch_id, len(input.rooms))
    return await ServiceFactory.get_dispatcher().signal_displays(input.rooms)
