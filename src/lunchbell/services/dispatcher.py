"""
Batch dispatcher — the lunch fan-out.

One dispatch run:
  1. plan_batches() shuffles the subscribers and fixes every batch's fire
     offset upfront (index * cooldown from the start of the run).
  2. Batch 0 fires at once. For each later batch the run sleeps until its
     offset and fires it. Firing starts the batch's sends and moves on; it
     does not wait for them, so a slow provider never delays the next batch.
  3. When every batch has fired, the run gathers the outstanding batches and
     reports how many sends were attempted and how many failed.

Failures are contained per send: a sender error is logged and counted, and
the rest of the batch and every later batch carry on.

Time comes from an injected Clock so tests can run a many-batch dispatch on
virtual time, without waiting on the wall clock.
"""

import asyncio
import logging
import random
from typing import Protocol, Sequence

from lunchbell.domain.batching import plan_batches
from lunchbell.domain.models import (
    BatchDeliveryResult,
    Channel,
    DispatchReport,
    DispatchRequest,
    DisplaySignalResult,
    LunchMessage,
    Subscriber,
)
from lunchbell.services.senders import DisplaySender, SlackSender, SmsSender

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> float:
        """Monotonic seconds."""
        ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    def now(self) -> float:
        return asyncio.get_running_loop().time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class BatchDispatcher:
    def __init__(
        self,
        slack: SlackSender,
        sms: SmsSender,
        displays: DisplaySender,
        *,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.slack = slack
        self.sms = sms
        self.displays = displays
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()

    async def run(self, request: DispatchRequest) -> DispatchReport:
        """Execute one dispatch to completion and return its report."""
        start = self.clock.now()
        by_identity = {subscriber.identity: subscriber for subscriber in request.subscribers}
        plan = plan_batches(list(by_identity), request.batch_size, request.cooldown_seconds, self.rng)
        logger.info(
            "Dispatch %s: %d subscribers in %d batches of <= %d every %.1fs",
            request.dispatch_id,
            len(by_identity),
            len(plan),
            request.batch_size,
            request.cooldown_seconds,
        )

        display_task = asyncio.create_task(self.signal_displays(request.displays))
        batch_tasks: list[asyncio.Task[BatchDeliveryResult]] = []
        for batch in plan:
            delay = start + batch.offset_seconds - self.clock.now()
            if delay > 0:
                await self.clock.sleep(delay)
            fired_at = self.clock.now() - start
            batch_tasks.append(
                asyncio.create_task(
                    self.deliver_batch(
                        batch.index,
                        [by_identity[identity] for identity in batch.identities],
                        request.message,
                        fired_at=fired_at,
                    )
                )
            )

        report = DispatchReport(
            dispatch_id=request.dispatch_id,
            batches=list(await asyncio.gather(*batch_tasks)),
            displays=await display_task,
        )
        logger.info(
            "Dispatch %s done: %d sends, %d failed", request.dispatch_id, report.attempted, report.failed
        )
        return report

    async def deliver_batch(
        self,
        index: int,
        subscribers: Sequence[Subscriber],
        message: LunchMessage,
        *,
        fired_at: float = 0.0,
    ) -> BatchDeliveryResult:
        """Send `message` on every channel of every subscriber in one batch, concurrently."""
        sends = [
            (subscriber.identity, channel)
            for subscriber in subscribers
            for channel in subscriber.channels
        ]
        logger.info("Batch %d: notifying %d subscribers (%d sends)", index, len(subscribers), len(sends))
        outcomes = await asyncio.gather(*(self._send(identity, channel, message) for identity, channel in sends))
        return BatchDeliveryResult(
            index=index,
            fired_at=fired_at,
            attempted=len(sends),
            failed=outcomes.count(False),
        )

    async def signal_displays(self, rooms: Sequence[str]) -> DisplaySignalResult:
        result = DisplaySignalResult()
        if not rooms:
            return result
        outcomes = await asyncio.gather(*(self.displays.signal(room) for room in rooms), return_exceptions=True)
        for room, outcome in zip(rooms, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Display signal to %s failed: %s", room, outcome)
                result.failed.append(room)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.signalled.append(room)
        return result

    async def _send(self, identity: str, channel: Channel, message: LunchMessage) -> bool:
        try:
            if channel is Channel.SLACK:
                await self.slack.send(identity, message.headline, message.attachments)
            else:
                await self.sms.send(identity, message.text)
        except Exception as exc:
            logger.warning("Notifying %s on %s failed: %s", identity, channel.value, exc)
            return False
        return True
