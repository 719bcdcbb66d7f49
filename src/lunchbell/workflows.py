"""
Temporal workflow — LunchDispatchWorkflow.

The durable version of BatchDispatcher.run(). The Temporal server persists
the workflow's progress at every `await`, so a worker restart in the middle
of a long dispatch resumes at the next unfired batch instead of starting over
or losing the tail.

Key constraints inside a workflow:
  - Must be **deterministic**: the shuffle uses `workflow.random()` and the
    fire times come from `workflow.now()`, never `random` or the system clock.
  - `asyncio.sleep` inside a workflow is a durable timer on the server.
  - Use `workflow.logger` instead of the stdlib `logging` module.
"""

import asyncio
from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

# ── Sandbox-safe imports ─────────────────────────────────────────────
# The workflow sandbox intercepts imports to enforce determinism. Pydantic and
# our own modules are only used for data modelling and pure computation here,
# so they are passed through.
with workflow.unsafe.imports_passed_through():
    from lunchbell.activities import deliver_batch, signal_displays
    from lunchbell.domain.batching import failed_batch_result, plan_batches
    from lunchbell.domain.models import (
        BatchDeliveryResult,
        BatchPlan,
        DeliverBatchInput,
        DispatchReport,
        DispatchRequest,
        DisplaySignalInput,
        DisplaySignalResult,
    )


@workflow.defn
class LunchDispatchWorkflow:
    """Fans one lunch announcement out to every subscriber in timed batches.

    Execution flow:
        1. plan_batches() with the workflow's deterministic RNG
        2. signal_displays activity, started alongside batch 0
        3. for batch k: durable timer until start + k * cooldown,
           then start its deliver_batch activity without awaiting it
        4. gather every activity and return a DispatchReport

    Supports:
        - **Query** `get_status`: planned vs. fired batches.
    No cancel signal: once started, every batch fires.
    """

    def __init__(self) -> None:
        self.dispatch_id = ""
        self.plan: list[BatchPlan] = []
        self.fired = 0

    @workflow.query
    def get_status(self) -> dict:
        return {
            "dispatch_id": self.dispatch_id,
            "planned_batches": len(self.plan),
            "fired_batches": self.fired,
            "done": bool(self.plan) and self.fired == len(self.plan),
        }

    @workflow.run
    async def run(self, req: DispatchRequest) -> DispatchReport:
        self.dispatch_id = req.dispatch_id or workflow.info().workflow_id
        by_identity = {subscriber.identity: subscriber for subscriber in req.subscribers}
        self.plan = plan_batches(list(by_identity), req.batch_size, req.cooldown_seconds, workflow.random())

        # A retried batch would re-notify everyone it already reached, so each
        # activity gets exactly one attempt. Per-send failures never fail it.
        activity_opts = {
            "start_to_close_timeout": timedelta(minutes=2),
            "retry_policy": RetryPolicy(maximum_attempts=1),
        }

        workflow.logger.info(
            "Dispatch %s: %d subscribers in %d batches every %.1fs",
            self.dispatch_id,
            len(by_identity),
            len(self.plan),
            req.cooldown_seconds,
        )

        display_handle = None
        if req.displays:
            display_handle = workflow.start_activity(
                signal_displays,
                DisplaySignalInput(dispatch_id=self.dispatch_id, rooms=req.displays),
                **activity_opts,
            )

        start = workflow.now()
        batch_handles = []
        for batch in self.plan:
            delay = (start + timedelta(seconds=batch.offset_seconds) - workflow.now()).total_seconds()
            if delay > 0:
                await asyncio.sleep(delay)
            batch_handles.append(
                workflow.start_activity(
                    deliver_batch,
                    DeliverBatchInput(
                        dispatch_id=self.dispatch_id,
                        index=batch.index,
                        offset_seconds=batch.offset_seconds,
                        subscribers=[by_identity[identity] for identity in batch.identities],
                        message=req.message,
                    ),
                    **activity_opts,
                )
            )
            self.fired += 1

        batches: list[BatchDeliveryResult] = []
        for batch, outcome in zip(self.plan, await asyncio.gather(*batch_handles, return_exceptions=True)):
            if isinstance(outcome, BaseException):
                workflow.logger.warning("Dispatch %s batch %d failed: %s", self.dispatch_id, batch.index, outcome)
                outcome = failed_batch_result(batch, by_identity)
            batches.append(outcome)

        displays = DisplaySignalResult()
        if display_handle is not None:
            try:
                displays = await display_handle
            except Exception:
                workflow.logger.exception("Dispatch %s display signals failed", self.dispatch_id)
                displays = DisplaySignalResult(failed=list(req.displays))

        report = DispatchReport(dispatch_id=self.dispatch_id, batches=batches, displays=displays)
        workflow.logger.info(
            "Dispatch %s completed: %d sends, %d failed", self.dispatch_id, report.attempted, report.failed
        )
        return report
