"""
Dispatch backends.

Triggering lunch must return right away, so the trigger hands a
DispatchRequest to a backend and gets back only an id:

  - LocalDispatchBackend runs BatchDispatcher.run() as a background task in
    this process. In-flight runs are lost if the process dies.
  - TemporalDispatchBackend starts a LunchDispatchWorkflow; the worker runs
    the batches on durable timers, so a restart does not lose the tail of a
    dispatch.

Overlapping submits are independent runs. Nothing deduplicates them.
"""

import asyncio
import logging
import uuid
from typing import Protocol

from temporalio.client import Client

from lunchbell.domain.models import DispatchReport, DispatchRequest
from lunchbell.services.dispatcher import BatchDispatcher

logger = logging.getLogger(__name__)


def new_dispatch_id() -> str:
    return f"lunch-{uuid.uuid4().hex[:12]}"


class DispatchBackend(Protocol):
    async def submit(self, request: DispatchRequest) -> str:
        """Start a dispatch and return its id without waiting for it."""
        ...

    async def drain(self) -> None:
        """Wait for dispatches this process is running itself."""
        ...


class LocalDispatchBackend:
    def __init__(self, dispatcher: BatchDispatcher) -> None:
        self.dispatcher = dispatcher
        # asyncio only keeps weak references to tasks; hold them until done
        self._inflight: set[asyncio.Task[DispatchReport]] = set()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def submit(self, request: DispatchRequest) -> str:
        if not request.dispatch_id:
            request = request.model_copy(update={"dispatch_id": new_dispatch_id()})
        task = asyncio.create_task(self.dispatcher.run(request), name=request.dispatch_id)
        self._inflight.add(task)
        task.add_done_callback(self._finished)
        return request.dispatch_id

    def _finished(self, task: "asyncio.Task[DispatchReport]") -> None:
        self._inflight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Dispatch %s crashed", task.get_name(), exc_info=task.exception())

    async def drain(self) -> None:
        if self._inflight:
            logger.info("Waiting for %d in-flight dispatches", len(self._inflight))
            await asyncio.gather(*self._inflight, return_exceptions=True)


class TemporalDispatchBackend:
    def __init__(self, client: Client, task_queue: str) -> None:
        self.client = client
        self.task_queue = task_queue

    async def submit(self, request: DispatchRequest) -> str:
        # imported here so the sandboxed workflow module is only loaded when used
        from lunchbell.workflows import LunchDispatchWorkflow

        dispatch_id = request.dispatch_id or new_dispatch_id()
        request = request.model_copy(update={"dispatch_id": dispatch_id})
        await self.client.start_workflow(
            LunchDispatchWorkflow.run,
            request,
            id=dispatch_id,
            task_queue=self.task_queue,
        )
        logger.info("Started workflow %s on %r", dispatch_id, self.task_queue)
        return dispatch_id

    async def drain(self) -> None:
        # the worker owns running workflows; nothing to wait for here
        return None
