"""
Temporal worker — polls the lunch dispatch task queue.

Runs LunchDispatchWorkflow and its two activities. The activities build their
senders through ServiceFactory, so the worker needs the same provider
environment variables as the HTTP app (see lunchbell.config).

Run with:
    python -m lunchbell.worker
"""

import asyncio
import logging

from temporalio.client import Client

# The same data_converter must be used on both the worker AND the client, or
# the Pydantic payloads will not deserialize.
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.worker import Worker

from lunchbell.activities import deliver_batch, signal_displays
from lunchbell.config import configure_logging
from lunchbell.services.factory import ServiceFactory
from lunchbell.workflows import LunchDispatchWorkflow


async def run_worker() -> None:
    settings = ServiceFactory.get_settings()
    configure_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    client = await Client.connect(settings.temporal_address, data_converter=pydantic_data_converter)
    logger.info("Connected to Temporal — starting worker on queue %r", settings.temporal_task_queue)

    worker = Worker(
        client,
        task_queue=settings.temporal_task_queue,
        workflows=[LunchDispatchWorkflow],
        activities=[deliver_batch, signal_displays],
    )
    # worker.run() blocks until the worker is shut down (e.g., via Ctrl+C).
    await worker.run()


def main() -> None:
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
