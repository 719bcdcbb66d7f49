"""
CLI client — starts a lunch dispatch workflow and optionally queries / waits on it.

Reads subscribers and displays from the persisted snapshot files (the same
ones the HTTP app writes), so it can announce lunch without going through the
web server.

Usage:
    # Announce lunch:
    python -m lunchbell.client lunch

    # Override batching and watch it run:
    python -m lunchbell.client lunch --batch-size 5 --cooldown 2 --query --wait
"""

import argparse
import asyncio
import logging

from temporalio.client import Client

# Must match the data_converter used by the worker — see worker.py comments.
from temporalio.contrib.pydantic import pydantic_data_converter

from lunchbell.config import configure_logging
from lunchbell.domain.models import DispatchReport
from lunchbell.services.backends import TemporalDispatchBackend
from lunchbell.services.factory import ServiceFactory
from lunchbell.workflows import LunchDispatchWorkflow


async def run_client(args: argparse.Namespace) -> None:
    settings = ServiceFactory.get_settings()
    configure_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    if args.batch_size is not None or args.cooldown is not None:
        settings = settings.model_copy(
            update={
                key: value
                for key, value in (("batch_size", args.batch_size), ("cooldown_seconds", args.cooldown))
                if value is not None
            }
        )
        ServiceFactory.override(settings=settings)

    client = await Client.connect(settings.temporal_address, data_converter=pydantic_data_converter)
    ServiceFactory.override(backend=TemporalDispatchBackend(client, settings.temporal_task_queue))

    lunch = await ServiceFactory.get_lunch_service()
    dispatch_id = await lunch.trigger()
    logger.info("Started dispatch %s", dispatch_id)

    handle = client.get_workflow_handle(dispatch_id, result_type=DispatchReport)

    # Query: read-only look at how many batches have fired so far.
    if args.query:
        status = await handle.query(LunchDispatchWorkflow.get_status)
        logger.info("Query result: %s", status)

    if args.wait:
        report = await handle.result()
        print(report.model_dump_json(indent=2))
    else:
        print(dispatch_id)


def main() -> None:
    parser = argparse.ArgumentParser(description="Tell everyone lunch is here, via Temporal")
    commands = parser.add_subparsers(dest="command", required=True)
    lunch = commands.add_parser("lunch", help="Start a lunch dispatch")
    lunch.add_argument("--batch-size", type=int, default=None, help="Subscribers per batch")
    lunch.add_argument("--cooldown", type=float, default=None, help="Seconds between batches")
    lunch.add_argument("--query", action="store_true", help="Query workflow status once after starting")
    lunch.add_argument("--wait", action="store_true", help="Wait for the dispatch report and print it")
    asyncio.run(run_client(parser.parse_args()))


if __name__ == "__main__":
    main()
