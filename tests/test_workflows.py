"""
LunchDispatchWorkflow against Temporal's time-skipping test server.

The test server binary is downloaded on first use, so these only run when
LUNCHBELL_TEMPORAL_TESTS=1 is set.
"""

import os
import uuid

import pytest
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import Worker

from lunchbell.activities import deliver_batch, signal_displays
from lunchbell.domain.models import Channel, DispatchReport, DispatchRequest
from lunchbell.services.dispatcher import BatchDispatcher
from lunchbell.services.factory import ServiceFactory
from lunchbell.workflows import LunchDispatchWorkflow
from tests.helpers import RecordingDisplaySender, RecordingSlackSender, RecordingSmsSender, make_message, make_subscriber

pytestmark = [
    pytest.mark.asyncio,
    pytest.mark.skipif(os.getenv("LUNCHBELL_TEMPORAL_TESTS") != "1", reason="set LUNCHBELL_TEMPORAL_TESTS=1"),
]


async def test_dispatch_workflow_fires_every_batch():
    slack, sms, displays = RecordingSlackSender(), RecordingSmsSender(failing={"user3"}), RecordingDisplaySender()
    ServiceFactory.override(dispatcher=BatchDispatcher(slack, sms, displays))
    request = DispatchRequest(
        dispatch_id=f"lunch-{uuid.uuid4().hex[:12]}",
        subscribers=[make_subscriber(f"user{i}", Channel.SMS) for i in range(7)],
        displays=["Kitchen"],
        message=make_message(),
        batch_size=3,
        cooldown_seconds=30.0,
    )
    task_queue = f"test-{uuid.uuid4()}"

    async with await WorkflowEnvironment.start_time_skipping(data_converter=pydantic_data_converter) as env:
        client = env.client
        async with Worker(
            client,
            task_queue=task_queue,
            workflows=[LunchDispatchWorkflow],
            activities=[deliver_batch, signal_displays],
        ):
            report = await client.execute_workflow(
                LunchDispatchWorkflow.run,
                request,
                id=request.dispatch_id,
                task_queue=task_queue,
                result_type=DispatchReport,
            )

    assert [batch.index for batch in report.batches] == [0, 1, 2]
    assert [batch.fired_at for batch in report.batches] == [0.0, 30.0, 60.0]
    assert report.attempted == 7
    assert report.failed == 1
    assert sorted(identity for identity, _ in sms.sent) == [f"user{i}" for i in range(7) if i != 3]
    assert report.displays.signalled == ["Kitchen"]
