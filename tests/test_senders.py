import json
from urllib.parse import parse_qs

import httpx
import pytest

from lunchbell.domain.errors import SendError
from lunchbell.services.senders import SlackWebSender, TwilioDisplaySender, TwilioNotifySender

pytestmark = pytest.mark.asyncio


def form(request: httpx.Request) -> dict[str, list[str]]:
    return parse_qs(request.content.decode())


class Recorder:
    """MockTransport handler that records requests and replies with a canned response."""

    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.body = body if body is not None else {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


async def test_slack_posts_direct_message():
    recorder = Recorder(body={"ok": True})
    sender = SlackWebSender("xoxb-1", transport=httpx.MockTransport(recorder))

    await sender.send("jdoe", "*Lunch has arrived!*", [{"title": "Tacos"}, None])

    (request,) = recorder.requests
    assert request.url.path == "/api/chat.postMessage"
    fields = form(request)
    assert fields["channel"] == ["@jdoe"]
    assert fields["token"] == ["xoxb-1"]
    assert fields["text"] == ["*Lunch has arrived!*"]
    assert json.loads(fields["attachments"][0]) == [{"title": "Tacos"}]
    await sender.close()


async def test_slack_not_ok_raises():
    sender = SlackWebSender("xoxb-1", transport=httpx.MockTransport(Recorder(body={"ok": False, "error": "channel_not_found"})))

    with pytest.raises(SendError, match="channel_not_found"):
        await sender.send("jdoe", "hi")


async def test_slack_http_error_raises():
    sender = SlackWebSender("xoxb-1", transport=httpx.MockTransport(Recorder(status_code=500)))

    with pytest.raises(SendError):
        await sender.send("jdoe", "hi")


async def test_notify_sends_by_identity():
    recorder = Recorder(status_code=201, body={"sid": "NT1"})
    sender = TwilioNotifySender("AC1", "secret", "IS1", "MG1", transport=httpx.MockTransport(recorder))

    await sender.send("jdoe", "Lunch has arrived!")

    (request,) = recorder.requests
    assert request.url.path == "/v1/Services/IS1/Notifications"
    assert request.headers["authorization"].startswith("Basic ")
    fields = form(request)
    assert fields["Identity"] == ["jdoe"]
    assert fields["Body"] == ["Lunch has arrived!"]
    assert json.loads(fields["Sms"][0]) == {"from": "MG1"}


async def test_notify_rejection_raises():
    sender = TwilioNotifySender("AC1", "secret", "IS1", "MG1", transport=httpx.MockTransport(Recorder(status_code=400)))

    with pytest.raises(SendError) as excinfo:
        await sender.send("jdoe", "hi")

    assert excinfo.value.channel == "sms"


async def test_transport_failure_raises_send_error():
    def explode(request):
        raise httpx.ConnectError("unreachable", request=request)

    sender = TwilioNotifySender("AC1", "secret", "IS1", "MG1", transport=httpx.MockTransport(explode))

    with pytest.raises(SendError, match="unreachable"):
        await sender.send("jdoe", "hi")


async def test_display_signal_texts_room():
    recorder = Recorder(status_code=201)
    sender = TwilioDisplaySender("AC1", "secret", "MG1", "+15550001111", transport=httpx.MockTransport(recorder))

    await sender.signal("Kitchen")

    (request,) = recorder.requests
    assert request.url.path == "/2010-04-01/Accounts/AC1/Messages.json"
    fields = form(request)
    assert fields["Body"] == ["kitchen:lunch"]
    assert fields["To"] == ["+15550001111"]
    assert fields["MessagingServiceSid"] == ["MG1"]
