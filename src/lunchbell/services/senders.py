"""
Channel senders.

Each sender is an outbound adapter for one delivery medium. The dispatcher
only sees the protocols below; which provider sits underneath is decided by
ServiceFactory from the configured credentials.

Senders raise SendError on any failure. Catching it is the dispatcher's job,
one send at a time.
"""

import json
import logging
from typing import Protocol, Sequence

import httpx

from lunchbell.domain.errors import SendError
from lunchbell.services.binding import NOTIFY_BASE_URL

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"
TWILIO_API_URL = "https://api.twilio.com/2010-04-01"


class SlackSender(Protocol):
    async def send(self, identity: str, headline: str, attachments: Sequence[dict | None] = ()) -> None: ...


class SmsSender(Protocol):
    """Plain-text notification addressed by identity (SMS and push bindings)."""

    async def send(self, identity: str, message: str) -> None: ...


class DisplaySender(Protocol):
    async def signal(self, room: str) -> None: ...


class SlackWebSender:
    """Direct messages `@identity` through Slack's chat.postMessage."""

    def __init__(
        self,
        token: str,
        *,
        timeout_seconds: float = 10.0,
        base_url: str = SLACK_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds, transport=transport)

    async def send(self, identity: str, headline: str, attachments: Sequence[dict | None] = ()) -> None:
        kept = [attachment for attachment in attachments if attachment]
        logger.info("Slacking %s %r with %d attachments", identity, headline, len(kept))
        payload = {
            "token": self.token,
            "channel": f"@{identity}",
            "as_user": "true",
            "text": headline,
            "parse": "full",
            "attachments": json.dumps(kept),
        }
        try:
            response = await self.client.post("/chat.postMessage", data=payload)
        except httpx.HTTPError as exc:
            raise SendError("slack", identity, str(exc)) from exc
        if response.status_code != 200:
            raise SendError("slack", identity, f"Slack responded with {response.status_code}")

        body = response.json()
        if not body.get("ok"):
            raise SendError("slack", identity, body.get("error") or json.dumps(body))

    async def close(self) -> None:
        await self.client.aclose()


class TwilioNotifySender:
    """Sends through a Twilio Notify service to every binding of an identity."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        service_sid: str,
        messaging_service_sid: str,
        *,
        timeout_seconds: float = 10.0,
        base_url: str = NOTIFY_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.messaging_service_sid = messaging_service_sid
        self.client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/Services/{service_sid}",
            auth=httpx.BasicAuth(account_sid, auth_token),
            timeout=timeout_seconds,
            transport=transport,
        )

    async def send(self, identity: str, message: str) -> None:
        form = {
            "Identity": identity,
            "Body": message,
            "Sms": json.dumps({"from": self.messaging_service_sid}),
        }
        try:
            response = await self.client.post("/Notifications", data=form)
        except httpx.HTTPError as exc:
            raise SendError("sms", identity, str(exc)) from exc
        if response.status_code not in (200, 201):
            raise SendError("sms", identity, f"HTTP {response.status_code}: {response.text[:300]}")
        logger.info("Notified %s via Twilio Notify", identity)

    async def close(self) -> None:
        await self.client.aclose()


class TwilioDisplaySender:
    """Texts `<room>:lunch` to the phone number the displays listen on."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        messaging_service_sid: str,
        display_phone: str,
        *,
        timeout_seconds: float = 10.0,
        base_url: str = TWILIO_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.messaging_service_sid = messaging_service_sid
        self.display_phone = display_phone
        self.client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/Accounts/{account_sid}",
            auth=httpx.BasicAuth(account_sid, auth_token),
            timeout=timeout_seconds,
            transport=transport,
        )

    async def signal(self, room: str) -> None:
        form = {
            "MessagingServiceSid": self.messaging_service_sid,
            "To": self.display_phone,
            "Body": f"{room.lower()}:lunch",
        }
        try:
            response = await self.client.post("/Messages.json", data=form)
        except httpx.HTTPError as exc:
            raise SendError("display", room, str(exc)) from exc
        if response.status_code not in (200, 201):
            raise SendError("display", room, f"HTTP {response.status_code}: {response.text[:300]}")

    async def close(self) -> None:
        await self.client.aclose()
