"""
Channel binding provider.

A binding ties an identity to an address on one channel at the provider (a
phone number for SMS, a device token for push). The registry stores the
provider's binding id and hands it back here to release it on unsubscribe.

Slack never comes through here: its endpoint is derived locally.
"""

import logging
from typing import Protocol, Sequence

import httpx

from lunchbell.domain.errors import BindingCreationError, BindingDeletionError
from lunchbell.domain.models import Channel

logger = logging.getLogger(__name__)

NOTIFY_BASE_URL = "https://notify.twilio.com/v1"

# Twilio Notify binding types per channel.
BINDING_TYPES: dict[Channel, str] = {
    Channel.SMS: "sms",
    Channel.PUSH: "fcm",
}


class ChannelBindingProvider(Protocol):
    async def create(self, identity: str, channel: Channel, address: str, tags: Sequence[str] = ()) -> str:
        """Create a binding and return its id. Raises BindingCreationError."""
        ...

    async def delete(self, binding_id: str) -> None:
        """Release a binding. Raises BindingDeletionError."""
        ...


class TwilioNotifyBindingProvider:
    """Bindings on a Twilio Notify service, over its REST API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        service_sid: str,
        *,
        timeout_seconds: float = 10.0,
        base_url: str = NOTIFY_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/Services/{service_sid}",
            auth=httpx.BasicAuth(account_sid, auth_token),
            timeout=timeout_seconds,
            transport=transport,
        )

    async def create(self, identity: str, channel: Channel, address: str, tags: Sequence[str] = ()) -> str:
        binding_type = BINDING_TYPES.get(channel)
        if binding_type is None:
            raise BindingCreationError(identity, channel.value, "channel has no provider binding")

        logger.info("Creating %s binding for %s", binding_type, identity)
        form: dict[str, str | list[str]] = {
            "Endpoint": f"{identity}:{binding_type}",
            "Identity": identity,
            "BindingType": binding_type,
            "Address": address,
        }
        if tags:
            form["Tag"] = list(tags)

        try:
            response = await self.client.post("/Bindings", data=form)
        except httpx.HTTPError as exc:
            raise BindingCreationError(identity, channel.value, str(exc)) from exc
        if response.status_code not in (200, 201):
            raise BindingCreationError(
                identity, channel.value, f"HTTP {response.status_code}: {response.text[:300]}"
            )

        binding_id = response.json().get("sid")
        if not binding_id:
            raise BindingCreationError(identity, channel.value, "response carried no binding sid")
        logger.info("Created binding %s for %s", binding_id, identity)
        return binding_id

    async def delete(self, binding_id: str) -> None:
        logger.info("Deleting binding %s", binding_id)
        try:
            response = await self.client.delete(f"/Bindings/{binding_id}")
        except httpx.HTTPError as exc:
            raise BindingDeletionError(binding_id, str(exc)) from exc
        if response.status_code not in (200, 204):
            raise BindingDeletionError(binding_id, f"HTTP {response.status_code}")

    async def close(self) -> None:
        await self.client.aclose()
