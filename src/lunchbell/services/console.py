"""
Logging-only stand-ins for the external providers.

Used when credentials are not configured (local development, demos). Like the
real adapters they satisfy the provider protocols; they just write what they
would have sent to the log.
"""

import asyncio
import itertools
import logging
from typing import Sequence

from lunchbell.domain.models import Channel

logger = logging.getLogger(__name__)


class ConsoleBindingProvider:
    """Hands out sequential fake binding ids."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)

    async def create(self, identity: str, channel: Channel, address: str, tags: Sequence[str] = ()) -> str:
        await asyncio.sleep(0)
        binding_id = f"BS{next(self._ids):032d}"
        logger.info("[BINDING] %s on %s at %s -> %s", identity, channel.value, address, binding_id)
        return binding_id

    async def delete(self, binding_id: str) -> None:
        await asyncio.sleep(0)
        logger.info("[BINDING] deleted %s", binding_id)


class ConsoleSlackSender:
    async def send(self, identity: str, headline: str, attachments: Sequence[dict | None] = ()) -> None:
        await asyncio.sleep(0)
        logger.info("[SLACK] to=@%s text=%s attachments=%d", identity, headline, len([a for a in attachments if a]))


class ConsoleSmsSender:
    async def send(self, identity: str, message: str) -> None:
        await asyncio.sleep(0)
        logger.info("[SMS] to=%s message=%s", identity, message)


class ConsoleDisplaySender:
    async def signal(self, room: str) -> None:
        await asyncio.sleep(0)
        logger.info("[DISPLAY] %s:lunch", room.lower())
