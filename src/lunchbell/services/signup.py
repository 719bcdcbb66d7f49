"""Inbound registration texts → registry mutations → reply messages."""

import logging

from lunchbell.domain import replies
from lunchbell.domain.commands import parse_command, require_channels
from lunchbell.domain.errors import MalformedCommandError, NoValidChannelError
from lunchbell.domain.models import CommandReply, UnsubscribeIntent
from lunchbell.services.registry import SubscriberRegistry

logger = logging.getLogger(__name__)


class SignupService:
    def __init__(self, registry: SubscriberRegistry) -> None:
        self.registry = registry

    async def handle(self, from_address: str, raw_text: str) -> CommandReply:
        """Apply one inbound text from `from_address` and describe the result.

        Only parse-stage problems are reported back as errors; provider and
        storage trouble shows up as fewer bound channels at most.
        """
        try:
            intent = parse_command(raw_text)
        except MalformedCommandError:
            logger.info("Malformed registration text from %s: %r", from_address, raw_text)
            return replies.usage_reply()

        if isinstance(intent, UnsubscribeIntent):
            await self.registry.unsubscribe(intent.identity)
            return replies.unsubscribed_reply(intent.identity)

        try:
            channels = require_channels(intent)
        except NoValidChannelError as exc:
            logger.info("No valid channel from %s: %r", from_address, raw_text)
            return replies.no_valid_channel_reply(exc.identity)

        outcome = await self.registry.register(intent.identity, channels, from_address)
        if not outcome.stored:
            return replies.not_bound_reply(outcome.identity, outcome.requested)
        return replies.registered_reply(outcome.identity, outcome.is_new, outcome.bound, outcome.requested)
