"""The lunch trigger: snapshot who to notify, render the message, hand off."""

import logging

from lunchbell.domain import replies
from lunchbell.domain.models import DispatchRequest
from lunchbell.services.backends import DispatchBackend, new_dispatch_id
from lunchbell.services.displays import DisplayRegistry
from lunchbell.services.menu import MenuCache
from lunchbell.services.registry import SubscriberRegistry

logger = logging.getLogger(__name__)


class LunchService:
    def __init__(
        self,
        registry: SubscriberRegistry,
        displays: DisplayRegistry,
        menu: MenuCache,
        backend: DispatchBackend,
        *,
        batch_size: int,
        cooldown_seconds: float,
    ) -> None:
        self.registry = registry
        self.displays = displays
        self.menu = menu
        self.backend = backend
        self.batch_size = batch_size
        self.cooldown_seconds = cooldown_seconds

    def build_request(self) -> DispatchRequest:
        return DispatchRequest(
            dispatch_id=new_dispatch_id(),
            subscribers=self.registry.list_all(),
            displays=self.displays.list_all(),
            message=replies.lunch_message(self.menu.current()),
            batch_size=self.batch_size,
            cooldown_seconds=self.cooldown_seconds,
        )

    async def trigger(self) -> str:
        """Start notifying everyone and return the dispatch id immediately."""
        request = self.build_request()
        logger.info(
            "Lunch! Dispatch %s to %d subscribers and %d displays",
            request.dispatch_id,
            len(request.subscribers),
            len(request.displays),
        )
        return await self.backend.submit(request)
