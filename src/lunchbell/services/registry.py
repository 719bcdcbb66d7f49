"""
Subscriber registry.

Owns the identity → Subscriber map and is the only thing allowed to mutate it.
Every mutation follows the same shape:

  1. do the slow provider calls outside the lock (scatter/gather, so channels
     bind concurrently and the join does not care which finishes first)
  2. take the lock, apply the change to the map, build the full snapshot
  3. persist that snapshot while still holding the lock

Holding the lock across step 2-3 serializes read-modify-write-persist, so two
concurrent registrations for different identities cannot both build a
snapshot that is missing the other one, and snapshots land on disk in the
order they were built.

Provider and storage failures never escape: bindings that fail are left out,
deletions that fail are ignored, and a failed write leaves the in-memory map
authoritative until the next successful one.
"""

import asyncio
import logging
from typing import Iterable

from lunchbell.domain.errors import PersistenceWriteError
from lunchbell.domain.models import SLACK_ENDPOINT, Channel, RegistrationOutcome, Subscriber
from lunchbell.services.binding import ChannelBindingProvider
from lunchbell.services.storage import SnapshotStore

logger = logging.getLogger(__name__)


class SubscriberRegistry:
    def __init__(self, store: SnapshotStore, provider: ChannelBindingProvider) -> None:
        self.store = store
        self.provider = provider
        self._lock = asyncio.Lock()
        self._subscribers: dict[str, Subscriber] = self._load(store)
        logger.info("Num subscribed users %d", len(self._subscribers))

    @staticmethod
    def _load(store: SnapshotStore) -> dict[str, Subscriber]:
        subscribers: dict[str, Subscriber] = {}
        for identity, record in store.load().items():
            try:
                subscribers[identity] = Subscriber(identity=identity, **record)
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable subscriber record %r: %s", identity, exc)
        return subscribers

    # ── Queries ──────────────────────────────────────────────────

    def list_all(self) -> list[Subscriber]:
        """Current in-memory subscribers (copies, safe to hand to a dispatch)."""
        return [subscriber.model_copy(deep=True) for subscriber in self._subscribers.values()]

    def get(self, identity: str) -> Subscriber | None:
        subscriber = self._subscribers.get(identity)
        return subscriber.model_copy(deep=True) if subscriber else None

    def has_channel(self, identity: str, channel: Channel) -> bool:
        subscriber = self._subscribers.get(identity)
        return subscriber is not None and subscriber.has_channel(channel)

    def snapshot(self) -> dict[str, dict]:
        """Persisted shape: `{identity: {"notifications": {...}, "team": ...}}`."""
        return {
            identity: subscriber.model_dump(mode="json", exclude={"identity"})
            for identity, subscriber in self._subscribers.items()
        }

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, identity: object) -> bool:
        return identity in self._subscribers

    # ── Mutations ────────────────────────────────────────────────

    async def register(self, identity: str, channels: Iterable[Channel], address: str) -> RegistrationOutcome:
        """Replace `identity`'s channels with whichever of `channels` bind.

        Slack binds locally and cannot fail. Every other channel gets its own
        provider call; all of them settle before anything is stored. When none
        of the requested channels bind the registry is left untouched.
        """
        requested = list(dict.fromkeys(channels))
        bindings = await self._bind_all(identity, requested, address)
        bound = [channel for channel in requested if channel in bindings]

        async with self._lock:
            is_new = identity not in self._subscribers
            if not bindings:
                logger.warning("No channel bound for %s, registry left unchanged", identity)
                return RegistrationOutcome(identity=identity, is_new=is_new, requested=requested, bound=[])

            previous = self._subscribers.get(identity)
            self._subscribers[identity] = Subscriber(
                identity=identity,
                notifications={channel: bindings[channel] for channel in bound},
                team=previous.team if previous else "",
            )
            await self._persist()

        logger.info("%s %s on %s", "Registered" if is_new else "Updated", identity, [c.value for c in bound])
        return RegistrationOutcome(identity=identity, is_new=is_new, requested=requested, bound=bound)

    async def unsubscribe(self, identity: str) -> bool:
        """Release provider bindings and drop `identity`. False if it was never registered.

        A registration for `identity` that lands while the bindings are being
        released wins: its record is kept.
        """
        subscriber = self._subscribers.get(identity)
        if subscriber is None:
            logger.info("Unsubscribe for unknown identity %s", identity)
            return False

        releasable = [
            binding_id
            for channel, binding_id in subscriber.notifications.items()
            if channel is not Channel.SLACK and binding_id
        ]
        results = await asyncio.gather(
            *(self.provider.delete(binding_id) for binding_id in releasable),
            return_exceptions=True,
        )
        for binding_id, result in zip(releasable, results):
            if isinstance(result, Exception):
                logger.warning("Ignoring failed deletion of binding %s: %s", binding_id, result)

        async with self._lock:
            current = self._subscribers.get(identity)
            if current is None:
                return True  # a concurrent unsubscribe already removed and persisted it
            if current is not subscriber:
                # re-registered while the deletions were in flight
                logger.info("Keeping %s, re-registered during unsubscribe", identity)
                return True
            del self._subscribers[identity]
            await self._persist()

        logger.info("Unsubscribed %s", identity)
        return True

    # ── Internals ────────────────────────────────────────────────

    async def _bind_all(self, identity: str, channels: list[Channel], address: str) -> dict[Channel, str]:
        bindings: dict[Channel, str] = {}
        remote = [channel for channel in channels if channel is not Channel.SLACK]
        if Channel.SLACK in channels:
            bindings[Channel.SLACK] = SLACK_ENDPOINT

        results = await asyncio.gather(
            *(self.provider.create(identity, channel, address, ()) for channel in remote),
            return_exceptions=True,
        )
        for channel, result in zip(remote, results):
            if isinstance(result, Exception):
                logger.warning("Binding %s on %s failed: %s", identity, channel.value, result)
            elif isinstance(result, BaseException):
                raise result
            else:
                bindings[channel] = result
        return bindings

    async def _persist(self) -> None:
        # caller holds self._lock
        try:
            await self.store.save(self.snapshot())
        except PersistenceWriteError as exc:
            logger.warning("Unable to persist users: %s", exc)
