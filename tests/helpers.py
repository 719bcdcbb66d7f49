import asyncio
from typing import Any, Sequence

from lunchbell.domain.errors import BindingCreationError, BindingDeletionError, PersistenceWriteError, SendError
from lunchbell.domain.models import Channel, LunchMessage, Subscriber


class FakeBindingProvider:
    """Records binding calls; channels in `failing` raise BindingCreationError."""

    def __init__(self, ids: dict[Channel, str] | None = None, failing: set[Channel] | None = None) -> None:
        self.ids = ids or {}
        self.failing = failing or set()
        self.failing_deletes: set[str] = set()
        self.created: list[tuple[str, Channel, str]] = []
        self.deleted: list[str] = []
        self.delays: dict[Channel, int] = {}
        self.delete_delay = 1

    async def create(self, identity: str, channel: Channel, address: str, tags: Sequence[str] = ()) -> str:
        for _ in range(self.delays.get(channel, 1)):
            await asyncio.sleep(0)
        self.created.append((identity, channel, address))
        if channel in self.failing:
            raise BindingCreationError(identity, channel.value, "provider down")
        return self.ids.get(channel, f"B-{identity}-{channel.value}")

    async def delete(self, binding_id: str) -> None:
        for _ in range(self.delete_delay):
            await asyncio.sleep(0)
        self.deleted.append(binding_id)
        if binding_id in self.failing_deletes:
            raise BindingDeletionError(binding_id, "provider down")


class MemoryStore:
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.initial = initial or {}
        self.saves: list[dict[str, Any]] = []
        self.fail = False

    def load(self) -> dict[str, Any]:
        return dict(self.initial)

    async def save(self, snapshot: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        if self.fail:
            raise PersistenceWriteError("memory", "disk full")
        self.saves.append(snapshot)

    @property
    def last(self) -> dict[str, Any] | None:
        return self.saves[-1] if self.saves else None


class RecordingSlackSender:
    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.sent: list[tuple[str, str, list]] = []

    async def send(self, identity: str, headline: str, attachments: Sequence[dict | None] = ()) -> None:
        await asyncio.sleep(0)
        if identity in self.failing:
            raise SendError("slack", identity, "boom")
        self.sent.append((identity, headline, list(attachments)))


class RecordingSmsSender:
    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.sent: list[tuple[str, str]] = []

    async def send(self, identity: str, message: str) -> None:
        await asyncio.sleep(0)
        if identity in self.failing:
            raise SendError("sms", identity, "boom")
        self.sent.append((identity, message))


class RecordingDisplaySender:
    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.signalled: list[str] = []

    async def signal(self, room: str) -> None:
        await asyncio.sleep(0)
        if room in self.failing:
            raise SendError("display", room, "boom")
        self.signalled.append(room)


class FakeClock:
    """Virtual time: sleep() returns at once after advancing `now`."""

    def __init__(self) -> None:
        self.current = 1000.0
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds
        await asyncio.sleep(0)


def make_subscriber(identity: str, *channels: Channel) -> Subscriber:
    notifications = {
        channel: ("https://www.slack.com/notifyme" if channel is Channel.SLACK else f"B-{identity}")
        for channel in channels
    }
    return Subscriber(identity=identity, notifications=notifications)


def make_message() -> LunchMessage:
    return LunchMessage(headline="*Lunch has arrived!*", text="Lunch has arrived!")


