"""
Domain models for the lunch notification service.

All models use Pydantic v2 BaseModel for validation and JSON round-tripping.
The same models travel three ways: they are persisted to the snapshot files,
returned by the HTTP layer, and passed as Temporal workflow/activity payloads
through the pydantic_data_converter.

Enums inherit from (str, Enum) so they serialize as plain strings in JSON
(e.g. "sms" instead of {"value": "sms"}).
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Channel(str, Enum):
    """Delivery media a subscriber can be bound on."""

    SMS = "sms"
    SLACK = "slack"
    PUSH = "push"  # browser-extension push; recognised but not registrable yet


# Channels accepted from a registration text. Order drives the usage message.
REGISTRABLE_CHANNELS: tuple[Channel, ...] = (Channel.SMS, Channel.SLACK)

# Slack needs no provider-side binding; every subscriber shares this marker.
SLACK_ENDPOINT = "https://www.slack.com/notifyme"


class CommandOutcome(str, Enum):
    """Discriminates the reply to one inbound registration text."""

    MALFORMED = "malformed"
    NO_VALID_CHANNELS = "no_valid_channels"
    UNSUBSCRIBED = "unsubscribed"
    REGISTERED_NEW = "registered_new"
    REGISTERED_UPDATED = "registered_updated"
    NOT_BOUND = "not_bound"  # parsed fine but every binding call failed


# ── Registry state ───────────────────────────────────────────────────


class Subscriber(BaseModel):
    """One registered person and the bindings for each channel they opted into.

    A channel missing from `notifications` means "not subscribed on it".
    """

    identity: str = Field(..., min_length=1)
    notifications: dict[Channel, str] = Field(default_factory=dict)
    team: str = ""

    def has_channel(self, channel: Channel) -> bool:
        return channel in self.notifications

    @property
    def channels(self) -> list[Channel]:
        return list(self.notifications)


class Display(BaseModel):
    """A shared display, registered under its room name."""

    room: str = Field(..., min_length=1)


class RegistryState(BaseModel):
    """Full snapshot of subscribers and displays, keyed the way they persist."""

    users: dict[str, dict] = Field(default_factory=dict)
    displays: dict[str, dict] = Field(default_factory=dict)


# ── Parsed commands ──────────────────────────────────────────────────


class RegistrationIntent(BaseModel):
    """`jdoe: sms, slack` — register `identity` on `channels` (may be empty)."""

    model_config = ConfigDict(frozen=True)

    identity: str
    channels: tuple[Channel, ...] = ()


class UnsubscribeIntent(BaseModel):
    """`jdoe: stop` — drop every binding for `identity`."""

    model_config = ConfigDict(frozen=True)

    identity: str


class RegistrationOutcome(BaseModel):
    """What a register call actually achieved.

    `bound` can be a strict subset of `requested` when some provider calls fail.
    """

    identity: str
    is_new: bool
    requested: list[Channel]
    bound: list[Channel]

    @property
    def stored(self) -> bool:
        return bool(self.bound)


class CommandReply(BaseModel):
    """User-facing answer to an inbound text, one string per reply message."""

    outcome: CommandOutcome
    identity: str | None = None
    messages: list[str]


# ── Menu ─────────────────────────────────────────────────────────────


class MenuItem(BaseModel):
    item: str
    description: str | None = None


class Menu(BaseModel):
    """Today's catered menu, as far as the notification text cares."""

    vendor: str = "unknown"
    vendor_image: str | None = None
    office: str = "unknown"
    menu_items: list[MenuItem] = Field(default_factory=list)

    @classmethod
    def from_cater2me(cls, order: dict) -> "Menu":
        """Build a Menu from a Cater2Me `order_details.json` order object."""
        items = []
        for raw in order.get("menu_items") or []:
            notes = raw.get("item_notes")
            name = raw.get("item_display_name") or ""
            items.append(
                MenuItem(
                    item=f"{name} ({notes})" if notes else name,
                    description=raw.get("item_description"),
                )
            )
        return cls(
            vendor=order.get("vendor_name") or "unknown",
            vendor_image=order.get("vendor_image_timeline_url") or None,
            office=order.get("office_name") or "unknown",
            menu_items=items,
        )

    def as_slack_attachment(self) -> dict:
        attachment = {
            "fallback": f"Lunch today is from {self.vendor}",
            "title": self.vendor,
            "text": "\n".join(f"• {entry.item}" for entry in self.menu_items),
            "footer": self.office,
        }
        if self.vendor_image:
            attachment["image_url"] = self.vendor_image
        return attachment

    def __str__(self) -> str:
        items = ", ".join(entry.item for entry in self.menu_items)
        return f"Menu(vendor={self.vendor}, office={self.office}, items=[{items}])"


# ── Dispatch payloads ────────────────────────────────────────────────
# These cross the Temporal boundary, so every field must be JSON-friendly.


class LunchMessage(BaseModel):
    """One lunch announcement, pre-rendered for every channel."""

    headline: str               # Slack text
    text: str                   # SMS / push body
    attachments: list[dict] = Field(default_factory=list)  # Slack attachments


class DispatchRequest(BaseModel):
    """Input to one dispatch run: a frozen view of who to notify and what to say."""

    dispatch_id: str = ""
    subscribers: list[Subscriber]
    displays: list[str] = Field(default_factory=list)
    message: LunchMessage
    batch_size: int = Field(..., gt=0)
    cooldown_seconds: float = Field(..., ge=0)


class BatchPlan(BaseModel):
    """One scheduled batch: who is in it and when it fires after dispatch start."""

    index: int = Field(..., ge=0)
    offset_seconds: float = Field(..., ge=0)
    identities: list[str]


class BatchDeliveryResult(BaseModel):
    index: int
    fired_at: float = 0.0  # seconds since dispatch start
    attempted: int = 0
    failed: int = 0


class DisplaySignalResult(BaseModel):
    signalled: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)


class DispatchReport(BaseModel):
    """Summary of a finished dispatch. Nobody waits for it on the request path."""

    dispatch_id: str
    batches: list[BatchDeliveryResult] = Field(default_factory=list)
    displays: DisplaySignalResult = Field(default_factory=DisplaySignalResult)

    @property
    def attempted(self) -> int:
        return sum(batch.attempted for batch in self.batches)

    @property
    def failed(self) -> int:
        return sum(batch.failed for batch in self.batches)


# ── Activity payload models ──────────────────────────────────────────


class DeliverBatchInput(BaseModel):
    """Payload for the deliver_batch activity."""

    dispatch_id: str
    index: int = Field(..., ge=0)
    offset_seconds: float = 0.0
    subscribers: list[Subscriber]
    message: LunchMessage


class DisplaySignalInput(BaseModel):
    """Payload for the signal_displays activity."""

    dispatch_id: str
    rooms: list[str]
