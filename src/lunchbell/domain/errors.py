"""
Error taxonomy.

Only the parse-stage errors (MalformedCommandError, NoValidChannelError) ever
reach an end user. Every other class is caught where it happens, logged at
warning level, and degraded around.
"""


class LunchbellError(Exception):
    """Base class for every error raised by this package."""


class MalformedCommandError(LunchbellError):
    """Inbound text is not `<identity>: <directive>`."""

    def __init__(self, raw_text: str) -> None:
        super().__init__(f"Cannot parse registration text {raw_text!r}")
        self.raw_text = raw_text


class NoValidChannelError(LunchbellError):
    """Registration text parsed, but named no channel we can register."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"No valid channel requested for {identity}")
        self.identity = identity


class BindingCreationError(LunchbellError):
    def __init__(self, identity: str, channel: str, reason: str = "") -> None:
        super().__init__(f"Could not bind {identity} on {channel}: {reason}".rstrip(": "))
        self.identity = identity
        self.channel = channel


class BindingDeletionError(LunchbellError):
    def __init__(self, binding_id: str, reason: str = "") -> None:
        super().__init__(f"Could not delete binding {binding_id}: {reason}".rstrip(": "))
        self.binding_id = binding_id


class PersistenceWriteError(LunchbellError):
    def __init__(self, path: str, reason: str = "") -> None:
        super().__init__(f"Could not write snapshot {path}: {reason}".rstrip(": "))
        self.path = path


class SendError(LunchbellError):
    """One channel send to one subscriber (or display) failed."""

    def __init__(self, channel: str, identity: str, reason: str = "") -> None:
        super().__init__(f"{channel} send to {identity} failed: {reason}".rstrip(": "))
        self.channel = channel
        self.identity = identity


class InvalidDisplayError(LunchbellError):
    """A display request without the room name it needs."""


class MenuUnavailableError(LunchbellError):
    """Today's menu could not be fetched or does not exist."""
