"""
Registration command parser.

Subscribers text one of:

    {identity}: sms, slack
    {identity}: stop | unsubscribe

Parsing is pure string work, so it lives in the domain layer and never touches
the registry. Two failure classes stay separate: text that does not
split into identity and directive raises MalformedCommandError, while text that
parses but names no registrable channel is a valid RegistrationIntent with an
empty channel tuple (the caller turns that into a NoValidChannelError reply).
"""

from lunchbell.domain.errors import MalformedCommandError, NoValidChannelError
from lunchbell.domain.models import REGISTRABLE_CHANNELS, Channel, RegistrationIntent, UnsubscribeIntent

UNSUBSCRIBE_DIRECTIVES = frozenset({"stop", "unsubscribe"})

_REGISTRABLE_VALUES = {channel.value: channel for channel in REGISTRABLE_CHANNELS}


def parse_command(raw_text: str) -> RegistrationIntent | UnsubscribeIntent:
    """Parse one inbound text into a registration or unsubscribe intent.

    Raises:
        MalformedCommandError: the text is not exactly `identity: directive`,
            or the identity is blank.
    """
    segments = [segment.strip() for segment in (raw_text or "").lower().split(":")]
    if len(segments) != 2 or not segments[0]:
        raise MalformedCommandError(raw_text)

    identity, directive = segments
    if directive in UNSUBSCRIBE_DIRECTIVES:
        return UnsubscribeIntent(identity=identity)

    # dict.fromkeys keeps first-seen order while collapsing duplicates
    tokens = (token.strip() for token in directive.split(","))
    channels = dict.fromkeys(_REGISTRABLE_VALUES[t] for t in tokens if t in _REGISTRABLE_VALUES)
    return RegistrationIntent(identity=identity, channels=tuple(channels))


def require_channels(intent: RegistrationIntent) -> tuple[Channel, ...]:
    """Return the intent's channels, or raise NoValidChannelError when there are none."""
    if not intent.channels:
        raise NoValidChannelError(intent.identity)
    return intent.channels
