"""User-facing texts: replies to registration texts and the lunch announcement."""

from typing import Iterable

from lunchbell.domain.models import (
    REGISTRABLE_CHANNELS,
    Channel,
    CommandOutcome,
    CommandReply,
    LunchMessage,
    Menu,
)

LUNCH_HEADLINE = "*Lunch has arrived!*"


def _join(channels: Iterable[Channel]) -> str:
    return ", ".join(channel.value for channel in channels)


def _supported_channels() -> str:
    return f"Supported channels are {_join(REGISTRABLE_CHANNELS)}.\nEx: jdoe: sms, slack"


def usage_reply() -> CommandReply:
    return CommandReply(
        outcome=CommandOutcome.MALFORMED,
        messages=[
            "Register by texting:\n[ldap username]: [comma separated list of channels to be notified on]",
            _supported_channels(),
            "If you would like to unsubscribe text:\n[ldap username]: stop",
        ],
    )


def no_valid_channel_reply(identity: str) -> CommandReply:
    return CommandReply(
        outcome=CommandOutcome.NO_VALID_CHANNELS,
        identity=identity,
        messages=["You must specify at least one valid channel", _supported_channels()],
    )


def unsubscribed_reply(identity: str) -> CommandReply:
    return CommandReply(
        outcome=CommandOutcome.UNSUBSCRIBED,
        identity=identity,
        messages=[f"You have been unsubscribed, {identity}"],
    )


def registered_reply(identity: str, is_new: bool, bound: list[Channel], requested: list[Channel]) -> CommandReply:
    if is_new:
        outcome = CommandOutcome.REGISTERED_NEW
        text = (
            f"Thanks for signing up {identity}. "
            f"You're signed up to receive notifications on {_join(bound)}."
        )
    else:
        outcome = CommandOutcome.REGISTERED_UPDATED
        text = (
            f"Looks like you are already registered {identity}.\n"
            f"We've updated your notification preferences to {_join(bound)}."
        )
    missed = [channel for channel in requested if channel not in bound]
    if missed:
        text += f"\nWe couldn't set up {_join(missed)} right now, text us again to retry."
    return CommandReply(
        outcome=outcome,
        identity=identity,
        messages=[f"{text}\nWe'll let you know when lunch arrives."],
    )


def not_bound_reply(identity: str, requested: list[Channel]) -> CommandReply:
    return CommandReply(
        outcome=CommandOutcome.NOT_BOUND,
        identity=identity,
        messages=[f"Sorry {identity}, we couldn't set up {_join(requested)} right now. Please try again later."],
    )


def lunch_message(menu: Menu | None) -> LunchMessage:
    """Render the announcement for every channel, with menu details when we have them."""
    if menu is None:
        return LunchMessage(headline=LUNCH_HEADLINE, text="Lunch has arrived!")
    return LunchMessage(
        headline=LUNCH_HEADLINE,
        text=f"Lunch has arrived! Today's lunch is from {menu.vendor}.",
        attachments=[menu.as_slack_attachment()],
    )
