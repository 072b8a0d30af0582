"""
Adapter classification: which chat transport is fronting this invocation.

The three transports share no interface, so classification is by shape:
a Slack transport carries a bot token, an IRC transport carries a live
connection. Everything downstream switches on the AdapterProfile tag and
never looks at the raw transport again.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AdapterProfile(str, Enum):
    SLACK = "slack"
    IRC = "irc"
    SHELL = "shell"


def is_slack(transport) -> bool:
    return bool(getattr(transport, "token", None))


def is_irc(transport) -> bool:
    # Slack wins when a mock transport exposes both shapes
    return getattr(transport, "connection", None) is not None and not is_slack(transport)


def classify(transport) -> AdapterProfile:
    """Return the profile of the live transport. Slack -> IRC -> Shell."""
    if is_slack(transport):
        return AdapterProfile.SLACK
    if is_irc(transport):
        return AdapterProfile.IRC
    return AdapterProfile.SHELL


@dataclass(frozen=True)
class Requester:
    """Who is asking. Rebuilt for every message, never stored."""

    name: str
    user_id: Optional[str]
    adapter: AdapterProfile


@dataclass(frozen=True)
class Origin:
    """Where a message came from (channel + ts), for permalinks."""

    channel: str
    ts: str = ""
