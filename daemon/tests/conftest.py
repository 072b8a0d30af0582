"""Shared fixtures for the Tumblebot test suite.

Four fixture categories:
1. Clean env — strip all TUMBLE_*, HUBOT_TUMBLE_* and Slack token vars
2. Fake aggregator — in-memory Tumble server behind httpx.MockTransport
3. Transports — fake Slack, IRC and shell transports
4. Reply recorder — collects everything a handler says back
"""

import os

import pytest

from tests.helpers import (
    BASE_URL,
    FakeAggregator,
    FakeIrcConnection,
    FakeShellTransport,
    ReplyRecorder,
    make_irc_transport,
    make_slack_transport,
)
from tumble_client import TumbleClient


# ---------------------------------------------------------------------------
# 1. Clean Environment (autouse)
# ---------------------------------------------------------------------------

_PREFIXES = ("TUMBLE_", "HUBOT_TUMBLE_")
_TOKENS = ("SLACK_BOT_TOKEN", "SLACK_APP_TOKEN")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove all TUMBLE_/HUBOT_TUMBLE_/Slack token env vars."""
    for key in list(os.environ):
        if any(key.startswith(p) for p in _PREFIXES) or key in _TOKENS:
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# 2. Fake aggregator
# ---------------------------------------------------------------------------

@pytest.fixture
def aggregator():
    return FakeAggregator()


@pytest.fixture
def tumble(aggregator):
    """Client pointed at a remote aggregator, with a credential."""
    return TumbleClient(BASE_URL, api_key="sekrit", transport=aggregator.transport)


@pytest.fixture
def tumble_no_key(aggregator):
    return TumbleClient(BASE_URL, transport=aggregator.transport)


# ---------------------------------------------------------------------------
# 3. Transports
# ---------------------------------------------------------------------------

@pytest.fixture
def slack_transport():
    return make_slack_transport()


@pytest.fixture
def irc_connection():
    return FakeIrcConnection({"#tumble-admins": ["Alice", "bob"], "#general": ["carol"]})


@pytest.fixture
def irc_transport(irc_connection):
    return make_irc_transport(irc_connection)


@pytest.fixture
def shell_transport():
    return FakeShellTransport()


# ---------------------------------------------------------------------------
# 4. Replies
# ---------------------------------------------------------------------------

@pytest.fixture
def reply():
    return ReplyRecorder()
