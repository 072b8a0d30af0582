"""Shared test fakes and utilities."""

import json
import re
from unittest.mock import AsyncMock

import httpx

from chat_utils import WorkspaceIdentity
from irc_adapter import IrcTransport
from transport import AdapterProfile, Requester


BASE_URL = "https://tumble.example.com"

OPENAPI_DOC = {"openapi": "3.1.0", "info": {"title": "Tumble", "version": "2.4.0"}}

_RESOURCE_RE = re.compile(r"^/api/v1/(links|quotes)/(\d+)$")


class FakeAggregator:
    """In-memory Tumble server. Records every request it sees.

    Resources live in ``links`` / ``quotes`` keyed by id; deleting one removes
    it, so a second delete of the same id answers 404.
    """

    def __init__(self):
        self.links: dict[int, dict] = {}
        self.quotes: dict[int, dict] = {}
        self.requests: list[httpx.Request] = []
        self.next_id = 100
        self.fail_status: int | None = None
        self.raw_body: str | None = None
        self.openapi = OPENAPI_DOC
        self.duplicate_of: dict | None = None
        self.transport = httpx.MockTransport(self._handle)

    def add_link(self, link_id: int, user: str, created_at: str, url: str = "https://example.com") -> dict:
        self.links[link_id] = {"id": link_id, "url": url, "user": user, "created_at": created_at}
        return self.links[link_id]

    def add_quote(self, quote_id: int, quote: str = "hi", author: str = "someone") -> dict:
        self.quotes[quote_id] = {"id": quote_id, "quote": quote, "author": author}
        return self.quotes[quote_id]

    @property
    def deletes(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "DELETE"]

    def _json(self, status: int, body) -> httpx.Response:
        if self.raw_body is not None:
            return httpx.Response(status, content=self.raw_body.encode())
        return httpx.Response(status, json=body)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_status:
            return httpx.Response(self.fail_status, text="boom")

        path = request.url.path
        if path == "/api/openapi.json":
            return self._json(200, self.openapi)

        match = _RESOURCE_RE.match(path)
        if match:
            store = self.links if match.group(1) == "links" else self.quotes
            resource_id = int(match.group(2))
            if resource_id not in store:
                return httpx.Response(404, json={"detail": "not found"})
            if request.method == "DELETE":
                del store[resource_id]
                return httpx.Response(204)
            return self._json(200, store[resource_id])

        if request.method == "POST" and path in ("/api/v1/links", "/api/v1/quotes"):
            body = json.loads(request.content)
            if self.duplicate_of is not None:
                return self._json(200, {
                    "id": self.duplicate_of["id"],
                    "is_duplicate": True,
                    "previous_submissions": [self.duplicate_of],
                })
            self.next_id += 1
            body["id"] = self.next_id
            store = self.links if path.endswith("links") else self.quotes
            store[self.next_id] = body
            return self._json(201, body)

        return httpx.Response(404)


class ReplyRecorder:
    """Async reply callable that remembers what it was asked to say."""

    def __init__(self):
        self.messages: list[str] = []

    async def __call__(self, text: str):
        self.messages.append(text)

    @property
    def last(self) -> str:
        return self.messages[-1] if self.messages else ""


class FakeSlackClient:
    """AsyncMock-backed stand-in for slack_sdk's AsyncWebClient."""

    def __init__(self, users: dict | None = None, history: dict | None = None):
        self.users = users or {}
        self.history = history or {}
        self.auth_test = AsyncMock(return_value={
            "team_id": "T0TEAM", "url": "https://example.slack.com/", "user_id": "UBOT",
        })
        self.users_info = AsyncMock(side_effect=self._users_info)
        self.conversations_history = AsyncMock(side_effect=self._history)
        self.chat_postMessage = AsyncMock(return_value={"ok": True})
        self.chat_postEphemeral = AsyncMock(return_value={"ok": True})
        self.reactions_add = AsyncMock(return_value={"ok": True})

    async def _users_info(self, user):
        if user not in self.users:
            raise RuntimeError("user_not_found")
        return {"ok": True, "user": self.users[user]}

    async def _history(self, channel, latest=None, oldest=None, inclusive=False, limit=100):
        message = self.history.get((channel, latest))
        return {"ok": True, "messages": [message] if message else []}

    def posted(self, channel: str) -> list[str]:
        return [
            c.kwargs["text"] for c in self.chat_postMessage.call_args_list
            if c.kwargs.get("channel") == channel
        ]

    @property
    def ephemerals(self) -> list[str]:
        return [c.kwargs["text"] for c in self.chat_postEphemeral.call_args_list]


def slack_user(user_id: str, display_name: str = "", admin: bool = False, owner: bool = False) -> dict:
    return {
        "id": user_id,
        "name": display_name.lower() or user_id.lower(),
        "is_admin": admin,
        "is_owner": owner,
        "profile": {"display_name": display_name, "real_name": display_name},
    }


def make_slack_transport(users: dict | None = None, history: dict | None = None):
    # Deferred: slack_adapter pulls in slack_bolt
    from slack_adapter import SlackTransport

    client = FakeSlackClient(users, history)
    workspace = WorkspaceIdentity("T0TEAM", "https://example.slack.com")
    return SlackTransport(client, "xoxb-test", workspace)


class FakeIrcConnection:
    """Host IRC client stand-in: channel rosters plus a privmsg log."""

    def __init__(self, channels: dict | None = None):
        self.channels = channels or {}
        self.sent: list[tuple[str, str]] = []

    def privmsg(self, target: str, text: str):
        self.sent.append((target, text))


def make_irc_transport(connection=None, nick: str = "tumblebot") -> IrcTransport:
    return IrcTransport(connection or FakeIrcConnection(), nick)


class FakeShellTransport:
    """No token and no connection: classifies as the shell."""

    def __init__(self):
        self.posted: list[str] = []

    async def post(self, channel: str, text: str, **kwargs):
        self.posted.append(text)


def slack_requester(name: str = "alice", user_id: str = "UALICE") -> Requester:
    return Requester(name=name, user_id=user_id, adapter=AdapterProfile.SLACK)


def irc_requester(name: str = "Alice") -> Requester:
    return Requester(name=name, user_id=None, adapter=AdapterProfile.IRC)


def shell_requester(name: str = "shell-tester") -> Requester:
    return Requester(name=name, user_id=None, adapter=AdapterProfile.SHELL)
