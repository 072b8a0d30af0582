"""Tests for daemon/commands.py and daemon/deletion.py — the delete and ping commands."""

from datetime import datetime, timedelta, timezone

import pytest

from commands import CommandHandler, parse_delete
from deletion import (
    BASEURL_MISSING,
    IRC_CHANNEL_MISSING,
    SECRET_MISSING,
    DeletePipeline,
    extract_id,
)
from transport import Origin
from tumble_client import LINK, QUOTE, TumbleClient
from tests.helpers import (
    BASE_URL,
    irc_requester,
    make_slack_transport,
    shell_requester,
    slack_requester,
    slack_user,
)

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def iso(minutes_ago: float) -> str:
    return (NOW - timedelta(minutes=minutes_ago)).isoformat()


def handler(tumble, transport, control_channel="", irc_network="") -> CommandHandler:
    pipeline = DeletePipeline(tumble, transport, control_channel=control_channel,
                              clock=lambda: NOW.timestamp())
    return CommandHandler(pipeline, irc_network=irc_network)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParseDelete:

    @pytest.mark.parametrize("text,expected", [
        ("tumble delete 42", (LINK, 42)),
        ("TUMBLE DELETE 42", (LINK, 42)),
        ("tumble delete quote 7", (QUOTE, 7)),
        ("tumble quote delete 7", (QUOTE, 7)),
        ("  tumble   delete   9", (LINK, 9)),
    ])
    def test_matches(self, text, expected):
        assert parse_delete(text) == expected

    @pytest.mark.parametrize("text", ["tumble delete", "tumble delete abc", "please tumble delete 4", ""])
    def test_no_match(self, text):
        assert parse_delete(text) is None


class TestExtractId:

    def test_link_query_parameter(self):
        assert extract_id(LINK, "<https://t.example/link/?id=123|123>") == 123

    def test_quote_path_segment(self):
        assert extract_id(QUOTE, "see https://t.example/quote/55") == 55

    def test_quote_pipe_marker(self):
        assert extract_id(QUOTE, "<https://t.example/quote|55>") == 55

    def test_none(self):
        assert extract_id(LINK, "just chatting") is None
        assert extract_id(QUOTE, None) is None


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class TestPreflight:

    @pytest.mark.asyncio
    async def test_no_base_url(self, shell_transport, reply, aggregator):
        h = handler(TumbleClient("", transport=aggregator.transport), shell_transport)
        assert await h.dispatch("tumble delete 5", shell_requester(), reply)
        assert reply.messages == [BASEURL_MISSING]
        assert aggregator.requests == []

    @pytest.mark.asyncio
    async def test_no_credential_remote(self, tumble_no_key, shell_transport, reply, aggregator):
        aggregator.add_link(5, "alice", iso(1))
        await handler(tumble_no_key, shell_transport).dispatch("tumble delete 5", shell_requester(), reply)
        assert reply.messages == [SECRET_MISSING]
        assert aggregator.requests == []

    @pytest.mark.asyncio
    async def test_irc_without_control_channel(self, tumble, irc_transport, reply, aggregator):
        await handler(tumble, irc_transport).dispatch("tumble delete 5", irc_requester(), reply)
        assert reply.messages == [IRC_CHANNEL_MISSING]
        assert aggregator.requests == []


# ---------------------------------------------------------------------------
# Shell
# ---------------------------------------------------------------------------

class TestShellDelete:

    @pytest.mark.asyncio
    async def test_deletes_anything(self, tumble, shell_transport, reply, aggregator):
        aggregator.add_link(5, "somebody-else", iso(600))
        await handler(tumble, shell_transport).dispatch("tumble delete 5", shell_requester(), reply)
        assert reply.messages == ["Deleted tumble link 5."]

    @pytest.mark.asyncio
    async def test_idempotence(self, tumble, shell_transport, reply, aggregator):
        aggregator.add_quote(8)
        h = handler(tumble, shell_transport)
        await h.dispatch("tumble delete quote 8", shell_requester(), reply)
        await h.dispatch("tumble delete quote 8", shell_requester(), reply)
        assert reply.messages == ["Deleted tumble quote 8.", "Quote 8 not found."]

    @pytest.mark.asyncio
    async def test_localhost_without_key(self, shell_transport, reply, aggregator):
        aggregator.add_link(5, "x", iso(1))
        tumble = TumbleClient("http://127.0.0.1:8000", transport=aggregator.transport)
        await handler(tumble, shell_transport).dispatch("tumble delete 5", shell_requester(), reply)
        assert reply.last == "Deleted tumble link 5."

    @pytest.mark.asyncio
    async def test_http_error_reported(self, tumble, shell_transport, reply, aggregator):
        aggregator.fail_status = 500
        await handler(tumble, shell_transport).dispatch("tumble delete 5", shell_requester(), reply)
        assert reply.messages == ["Failed to delete link 5: API error: 500"]


# ---------------------------------------------------------------------------
# IRC
# ---------------------------------------------------------------------------

class TestIrcDelete:

    @pytest.mark.asyncio
    async def test_member_deletes(self, tumble, irc_transport, reply, aggregator):
        aggregator.add_link(5, "someone", iso(600))
        h = handler(tumble, irc_transport, control_channel="#tumble-admins")
        await h.dispatch("tumble delete 5", irc_requester("alice"), reply)
        assert reply.messages == ["Deleted tumble link 5."]
        assert 5 not in aggregator.links

    @pytest.mark.asyncio
    async def test_non_member_denied_before_any_call(self, tumble, irc_transport, reply, aggregator):
        aggregator.add_link(5, "bob", iso(1))
        h = handler(tumble, irc_transport, control_channel="#ops")
        irc_transport.connection.channels["#ops"] = ["alice", "carol"]
        await h.dispatch("tumble delete 5", irc_requester("bob"), reply)
        assert reply.messages == ["You must be in #ops to delete tumble links."]
        assert aggregator.requests == []


# ---------------------------------------------------------------------------
# Slack
# ---------------------------------------------------------------------------

class TestSlackDelete:

    @pytest.mark.asyncio
    async def test_owner_within_window(self, tumble, reply, aggregator):
        transport = make_slack_transport()
        aggregator.add_link(5, "Alice S.", iso(2))
        origin = Origin("C1", "1717243100.000200")
        await handler(tumble, transport).dispatch(
            "tumble delete 5", slack_requester("alice_s", "UALICE"), reply, origin,
        )
        assert reply.messages == ["Deleted tumble link 5 (own link)."]
        audit = transport.client.posted("tumble-info")
        assert len(audit) == 1
        assert f"<{BASE_URL}/link/?id=5|5>" in audit[0]
        assert "<@UALICE>" in audit[0]
        assert "https://example.slack.com/archives/C1/p1717243100000200" in audit[0]

    @pytest.mark.asyncio
    async def test_expired_owner_denied(self, tumble, reply, aggregator):
        transport = make_slack_transport()
        aggregator.add_link(5, "Alice S.", iso(10))
        await handler(tumble, transport).dispatch("tumble delete 5", slack_requester("alice_s"), reply)
        assert "10 minutes ago" in reply.last
        assert aggregator.deletes == []
        assert transport.client.posted("tumble-info") == []

    @pytest.mark.asyncio
    async def test_admin_deletes_others_link(self, tumble, reply, aggregator):
        transport = make_slack_transport(users={"UADMIN": slack_user("UADMIN", "boss", admin=True)})
        aggregator.add_link(5, "alice", iso(60))
        await handler(tumble, transport).dispatch(
            "tumble delete 5", slack_requester("boss", "UADMIN"), reply, Origin("C1", "1.2"),
        )
        assert reply.messages == ["Deleted tumble link 5 (as workspace admin)."]

    @pytest.mark.asyncio
    async def test_quote_skips_metadata_fetch(self, tumble, reply, aggregator):
        transport = make_slack_transport()
        aggregator.add_quote(3)
        await handler(tumble, transport).dispatch("tumble quote delete 3", slack_requester(), reply)
        assert reply.messages == [
            "Only workspace admins can delete quotes (quotes do not track the original submitter)."
        ]
        assert aggregator.requests == []

    @pytest.mark.asyncio
    async def test_missing_link(self, tumble, reply, aggregator):
        transport = make_slack_transport()
        await handler(tumble, transport).dispatch("tumble delete 99", slack_requester(), reply)
        assert reply.messages == ["Link 99 not found."]

    @pytest.mark.asyncio
    async def test_unparsable_response(self, tumble, reply, aggregator):
        transport = make_slack_transport()
        aggregator.add_link(5, "alice", iso(1))
        aggregator.raw_body = "not json"
        await handler(tumble, transport).dispatch("tumble delete 5", slack_requester("alice"), reply)
        assert len(reply.messages) == 1
        assert reply.messages[0].startswith("Failed to delete link 5: Parse error")
        assert aggregator.deletes == []

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_change_reply(self, tumble, reply, aggregator):
        transport = make_slack_transport()
        transport.client.chat_postMessage.side_effect = RuntimeError("channel_not_found")
        aggregator.add_link(5, "alice", iso(1))
        await handler(tumble, transport).dispatch(
            "tumble delete 5", slack_requester("alice"), reply, Origin("C1", "1.2"),
        )
        assert reply.messages == ["Deleted tumble link 5 (own link)."]


# ---------------------------------------------------------------------------
# Ping
# ---------------------------------------------------------------------------

class TestPing:

    @pytest.mark.asyncio
    async def test_all_checks_pass(self, tumble, shell_transport, reply):
        assert await handler(tumble, shell_transport).dispatch("tumble ping", shell_requester(), reply)
        report = reply.last
        assert report.startswith("Tumble Status: All checks passed")
        assert f"  - TUMBLE_BASEURL: {BASE_URL}" in report
        assert "  - TUMBLE_API_KEY: configured" in report
        assert "  - Adapter: Shell" in report
        assert "Tumble server: OK (" in report
        assert "v2.4.0" in report

    @pytest.mark.asyncio
    async def test_server_down(self, tumble, shell_transport, reply, aggregator):
        aggregator.fail_status = 502
        await handler(tumble, shell_transport).dispatch("tumble ping", shell_requester(), reply)
        assert reply.last.startswith("Tumble Status: Some checks failed")
        assert "Tumble server: FAILED (server_error: 502)" in reply.last

    @pytest.mark.asyncio
    async def test_no_base_url(self, shell_transport, reply):
        await handler(TumbleClient(""), shell_transport).dispatch("tumble ping", shell_requester(), reply)
        assert "TUMBLE_BASEURL: not set" in reply.last
        assert "Tumble server: skipped (no base URL)" in reply.last

    @pytest.mark.asyncio
    async def test_irc_lines(self, tumble, irc_transport, reply):
        h = handler(tumble, irc_transport, control_channel="#ops")
        await h.dispatch("tumble ping", irc_requester(), reply)
        assert "TUMBLE_IRC_ADMIN_CHANNEL: #ops" in reply.last
        assert "TUMBLE_IRC_NETWORK: not set (client_network will be null)" in reply.last
        assert "Adapter: IRC" in reply.last

    @pytest.mark.asyncio
    async def test_slack_team_id(self, tumble, reply):
        await handler(tumble, make_slack_transport()).dispatch("tumble ping", slack_requester(), reply)
        assert "Slack team ID: T0TEAM" in reply.last

    @pytest.mark.asyncio
    async def test_unknown_command(self, tumble, shell_transport, reply):
        assert not await handler(tumble, shell_transport).dispatch("hello there", shell_requester(), reply)
        assert reply.messages == []
