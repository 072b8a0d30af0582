"""
Slack Socket Mode adapter.

Every channel message is offered to the link and quote capture; messages
that mention the bot (or arrive by DM) are also checked for commands.
Reactions are forwarded for delete-by-reaction.
"""

import logging
import os
import re
from typing import Optional

from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp

from bot import TumbleBot
from chat_utils import WorkspaceIdentity
from config import SLACK_TEAM_ID, SLACK_URL
from transport import AdapterProfile, Origin, Requester
from tumble_client import TumbleClient

log = logging.getLogger("tumblebot.slack")

SLACK_BOT_TOKEN = os.environ.get("SLACK_BOT_TOKEN")
SLACK_APP_TOKEN = os.environ.get("SLACK_APP_TOKEN")


class SlackTransport:
    """Thin async wrapper over the Slack Web API used by the tumble handlers."""

    def __init__(self, client, token: str, workspace: Optional[WorkspaceIdentity] = None):
        self.client = client
        self.token = token
        self.workspace = workspace or WorkspaceIdentity(SLACK_TEAM_ID, SLACK_URL)

    async def post(self, channel: str, text: str, thread_ts: Optional[str] = None, **kwargs):
        args = {"channel": channel, "text": text, **kwargs}
        if thread_ts:
            args["thread_ts"] = thread_ts
        await self.client.chat_postMessage(**args)

    async def post_ephemeral(self, channel: str, user_id: str, text: str):
        await self.client.chat_postEphemeral(channel=channel, user=user_id, text=text)

    async def react(self, channel: str, ts: str, emoji: str):
        await self.client.reactions_add(channel=channel, timestamp=ts, name=emoji)

    async def fetch_message(self, channel: str, ts: str) -> Optional[dict]:
        """The single message at ``ts`` in ``channel``, or None."""
        resp = await self.client.conversations_history(
            channel=channel, latest=ts, oldest=ts, inclusive=True, limit=1,
        )
        messages = resp.get("messages") or []
        return messages[0] if messages else None

    async def resolve_display_name(self, user_id: str) -> str:
        try:
            resp = await self.client.users_info(user=user_id)
        except Exception as e:
            log.warning("Could not resolve display name for %s: %s", user_id, e)
            return "unknown"
        user = resp.get("user") or {}
        profile = user.get("profile") or {}
        return (
            profile.get("display_name")
            or user.get("real_name")
            or profile.get("real_name")
            or user.get("name")
            or "unknown"
        )


class SlackAdapter:
    """Receives Slack events and routes them to a TumbleBot."""

    def __init__(
        self,
        tumble: TumbleClient,
        bot_token: Optional[str] = SLACK_BOT_TOKEN,
        app_token: Optional[str] = SLACK_APP_TOKEN,
        **bot_options,
    ):
        if not bot_token:
            raise RuntimeError("SLACK_BOT_TOKEN not set")
        if not app_token:
            raise RuntimeError("SLACK_APP_TOKEN not set (needed for Socket Mode)")

        self.app = AsyncApp(token=bot_token)
        self._app_token = app_token
        self.transport = SlackTransport(self.app.client, bot_token)
        self.bot = TumbleBot(self.transport, tumble, **bot_options)
        self._bot_user_id = ""
        self._handler: Optional[AsyncSocketModeHandler] = None
        self._setup_handlers()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get_bot_user_id(self) -> str:
        if not self._bot_user_id:
            resp = await self.app.client.auth_test()
            self._bot_user_id = resp.get("user_id", "")
            log.info("Bot user ID: %s", self._bot_user_id)
        return self._bot_user_id

    def strip_mention(self, text: str) -> Optional[str]:
        """Text after a leading <@bot> mention, or None if there isn't one."""
        if not self._bot_user_id:
            return None
        match = re.match(rf"^\s*<@{self._bot_user_id}>[:,]?\s*(.*)$", text, re.DOTALL)
        return match.group(1) if match else None

    async def handle_message(self, event: dict):
        if event.get("subtype") or event.get("bot_id"):
            return
        text = event.get("text") or ""
        user_id = event.get("user", "")
        channel = event.get("channel", "")
        if not text or not user_id:
            return
        if user_id == await self._get_bot_user_id():
            return

        addressed = event.get("channel_type") == "im"
        command = self.strip_mention(text)
        if command is None:
            command = self.bot.strip_address(text)
        if command is not None:
            addressed = True
        else:
            command = text

        name = await self.transport.resolve_display_name(user_id)
        requester = Requester(name=name, user_id=user_id, adapter=AdapterProfile.SLACK)
        origin = Origin(channel, event.get("ts", ""))

        async def reply(message: str):
            await self.transport.post(channel, message)

        log.debug("Message from %s in %s: %s", name, channel, text[:80])
        await self.bot.on_message(command if addressed else text, requester, reply, origin, addressed)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _setup_handlers(self):
        @self.app.event("message")
        async def on_message(event, client):
            await self.handle_message(event)

        @self.app.event("reaction_added")
        async def on_reaction(event, client):
            await self.bot.on_reaction(event)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start(self):
        """Resolve the workspace identity and run Socket Mode until stopped."""
        await self._get_bot_user_id()
        try:
            await self.transport.workspace.ensure(self.app.client)
        except Exception as e:
            log.warning("Could not resolve Slack team ID: %s", e)

        self._handler = AsyncSocketModeHandler(self.app, self._app_token)
        log.info("Slack Socket Mode starting")
        await self._handler.start_async()

    async def stop(self):
        if self._handler:
            await self._handler.close_async()
