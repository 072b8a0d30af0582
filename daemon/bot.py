"""
TumbleBot routes chat events from any transport to the tumble handlers.

Transports build a Requester and a reply coroutine per message and call
on_message(); Slack also forwards reaction events to on_reaction().
"""

import logging
import re
import time
from typing import Awaitable, Callable, Optional

from chat_utils import bot_identifiers, should_ignore
from commands import CommandHandler
from config import (
    AUDIT_CHANNEL,
    BOT_ALIAS,
    BOT_NAME,
    CONFIRM_REACTION,
    DELETE_REACTION,
    DELETE_WINDOW_SECONDS,
    IRC_ADMIN_CHANNEL,
    IRC_NETWORK,
)
from deletion import DeletePipeline
from links import LinkPoster
from quotes import QuotePoster
from reactions import ReactionHandler
from transport import AdapterProfile, Origin, Requester, classify
from tumble_client import TumbleClient

log = logging.getLogger("tumblebot.bot")


class TumbleBot:
    """All tumble behaviour for one chat transport."""

    def __init__(
        self,
        transport,
        tumble: TumbleClient,
        control_channel: str = IRC_ADMIN_CHANNEL,
        irc_network: str = IRC_NETWORK,
        audit_channel: str = AUDIT_CHANNEL,
        delete_reaction: str = DELETE_REACTION,
        confirm_reaction: str = CONFIRM_REACTION,
        bot_name: str = BOT_NAME,
        bot_alias: str = BOT_ALIAS,
        window: int = DELETE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.transport = transport
        self.tumble = tumble
        self.identifiers = bot_identifiers(bot_name, bot_alias)
        self.pipeline = DeletePipeline(
            tumble, transport,
            control_channel=control_channel,
            audit_channel=audit_channel,
            window=window,
            clock=clock,
        )
        self.commands = CommandHandler(self.pipeline, irc_network=irc_network)
        self.reactions = ReactionHandler(
            self.pipeline, delete_reaction=delete_reaction, confirm_reaction=confirm_reaction,
        )
        posting = {"audit_channel": audit_channel, "irc_network": irc_network}
        self.links = LinkPoster(tumble, transport, **posting)
        self.quotes = QuotePoster(tumble, transport, **posting)

    @property
    def profile(self) -> AdapterProfile:
        return classify(self.transport)

    def requester(self, name: str, user_id: Optional[str] = None) -> Requester:
        return Requester(name=name, user_id=user_id, adapter=self.profile)

    def strip_address(self, text: str) -> Optional[str]:
        """Text after a leading bot name ("bot: ", "@bot "), or None if not addressed."""
        for ident in self.identifiers:
            match = re.match(rf"^\s*@?{re.escape(ident)}[:,]?\s+(.*)$", text, re.IGNORECASE | re.DOTALL)
            if match:
                return match.group(1)
        return None

    async def on_message(
        self,
        text: str,
        requester: Requester,
        reply: Callable[[str], Awaitable[None]],
        origin: Optional[Origin] = None,
        addressed: bool = False,
    ):
        """Handle one chat message. ``addressed`` means it was spoken to the bot."""
        if should_ignore(requester.name, text, self.identifiers):
            log.debug("Ignoring own or quoted message from %s", requester.name)
            return
        if addressed and await self.commands.dispatch(text, requester, reply, origin):
            return
        await self.quotes.handle(text, requester, reply, origin)
        await self.links.handle(text, requester, reply, origin)

    async def on_reaction(self, event: dict):
        await self.reactions.handle(event)
