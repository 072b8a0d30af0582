"""
Common acknowledgment path for links and quotes posted to tumble.

Slack gets an emoji on the original message and an audit line in the
audit channel. IRC and the shell get a plain reply with the permalink.
"""

import logging
from typing import Awaitable, Callable, Optional

from chat_utils import client_metadata
from config import AUDIT_CHANNEL
from transport import AdapterProfile, Origin, Requester
from tumble_client import TumbleClient

log = logging.getLogger("tumblebot.posting")

Reply = Callable[[str], Awaitable[None]]


class Poster:
    kind = ""

    def __init__(
        self,
        tumble: TumbleClient,
        transport,
        reaction: str,
        audit_channel: str = AUDIT_CHANNEL,
        irc_network: str = "",
    ):
        self.tumble = tumble
        self.transport = transport
        self.reaction = reaction
        self.audit_channel = audit_channel
        self.irc_network = irc_network

    def metadata(self, requester: Requester, origin: Optional[Origin]) -> dict:
        team_id = ""
        workspace = getattr(self.transport, "workspace", None)
        if workspace is not None:
            team_id = workspace.team_id
        channel = origin.channel if origin else ""
        return client_metadata(requester, channel, team_id=team_id, irc_network=self.irc_network)

    async def acknowledge(self, resource_id, requester: Requester, reply: Reply,
                          origin: Optional[Origin], verb: str = "posted in"):
        permalink = self.tumble.permalink(self.kind, resource_id)
        if requester.adapter != AdapterProfile.SLACK or origin is None:
            await reply(f"tumble {self.kind} {permalink} (id: {resource_id})")
            return

        archive = self.transport.workspace.permalink(origin.channel, origin.ts)
        text = (
            f"<{self.tumble.base_url}|tumble> {self.kind} <{permalink}|{resource_id}> "
            f"{verb} <#{origin.channel}> by <@{requester.user_id}> "
            f"(<{archive}|slack archive>)"
        )
        try:
            await self.transport.post(self.audit_channel, text, unfurl_links=False)
        except Exception as e:
            log.error("Failed to post %s ack to %s: %s", self.kind, self.audit_channel, e)
        try:
            await self.transport.react(origin.channel, origin.ts, self.reaction)
        except Exception as e:
            log.debug("Reaction %s not added: %s", self.reaction, e)
