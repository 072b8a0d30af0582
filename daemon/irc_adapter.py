"""
IRC adapter.

Wraps a connection owned by the host IRC client. The connection must expose
``channels`` (channel name -> roster, see admins.channel_roster) and
``privmsg(target, text)``, which may be a plain function or a coroutine.

The launcher does not start IRC itself. A host client builds one adapter
after registering with the network and awaits ``on_line`` from its PRIVMSG
callback:

    adapter = IrcAdapter(connection, connection.nick, TumbleClient(TUMBLE_BASEURL, TUMBLE_API_KEY))
    await adapter.on_line(sender_nick, target, text)
"""

import inspect
import logging

from bot import TumbleBot
from transport import AdapterProfile, Origin, Requester
from tumble_client import TumbleClient

log = logging.getLogger("tumblebot.irc")


class IrcTransport:
    def __init__(self, connection, nick: str):
        self.connection = connection
        self.nick = nick

    async def post(self, channel: str, text: str, **kwargs):
        for line in text.splitlines() or [""]:
            result = self.connection.privmsg(channel, line)
            if inspect.isawaitable(result):
                await result


class IrcAdapter:
    """Routes PRIVMSG lines from the host client to a TumbleBot."""

    def __init__(self, connection, nick: str, tumble: TumbleClient, **bot_options):
        self.transport = IrcTransport(connection, nick)
        bot_options.setdefault("bot_name", nick)
        self.bot = TumbleBot(self.transport, tumble, **bot_options)

    async def on_line(self, sender: str, target: str, text: str):
        """Handle one PRIVMSG. ``target`` is a channel, or our nick for private messages."""
        if not text or not sender:
            return
        private = target.lower() == self.transport.nick.lower()
        reply_to = sender if private else target

        command = self.bot.strip_address(text)
        addressed = private or command is not None
        requester = Requester(name=sender, user_id=None, adapter=AdapterProfile.IRC)

        async def reply(message: str):
            await self.transport.post(reply_to, message)

        log.debug("<%s> %s: %s", sender, target, text[:80])
        await self.bot.on_message(
            command if command is not None else text, requester, reply, Origin(reply_to), addressed,
        )
