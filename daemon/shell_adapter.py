"""
Local shell adapter for trying the bot without a chat network.

Every line typed is treated as addressed to the bot, so commands work
with or without a leading "tumblebot:".
"""

import asyncio
import logging
import os
from datetime import datetime
from typing import Optional

from bot import TumbleBot
from transport import AdapterProfile, Origin, Requester
from tumble_client import TumbleClient

log = logging.getLogger("tumblebot.shell")


class ShellTransport:
    """No token, no connection: classifies as the shell profile."""

    def __init__(self, user_name: Optional[str] = None):
        self.user_name = user_name or os.environ.get("USER") or "shell-tester"

    async def post(self, channel: str, text: str, **kwargs):
        print(text)


class ShellAdapter:
    """Async input loop feeding terminal lines to a TumbleBot."""

    def __init__(self, tumble: TumbleClient, user_name: Optional[str] = None, **bot_options):
        self.transport = ShellTransport(user_name)
        self.bot = TumbleBot(self.transport, tumble, **bot_options)
        self._running = False

    def log_activity(self, tag: str, text: str):
        ts = datetime.now().strftime("%H:%M:%S")
        print(f"[{ts}] [{tag}] {text[:200]}")

    async def handle_line(self, text: str):
        text = text.strip()
        if not text:
            return
        command = self.bot.strip_address(text)
        requester = Requester(name=self.transport.user_name, user_id=None, adapter=AdapterProfile.SHELL)

        async def reply(message: str):
            await self.transport.post("shell", message)

        await self.bot.on_message(
            command if command is not None else text, requester, reply, Origin("shell"), addressed=True,
        )

    async def input_loop(self):
        """Read terminal input until EOF or Ctrl+C."""
        self._running = True
        loop = asyncio.get_event_loop()

        while self._running:
            try:
                text = await loop.run_in_executor(None, self._read_input)
                if text is None:
                    break
                await self.handle_line(text)
            except (EOFError, KeyboardInterrupt):
                break
            except Exception as e:
                log.error("Error handling shell input: %s", e, exc_info=True)
                self.log_activity("ERROR", str(e))

        self._running = False

    def _read_input(self) -> str | None:
        try:
            return input(f"{self.transport.user_name} > ")
        except EOFError:
            return None

    def stop(self):
        self._running = False
