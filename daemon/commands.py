"""
Commands addressed to the bot.

    tumble delete <id>          delete a link
    tumble delete quote <id>    delete a quote
    tumble quote delete <id>    delete a quote
    tumble ping                 configuration and connectivity report
"""

import logging
import re
from typing import Awaitable, Callable, Optional

from deletion import DeletePipeline, failure_message, success_message
from errors import NotAuthorized, NotFound, TumbleError
from transport import AdapterProfile, Origin, Requester
from tumble_client import LINK, QUOTE

log = logging.getLogger("tumblebot.commands")

Reply = Callable[[str], Awaitable[None]]

DELETE_QUOTE_RE = re.compile(r"^\s*tumble\s+(?:delete\s+quote|quote\s+delete)\s+(\d+)", re.IGNORECASE)
DELETE_LINK_RE = re.compile(r"^\s*tumble\s+delete\s+(\d+)", re.IGNORECASE)
PING_RE = re.compile(r"^\s*tumble\s+ping\s*$", re.IGNORECASE)

_ADAPTER_LABELS = {
    AdapterProfile.SLACK: "Slack",
    AdapterProfile.IRC: "IRC",
    AdapterProfile.SHELL: "Shell",
}


def parse_delete(text: str) -> Optional[tuple[str, int]]:
    """(kind, id) for a delete command, or None."""
    match = DELETE_QUOTE_RE.match(text or "")
    if match:
        return QUOTE, int(match.group(1))
    match = DELETE_LINK_RE.match(text or "")
    if match:
        return LINK, int(match.group(1))
    return None


class CommandHandler:
    """Handles commands for one transport."""

    def __init__(self, pipeline: DeletePipeline, irc_network: str = ""):
        self.pipeline = pipeline
        self.tumble = pipeline.tumble
        self.irc_network = irc_network

    async def dispatch(self, text: str, requester: Requester, reply: Reply,
                       origin: Optional[Origin] = None) -> bool:
        """Run the matching command. Returns False if nothing matched."""
        parsed = parse_delete(text)
        if parsed:
            kind, resource_id = parsed
            await self.handle_delete(kind, resource_id, requester, reply, origin)
            return True
        if PING_RE.match(text or ""):
            await self.handle_ping(requester, reply)
            return True
        return False

    # ------------------------------------------------------------------
    # tumble delete
    # ------------------------------------------------------------------

    async def handle_delete(self, kind: str, resource_id: int, requester: Requester,
                            reply: Reply, origin: Optional[Origin] = None):
        problem = self.pipeline.preflight(requester.adapter)
        if problem:
            await reply(problem)
            return

        try:
            decision = await self.pipeline.run(kind, resource_id, requester)
        except (NotAuthorized, NotFound) as e:
            await reply(failure_message(kind, resource_id, e))
            return
        except TumbleError as e:
            log.error("Failed to delete tumble %s %s: %s", kind, resource_id, e)
            await reply(failure_message(kind, resource_id, e))
            return
        except Exception as e:
            log.error("Unexpected error deleting tumble %s %s: %s", kind, resource_id, e, exc_info=True)
            await reply(failure_message(kind, resource_id, e))
            return

        await reply(success_message(kind, resource_id, decision, requester.adapter))
        await self.pipeline.audit(kind, resource_id, requester, decision, origin)
        log.info("Deleted tumble %s %s for %s (%s)", kind, resource_id, requester.name, decision.reason)

    # ------------------------------------------------------------------
    # tumble ping
    # ------------------------------------------------------------------

    async def handle_ping(self, requester: Requester, reply: Reply):
        checks = []
        all_passed = True
        base = self.tumble.base_url
        adapter = requester.adapter

        if base:
            checks.append(f"TUMBLE_BASEURL: {base}")
        else:
            checks.append("TUMBLE_BASEURL: not set")
            all_passed = False

        if self.tumble.api_key:
            checks.append("TUMBLE_API_KEY: configured")
        elif self.tumble.is_local:
            checks.append("TUMBLE_API_KEY: not set (not required for localhost)")
        else:
            checks.append("TUMBLE_API_KEY: not set (authenticated operations will not work)")

        if adapter == AdapterProfile.IRC:
            channel = self.pipeline.control_channel
            if channel:
                checks.append(f"TUMBLE_IRC_ADMIN_CHANNEL: {channel}")
            else:
                checks.append("TUMBLE_IRC_ADMIN_CHANNEL: not set (IRC deletes will not work)")
            if self.irc_network:
                checks.append(f"TUMBLE_IRC_NETWORK: {self.irc_network}")
            else:
                checks.append("TUMBLE_IRC_NETWORK: not set (client_network will be null)")

        if adapter == AdapterProfile.SLACK:
            workspace = getattr(self.pipeline.transport, "workspace", None)
            team_id = workspace.team_id if workspace else ""
            if team_id:
                checks.append(f"Slack team ID: {team_id}")
            else:
                checks.append("Slack team ID: not resolved (client_network will be null)")

        checks.append(f"Adapter: {_ADAPTER_LABELS[adapter]}")

        if base:
            try:
                result = await self.tumble.ping()
                version = f", v{result['version']}" if result.get("version") else ""
                checks.append(f"Tumble server: OK ({result['elapsed_ms']}ms{version})")
            except TumbleError as e:
                checks.append(f"Tumble server: FAILED ({e})")
                all_passed = False
        else:
            checks.append("Tumble server: skipped (no base URL)")

        status = "All checks passed" if all_passed else "Some checks failed"
        lines = "\n".join(f"  - {c}" for c in checks)
        await reply(f"Tumble Status: {status}\n{lines}")
