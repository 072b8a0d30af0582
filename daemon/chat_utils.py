"""
Shared chat helpers: bot self-detection, client metadata and the Slack workspace identity.
"""

import logging
from typing import Optional

from transport import AdapterProfile, Requester

log = logging.getLogger("tumblebot.chat")


# ---------------------------------------------------------------------------
# Bot self-detection
# ---------------------------------------------------------------------------

def bot_identifiers(name: str, alias: str = "") -> list[str]:
    """Lowercased names the bot answers to, without duplicates."""
    identifiers = []
    if name:
        identifiers.append(name.lower())
    if alias and alias.lower() not in identifiers:
        identifiers.append(alias.lower())
    return identifiers


def is_from_bot(user_name: Optional[str], identifiers: list[str]) -> bool:
    if not user_name:
        return False
    return user_name.lower() in identifiers


def is_quoting_bot(text: Optional[str], identifiers: list[str]) -> bool:
    """Block quotes or attributions of the bot ("> bot ...", "bot: ...", "bot said")."""
    text = (text or "").lower()
    for ident in identifiers:
        if (
            text.startswith(f"> {ident}")
            or text.startswith(f"{ident}:")
            or text.startswith(f"{ident} :")
            or text.startswith(f"{ident} said")
            or text.startswith(f"{ident} posted")
        ):
            return True
    return False


def should_ignore(user_name: Optional[str], text: Optional[str], identifiers: list[str]) -> bool:
    return is_from_bot(user_name, identifiers) or is_quoting_bot(text, identifiers)


# ---------------------------------------------------------------------------
# Client metadata sent alongside posted links and quotes
# ---------------------------------------------------------------------------

def client_metadata(
    requester: Requester,
    channel: str,
    team_id: str = "",
    irc_network: str = "",
) -> dict:
    """Tag a submission with where it came from. Shell submissions carry nothing."""
    if requester.adapter == AdapterProfile.SLACK:
        return {
            "client_type": "slack",
            "client_network": team_id or None,
            "client_channel": channel,
            "client_user_id": requester.user_id,
            "client_user_name": requester.name,
        }
    if requester.adapter == AdapterProfile.IRC:
        return {
            "client_type": "irc",
            "client_network": irc_network or None,
            "client_channel": channel,
            "client_user_id": None,
            "client_user_name": requester.name,
        }
    return {}


# ---------------------------------------------------------------------------
# Slack workspace identity
# ---------------------------------------------------------------------------

class WorkspaceIdentity:
    """Slack team id + workspace URL, resolved once and read-only afterwards.

    Two handlers racing on first use may both call auth.test; the second
    write stores the same values.
    """

    def __init__(self, team_id: str = "", url: str = ""):
        self.team_id = team_id
        self.url = url.rstrip("/")

    async def ensure(self, client) -> "WorkspaceIdentity":
        if self.team_id and self.url:
            return self
        resp = await client.auth_test()
        self.team_id = self.team_id or resp.get("team_id", "")
        if resp.get("url") and not self.url:
            self.url = resp["url"].rstrip("/")
        log.info("Slack team ID resolved: %s", self.team_id)
        return self

    def permalink(self, channel: str, ts: str) -> str:
        """Archive link to a message: {workspace}/archives/{channel}/p{ts without '.'}."""
        base = self.url or "https://slack.com"
        return f"{base}/archives/{channel}/p{ts.replace('.', '', 1)}"
