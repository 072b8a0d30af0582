"""
Delete pipeline shared by the command and reaction paths.

    preflight (base URL, credential, IRC control channel)
      -> fetch metadata (Slack links only)
      -> authorize
      -> delete
      -> audit line (Slack only)

Each step raises from errors.py; callers turn the exception into exactly
one user-visible reply.
"""

import logging
import re
import time
from typing import Callable, Optional

import admins
from authorizer import ADMIN, OWN_RESOURCE, AuthorizationDecision, authorize
from config import AUDIT_CHANNEL, DELETE_WINDOW_SECONDS
from errors import ConfigurationMissing, NoSecret, NotAuthorized, NotFound
from transport import AdapterProfile, Origin, Requester
from tumble_client import LINK, QUOTE, TumbleClient

log = logging.getLogger("tumblebot.deletion")

BASEURL_MISSING = "TUMBLE_BASEURL is not configured."
SECRET_MISSING = "Delete functionality requires TUMBLE_API_KEY to be set."
IRC_CHANNEL_MISSING = "Delete functionality requires TUMBLE_IRC_ADMIN_CHANNEL to be set."

# Link ids appear as a query parameter in permalinks (/link/?id=123);
# quote ids as a path segment (/quote/123) or a Slack label (quote|123).
_ID_PATTERNS = {
    LINK: re.compile(r"id=(\d+)"),
    QUOTE: re.compile(r"/quote/(\d+)|quote\|(\d+)"),
}

_REASON_TEXT = {
    OWN_RESOURCE: "own link",
    ADMIN: "as workspace admin",
}


def extract_id(kind: str, text: Optional[str]) -> Optional[int]:
    """Pull a resource id out of free-form message text, or None."""
    if not text:
        return None
    match = _ID_PATTERNS[kind].search(text)
    if not match:
        return None
    return int(next(g for g in match.groups() if g))


def reason_text(decision: AuthorizationDecision) -> str:
    return _REASON_TEXT.get(decision.reason, decision.reason)


def success_message(kind: str, resource_id, decision: AuthorizationDecision,
                    profile: AdapterProfile) -> str:
    if profile == AdapterProfile.SLACK:
        return f"Deleted tumble {kind} {resource_id} ({reason_text(decision)})."
    return f"Deleted tumble {kind} {resource_id}."


def failure_message(kind: str, resource_id, error: Exception, brief: bool = False) -> str:
    """User-facing text for a failed delete. ``brief`` drops the id (reaction path)."""
    if isinstance(error, NotAuthorized):
        return error.decision.message or f"You are not allowed to delete this {kind}."
    if isinstance(error, NotFound):
        if brief:
            return f"{kind.capitalize()} not found."
        return f"{kind.capitalize()} {resource_id} not found."
    if isinstance(error, NoSecret):
        return SECRET_MISSING
    if isinstance(error, ConfigurationMissing):
        return BASEURL_MISSING
    return f"Failed to delete {kind} {resource_id}: {error}"


class DeletePipeline:
    """Authorize-and-delete for one transport."""

    def __init__(
        self,
        tumble: TumbleClient,
        transport,
        control_channel: str = "",
        audit_channel: str = AUDIT_CHANNEL,
        window: int = DELETE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.tumble = tumble
        self.transport = transport
        self.control_channel = control_channel
        self.audit_channel = audit_channel
        self.window = window
        self.clock = clock

    def preflight(self, profile: AdapterProfile) -> Optional[str]:
        """Configuration problems that stop a delete before any network call."""
        if not self.tumble.base_url:
            return BASEURL_MISSING
        if not self.tumble.can_delete:
            return SECRET_MISSING
        if profile == AdapterProfile.IRC and not self.control_channel:
            return IRC_CHANNEL_MISSING
        return None

    async def run(self, kind: str, resource_id, requester: Requester) -> AuthorizationDecision:
        """Authorize and delete. Raises NotAuthorized on denial."""
        metadata = None
        # Quotes have no owner to check against
        if requester.adapter == AdapterProfile.SLACK and kind == LINK:
            metadata = await self.tumble.fetch_resource(kind, resource_id)

        async def check_admin():
            return await admins.is_admin(
                requester.adapter, self.transport, requester, self.control_channel
            )

        decision = await authorize(
            kind, metadata, requester, check_admin,
            now=self.clock(), window=self.window, control_channel=self.control_channel,
        )
        if not decision.allowed:
            log.info("Denied delete of %s %s for %s: %s",
                     kind, resource_id, requester.name, decision.reason)
            raise NotAuthorized(decision)

        await self.tumble.delete_resource(kind, resource_id)
        return decision

    async def audit(
        self,
        kind: str,
        resource_id,
        requester: Requester,
        decision: AuthorizationDecision,
        origin: Optional[Origin],
        via: str = "",
    ):
        """Post a permanent record of a Slack delete to the audit channel."""
        if requester.adapter != AdapterProfile.SLACK or origin is None or not origin.ts:
            return
        workspace = self.transport.workspace
        archive = workspace.permalink(origin.channel, origin.ts)
        via_text = f" via {via}" if via else ""
        text = (
            f"Tumble {kind} <{self.tumble.permalink(kind, resource_id)}|{resource_id}> "
            f"deleted{via_text} by <@{requester.user_id}> ({reason_text(decision)}) "
            f"(<{archive}|slack archive>)"
        )
        try:
            await self.transport.post(self.audit_channel, text, unfurl_links=False)
        except Exception as e:
            log.error("Failed to post audit line for %s %s: %s", kind, resource_id, e)
