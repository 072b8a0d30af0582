"""
Deletion authorizer: decides whether a requester may delete a link or quote.

Policy is a table keyed by adapter:

    shell  trusted local operator, no checks at all (local testing only)
    irc    control-channel membership is necessary and sufficient
    slack  links: owner within the delete window, else workspace admin
           quotes: workspace admin only (quotes record no submitter)

Missing data never allows: an unknown owner matches nobody, and a missing,
unparsable or future timestamp counts as outside the window.
"""

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from config import DELETE_WINDOW_SECONDS
from transport import AdapterProfile, Requester
from tumble_client import LINK

log = logging.getLogger("tumblebot.authorizer")

OWN_RESOURCE = "own_resource"
ADMIN = "admin"
TIME_EXPIRED = "time_expired"
NOT_OWNER = "not_owner"
ADMIN_ONLY = "admin_only"
LOCAL_OPERATOR = "local_operator"

QUOTE_ADMIN_ONLY_MESSAGE = (
    "Only workspace admins can delete quotes (quotes do not track the original submitter)."
)


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    reason: str
    message: Optional[str] = None


def normalize_name(name: Optional[str]) -> str:
    """Lowercase and keep only [a-z0-9]: "Alice S." and "alice_s" -> "alices"."""
    if not name:
        return ""
    return re.sub(r"[^a-z0-9]", "", name.lower())


_FRACTION_RE = re.compile(r"\.(\d+)")
_OFFSET_RE = re.compile(r"([+-]\d{2}):?(\d{2})$")


def _normalize_iso(text: str) -> str:
    """Rewrite ISO-8601 variants fromisoformat() rejects on 3.10 (Z, +0000, odd fractions)."""
    text = text.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    if "T" in text or " " in text:
        text = _OFFSET_RE.sub(r"\1:\2", text)
    return text


def parse_timestamp(value) -> Optional[float]:
    """Epoch seconds from an ISO-8601 string or a numeric epoch (s or ms)."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Millisecond epochs are 13 digits
        return value / 1000.0 if value > 1e12 else float(value)
    try:
        dt = datetime.fromisoformat(_normalize_iso(str(value)))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def resource_age(metadata: Optional[dict], now: float) -> Optional[float]:
    """Seconds since the resource was created, or None if unknown."""
    if not metadata:
        return None
    created = parse_timestamp(metadata.get("created_at", metadata.get("timestamp")))
    if created is None:
        return None
    return now - created


async def _admin_or_false(check_admin: Callable[[], Awaitable[bool]]) -> bool:
    try:
        return bool(await check_admin())
    except Exception as e:
        log.error("Admin lookup failed, denying admin override: %s", e)
        return False


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------

async def _shell_policy(kind, metadata, requester, check_admin, now, window, control_channel):
    # Local terminal: the operator owns the process, nothing to check
    return AuthorizationDecision(True, LOCAL_OPERATOR)


async def _irc_policy(kind, metadata, requester, check_admin, now, window, control_channel):
    if await _admin_or_false(check_admin):
        return AuthorizationDecision(True, ADMIN)
    return AuthorizationDecision(
        False, ADMIN_ONLY,
        f"You must be in {control_channel or 'the admin channel'} to delete tumble {kind}s.",
    )


async def _slack_policy(kind, metadata, requester, check_admin, now, window, control_channel):
    if kind != LINK:
        if await _admin_or_false(check_admin):
            return AuthorizationDecision(True, ADMIN)
        return AuthorizationDecision(False, ADMIN_ONLY, QUOTE_ADMIN_ONLY_MESSAGE)

    owner = (metadata or {}).get("user") or ""
    owner_key = normalize_name(owner)
    is_owner = bool(owner_key) and owner_key == normalize_name(requester.name)
    age = resource_age(metadata, now)
    within_window = age is not None and 0 <= age <= window

    if is_owner and within_window:
        return AuthorizationDecision(True, OWN_RESOURCE)

    if await _admin_or_false(check_admin):
        return AuthorizationDecision(True, ADMIN)

    window_minutes = int(window // 60)
    if is_owner:
        if age is not None and age >= 0:
            posted = f"This link was posted {int(age // 60)} minutes ago."
        else:
            posted = "This link's posting time could not be verified."
        return AuthorizationDecision(
            False, TIME_EXPIRED,
            f"You can only delete your own links within {window_minutes} minutes of posting. {posted}",
        )

    return AuthorizationDecision(
        False, NOT_OWNER,
        f"Only {owner or 'the original poster'} or a workspace admin can delete this link.",
    )


POLICIES = {
    AdapterProfile.SHELL: _shell_policy,
    AdapterProfile.IRC: _irc_policy,
    AdapterProfile.SLACK: _slack_policy,
}


async def authorize(
    kind: str,
    metadata: Optional[dict],
    requester: Requester,
    check_admin: Callable[[], Awaitable[bool]],
    now: Optional[float] = None,
    window: int = DELETE_WINDOW_SECONDS,
    control_channel: str = "",
) -> AuthorizationDecision:
    """Decide a single delete attempt. Never cached."""
    if now is None:
        now = time.time()
    policy = POLICIES[requester.adapter]
    decision = await policy(kind, metadata, requester, check_admin, now, window, control_channel)
    log.debug("authorize %s for %s (%s): %s", kind, requester.name, requester.adapter.value, decision)
    return decision
