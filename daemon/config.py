"""
Tumblebot daemon configuration.

All settings can be overridden via environment variables prefixed with TUMBLE_.
Legacy HUBOT_TUMBLE_ prefix also supported for backward compatibility.
"""

import os


def _env(key, default):
    """Read env var with TUMBLE_ prefix, falling back to HUBOT_TUMBLE_."""
    return os.environ.get(f"TUMBLE_{key}",
           os.environ.get(f"HUBOT_TUMBLE_{key}", default))


# Aggregator (Tumble) server
TUMBLE_BASEURL = _env("BASEURL", "").rstrip("/")
# Credential sent as X-API-Key; DELETE_SECRET is the pre-v1 name
TUMBLE_API_KEY = _env("API_KEY", "") or _env("DELETE_SECRET", "")
HTTP_TIMEOUT = float(_env("HTTP_TIMEOUT", "10"))

# Deletion policy
DELETE_WINDOW_SECONDS = 5 * 60
DELETE_REACTION = _env("DELETE_REACTION", "x")
CONFIRM_REACTION = _env("CONFIRM_REACTION", "white_check_mark")

# Audit trail
AUDIT_CHANNEL = _env("AUDIT_CHANNEL", "tumble-info")

# IRC
IRC_ADMIN_CHANNEL = _env("IRC_ADMIN_CHANNEL", "")
IRC_NETWORK = _env("IRC_NETWORK", "")

# Slack workspace identity (resolved via auth.test when unset)
SLACK_TEAM_ID = _env("SLACK_TEAM_ID", "")
SLACK_URL = _env("SLACK_URL", "").rstrip("/")

# Bot identity, used to ignore our own messages
BOT_NAME = _env("BOT_NAME", "tumblebot")
BOT_ALIAS = _env("BOT_ALIAS", "")

# Posting reactions
LINK_REACTION = _env("LINK_REACTION", "fish")
QUOTE_REACTION = _env("QUOTE_REACTION", "quote")

# Logging
LOG_DIR = os.path.join(os.path.dirname(__file__), "logs")
