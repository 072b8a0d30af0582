"""
Admin resolution per adapter.

Slack: workspace admins and owners (users.info). Fails closed.
IRC:   members of the configured control channel.
Shell: everyone, since a local terminal has no identity system.
"""

import logging

from transport import AdapterProfile, Requester

log = logging.getLogger("tumblebot.admins")


async def is_slack_admin(client, user_id: str) -> bool:
    """True iff the Slack profile reports admin or owner. Lookup errors deny."""
    if client is None or not user_id:
        return False
    try:
        resp = await client.users_info(user=user_id)
        user = resp.get("user") or {}
        return user.get("is_admin") is True or user.get("is_owner") is True
    except Exception as e:
        log.error("Failed to check admin status for %s: %s", user_id, e)
        return False


def channel_roster(connection, channel: str) -> list:
    """Nicks present in an IRC channel, or [] if the bot isn't in it.

    Channel names match case-insensitively. A channel entry may be a
    collection of nicks, a {"users": ...} dict, or an object with a
    ``users`` attribute.
    """
    channels = getattr(connection, "channels", None) or {}
    wanted = channel.lower()
    members = None
    for name, entry in channels.items():
        if name.lower() == wanted:
            members = entry
            break
    if members is None:
        return []
    if isinstance(members, dict) and "users" in members:
        members = members["users"]
    else:
        members = getattr(members, "users", members)
    return list(members or [])


def is_irc_admin(connection, nick: str, control_channel: str) -> bool:
    if not control_channel or connection is None or not nick:
        return False
    nick_lower = nick.lower()
    return any(member.lower() == nick_lower for member in channel_roster(connection, control_channel))


async def is_admin(profile: AdapterProfile, transport, requester: Requester,
                   control_channel: str = "") -> bool:
    """Adapter-specific override check used by the deletion authorizer."""
    if profile == AdapterProfile.SLACK:
        return await is_slack_admin(getattr(transport, "client", None), requester.user_id)
    if profile == AdapterProfile.IRC:
        return is_irc_admin(getattr(transport, "connection", None), requester.name, control_channel)
    return True
