"""
Link capture. Every URL said in chat is submitted to tumble.

The last URL in a message wins. Zoom meeting links and URLs prefixed
with "!" are never posted.
"""

import logging
import re
from typing import Optional

from config import LINK_REACTION
from errors import ParseError, TumbleError
from posting import Poster, Reply
from transport import Origin, Requester
from tumble_client import LINK

log = logging.getLogger("tumblebot.links")

URL_RE = re.compile(r"https?://", re.IGNORECASE)
_SKIP_RE = re.compile(r"zoom\.us", re.IGNORECASE)


def extract_url(text: Optional[str]) -> Optional[str]:
    """Last URL-bearing word of a message, unwrapped from Slack's <url|label>."""
    url = None
    for word in (text or "").split():
        if URL_RE.search(word):
            url = word
    if not url or url.startswith("!"):
        return None
    if url.startswith("<") and url.endswith(">"):
        url = url[1:-1].split("|", 1)[0]
    if _SKIP_RE.search(url):
        return None
    return url


def _welcome_text(data: dict) -> str:
    previous = (data.get("previous_submissions") or [{}])[0]
    when = str(previous.get("created_at") or "")[:10] or "the past"
    who = previous.get("user") or "someone"
    return f"Welcome to {when}! {who} already posted that one."


class LinkPoster(Poster):
    kind = LINK

    def __init__(self, tumble, transport, reaction: str = LINK_REACTION, **kwargs):
        super().__init__(tumble, transport, reaction, **kwargs)

    async def handle(self, text: str, requester: Requester, reply: Reply,
                     origin: Optional[Origin] = None) -> bool:
        """Submit a link if the message has one. Returns True if it did."""
        url = extract_url(text)
        if not url:
            return False
        if not self.tumble.base_url:
            log.error("TUMBLE_BASEURL not set, not posting %s", url)
            return False

        try:
            data = await self.tumble.post_link(url, requester.name, self.metadata(requester, origin))
        except ParseError:
            await reply("Failed to parse tumble response")
            return True
        except TumbleError as e:
            log.error("Something went wrong posting to tumble. %s: %s", url, e)
            await reply(f"Failed to post link: {e}")
            return True

        link_id = data.get("id") if isinstance(data, dict) else None
        if link_id is None:
            await reply("Failed to parse tumble response")
            return True

        if data.get("is_duplicate"):
            await reply(_welcome_text(data))
        await self.acknowledge(link_id, requester, reply, origin)
        log.info("Posted link %s as %s for %s", url, link_id, requester.name)
        return True
