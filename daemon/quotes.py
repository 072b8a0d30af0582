"""
Quote capture.

    "Quote text" -- Author     (straight or curly quotes, -- or em dash)
    OH: something overheard    (no author; the whole line is the quote)
"""

import logging
import re
from typing import Optional

from config import QUOTE_REACTION
from errors import ParseError, TumbleError
from posting import Poster, Reply
from transport import Origin, Requester
from tumble_client import QUOTE

log = logging.getLogger("tumblebot.quotes")

STANDARD_RE = re.compile(r'^\s*["“](.+?)["”]\s+(?:--|—)\s*(.+?)\s*$')
OVERHEARD_RE = re.compile(r"^\s*OH:\s*(.+?)\s*$", re.IGNORECASE)

UNEXPECTED_RESPONSE = "Quote Failure: unexpected response from tumble"


def parse_quote(text: Optional[str]) -> Optional[tuple[str, Optional[str]]]:
    """(quote, author) for a quote-formatted message, or None."""
    text = text or ""
    match = STANDARD_RE.match(text)
    if match:
        return match.group(1), match.group(2)
    if OVERHEARD_RE.match(text):
        return text.strip(), None
    return None


class QuotePoster(Poster):
    kind = QUOTE

    def __init__(self, tumble, transport, reaction: str = QUOTE_REACTION, **kwargs):
        super().__init__(tumble, transport, reaction, **kwargs)

    async def handle(self, text: str, requester: Requester, reply: Reply,
                     origin: Optional[Origin] = None) -> bool:
        parsed = parse_quote(text)
        if not parsed:
            return False
        if not self.tumble.base_url:
            log.error("TUMBLE_BASEURL not set, not posting quote")
            return False
        quote, author = parsed

        try:
            data = await self.tumble.post_quote(
                quote, requester.name, author=author, metadata=self.metadata(requester, origin),
            )
        except ParseError:
            await reply(UNEXPECTED_RESPONSE)
            return True
        except TumbleError as e:
            log.error("Quote post failed: %s", e)
            await reply("Quote Failure")
            return True

        quote_id = data.get("id") if isinstance(data, dict) else None
        if quote_id is None:
            await reply(UNEXPECTED_RESPONSE)
            return True

        await self.acknowledge(quote_id, requester, reply, origin, verb="posted from")
        log.info("Posted quote %s for %s", quote_id, requester.name)
        return True
