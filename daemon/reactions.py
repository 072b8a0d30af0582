"""
Delete-by-reaction (Slack only).

Reacting with the delete glyph on a message that carries a tumble permalink
runs the same authorize-and-delete pipeline as the command. Results go to the
reactor as ephemeral messages; a successful delete also gets a confirmation
reaction on the original message.
"""

import logging
from typing import Optional

from config import CONFIRM_REACTION, DELETE_REACTION
from deletion import DeletePipeline, extract_id, failure_message
from errors import NotAuthorized, NotFound, TumbleError
from transport import AdapterProfile, Origin, Requester, classify
from tumble_client import KINDS

log = logging.getLogger("tumblebot.reactions")


def _reactor_id(event: dict) -> str:
    # Slack sends "user": "U123"; normalized events carry {"id": ...}
    user = event.get("user")
    if isinstance(user, dict):
        return user.get("id", "")
    return user or ""


def is_delete_reaction(event: dict, glyph: str = DELETE_REACTION) -> bool:
    item = event.get("item") or {}
    return (
        item.get("type") == "message"
        and event.get("type") in ("added", "reaction_added")
        and event.get("reaction") == glyph
    )


class ReactionHandler:
    def __init__(
        self,
        pipeline: DeletePipeline,
        delete_reaction: str = DELETE_REACTION,
        confirm_reaction: str = CONFIRM_REACTION,
    ):
        self.pipeline = pipeline
        self.transport = pipeline.transport
        self.delete_reaction = delete_reaction
        self.confirm_reaction = confirm_reaction

    async def handle(self, event: dict):
        if classify(self.transport) != AdapterProfile.SLACK:
            return
        if not is_delete_reaction(event, self.delete_reaction):
            return

        item = event["item"]
        channel = item.get("channel", "")
        ts = item.get("ts", "")
        user_id = _reactor_id(event)

        try:
            message = await self.transport.fetch_message(channel, ts)
        except Exception as e:
            log.error("Failed to fetch reacted message %s/%s: %s", channel, ts, e)
            await self._ephemeral(channel, user_id, f"Failed to look up the reacted message: {e}")
            return
        if not message:
            log.warning("Could not find reacted message %s/%s", channel, ts)
            return

        text = message.get("text", "")
        targets = []
        for kind in KINDS:
            resource_id = extract_id(kind, text)
            if resource_id is not None:
                targets.append((kind, resource_id))
        if not targets:
            # Not every message is a tracked resource
            return

        for kind, resource_id in targets:
            await self._delete(kind, resource_id, user_id, Origin(channel, ts))

    async def _delete(self, kind: str, resource_id: int, user_id: str, origin: Origin):
        problem = self.pipeline.preflight(AdapterProfile.SLACK)
        if problem:
            await self._ephemeral(origin.channel, user_id, problem)
            return

        name = await self.transport.resolve_display_name(user_id)
        requester = Requester(name=name, user_id=user_id, adapter=AdapterProfile.SLACK)

        try:
            decision = await self.pipeline.run(kind, resource_id, requester)
        except (NotAuthorized, NotFound) as e:
            await self._ephemeral(origin.channel, user_id, failure_message(kind, resource_id, e, brief=True))
            return
        except TumbleError as e:
            log.error("Failed to handle delete reaction for %s %s: %s", kind, resource_id, e)
            await self._ephemeral(origin.channel, user_id, failure_message(kind, resource_id, e))
            return
        except Exception as e:
            log.error("Unexpected error handling delete reaction for %s %s: %s",
                      kind, resource_id, e, exc_info=True)
            await self._ephemeral(origin.channel, user_id, failure_message(kind, resource_id, e))
            return

        try:
            await self.transport.react(origin.channel, origin.ts, self.confirm_reaction)
        except Exception as e:
            log.debug("Confirm reaction not added: %s", e)  # already_reacted is fine

        await self.pipeline.audit(
            kind, resource_id, requester, decision, origin, via=f":{self.delete_reaction}: reaction",
        )
        log.info("Deleted tumble %s %s via reaction by %s", kind, resource_id, name)

    async def _ephemeral(self, channel: str, user_id: str, text: Optional[str]):
        try:
            await self.transport.post_ephemeral(channel, user_id, text)
        except Exception as e:
            log.error("Failed to send ephemeral message to %s: %s", user_id, e)
