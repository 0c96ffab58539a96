"""
Slack Events API payloads.

Inbound events are discriminated once, up front, into a closed set of
variants so handlers never re-cast untyped dicts.
"""

from pydantic import BaseModel
from typing import Any, Dict, Optional, Union

from app.integrations.slack.models import SlackMessage

REACTION_EVENT_TYPES = ("reaction_added", "reaction_removed")


class ReactionItem(BaseModel):
    type: Optional[str] = None
    channel: Optional[str] = None
    ts: Optional[str] = None


class ReactionEvent(BaseModel):
    type: str
    user: Optional[str] = None
    reaction: Optional[str] = None
    item: Optional[ReactionItem] = None

    @property
    def target(self) -> Optional[ReactionItem]:
        """The reacted-to message, when the payload names both channel and ts."""
        if self.item and self.item.channel and self.item.ts:
            return self.item
        return None


class MessageEvent(SlackMessage):
    ts: Optional[str] = None
    channel: Optional[str] = None

    @property
    def is_thread_reply(self) -> bool:
        return bool(self.thread_ts) and self.thread_ts != self.ts


class OtherEvent(BaseModel):
    type: str
    payload: Dict[str, Any] = {}


SlackEvent = Union[ReactionEvent, MessageEvent, OtherEvent]


def parse_event(event: Dict[str, Any]) -> SlackEvent:
    """Classify a raw event payload by its `type`."""
    event_type = event.get("type") or ""
    if event_type in REACTION_EVENT_TYPES:
        return ReactionEvent.model_validate(event)
    if event_type == "message":
        return MessageEvent.model_validate(event)
    return OtherEvent(type=event_type, payload=event)
