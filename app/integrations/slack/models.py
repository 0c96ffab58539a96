"""
Slack Data Models

Payload shapes returned by the Slack Web API, plus the per-channel sync
watermark and the processed file attachment record.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional


class SlackReaction(BaseModel):
    """One reaction entry on a message."""

    name: Optional[str] = None
    count: int = 0
    users: List[str] = []


class SlackEdited(BaseModel):
    user: Optional[str] = None
    ts: Optional[str] = None


class SlackFile(BaseModel):
    """File reference embedded in a message."""

    id: str = "unknown"
    name: str = "unknown"
    mimetype: str = "application/octet-stream"
    url_private: str = ""
    size: int = 0


class SlackMessage(BaseModel):
    """
    One message from conversations.history / conversations.replies.

    `ts` is both the identity and the ordering key of a message.
    """

    ts: str = "0"
    type: str = "message"
    user: Optional[str] = None
    bot_id: Optional[str] = None
    text: Optional[str] = None
    thread_ts: Optional[str] = None
    reply_count: Optional[int] = None
    reply_users_count: Optional[int] = None
    latest_reply: Optional[str] = None
    reactions: Optional[List[SlackReaction]] = None
    files: Optional[List[SlackFile]] = None
    blocks: Optional[List[Dict[str, Any]]] = None
    edited: Optional[SlackEdited] = None
    subtype: Optional[str] = None

    @property
    def author_id(self) -> str:
        return self.user or self.bot_id or "unknown"

    @property
    def is_thread_root(self) -> bool:
        return bool(self.reply_count and self.reply_count > 0)

    @property
    def timestamp(self) -> float:
        return float(self.ts or "0")


class SlackHistoryPage(BaseModel):
    """One page of conversations.history."""

    messages: List[SlackMessage] = []
    has_more: bool = False
    next_cursor: Optional[str] = None


class SlackTopic(BaseModel):
    value: str = ""


class SlackChannelInfo(BaseModel):
    """Channel as returned by conversations.info / conversations.list."""

    id: Optional[str] = None
    name: Optional[str] = None
    is_private: bool = False
    is_member: bool = False
    is_archived: bool = False
    num_members: Optional[int] = None
    topic: Optional[SlackTopic] = None
    purpose: Optional[SlackTopic] = None

    @property
    def channel_type(self) -> Literal["public", "private"]:
        return "private" if self.is_private else "public"


class SlackUser(BaseModel):
    """User directory entry for one workspace member."""

    slack_user_id: str
    display_name: Optional[str] = None
    real_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    is_bot: bool = False
    is_admin: bool = False
    timezone: Optional[str] = None

    @property
    def resolved_name(self) -> Optional[str]:
        return self.real_name or self.display_name

    @classmethod
    def from_member(cls, member: Dict[str, Any]) -> "SlackUser":
        """Build a directory entry from a users.list member payload."""
        profile = member.get("profile") or {}
        return cls(
            slack_user_id=member["id"],
            display_name=profile.get("display_name") or member.get("name"),
            real_name=member.get("real_name"),
            email=profile.get("email"),
            avatar_url=profile.get("image_48"),
            is_bot=member.get("is_bot", False),
            is_admin=member.get("is_admin") or False,
            timezone=member.get("tz"),
        )


class SlackFileAttachment(BaseModel):
    """
    Outcome of processing one file reference.

    Exactly one of `storage_key` (stored) or `skipped`/`skip_reason` is set.
    """

    id: str
    name: str
    mimetype: str
    url: str
    size: int
    storage_key: Optional[str] = None
    skipped: Optional[bool] = None
    skip_reason: Optional[str] = None


class AggregatedReaction(BaseModel):
    name: str
    count: int
    users: List[str]


class SlackMessageMetadata(BaseModel):
    """Source-specific metadata carried on every Slack content item."""

    channel_id: str
    channel_name: str
    channel_type: Literal["public", "private"]
    message_ts: str
    thread_ts: Optional[str] = None
    reactions: Optional[List[AggregatedReaction]] = None
    files: Optional[List[SlackFileAttachment]] = None
    blocks: Optional[List[Dict[str, Any]]] = None
    edited: Optional[SlackEdited] = None
    reply_count: Optional[int] = None
    reply_users_count: Optional[int] = None
    latest_reply: Optional[str] = None
    permalink: Optional[str] = None


class SlackContentConfig(BaseModel):
    """Per-source Slack sync configuration."""

    channels: List[str] = []
    sync_threads: bool = True
    sync_files: bool = True
    exclude_bots: bool = False


class ChannelSyncState(BaseModel):
    """Persisted watermark for one (source, channel) pair."""

    model_config = ConfigDict(validate_assignment=True)

    source_id: str
    channel_id: str
    channel_name: str
    channel_type: Literal["public", "private"] = "public"
    last_synced_ts: Optional[str] = None
    cursor: Optional[str] = None
    last_synced_at: Optional[datetime] = None
    message_count: int = 0
    updated_at: datetime = Field(default_factory=datetime.now)
