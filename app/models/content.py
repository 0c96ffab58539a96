"""
Content Source Models

Platform-agnostic content item produced by every content source adapter,
plus the source record and fetch request/response shapes.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from app.integrations.slack.models import SlackContentConfig


class SourceType(str, Enum):
    """Content source platform type."""

    SLACK = "slack"


class ContentItemType(str, Enum):
    MESSAGE = "message"
    THREAD = "thread"


class ParticipantRole(str, Enum):
    AUTHOR = "author"
    PARTICIPANT = "participant"


class ContentParticipant(BaseModel):
    """Someone who authored or took part in a content item."""

    model_config = ConfigDict(frozen=True)

    external_id: str
    name: str
    email: Optional[str] = None
    role: ParticipantRole


class RawContentItem(BaseModel):
    """
    Canonical normalized unit handed to the content repository.

    Upserts are keyed by (source_id, external_id), so syncing the same item
    twice is safe.
    """

    model_config = ConfigDict(frozen=True)

    external_id: str
    type: ContentItemType
    title: str
    content: Optional[str] = None
    author_external: str
    author_name: str
    created_at_source: datetime
    updated_at_source: Optional[datetime] = None
    metadata: Dict[str, Any] = {}
    participants: Optional[List[ContentParticipant]] = None
    related_external_ids: Optional[List[str]] = None


class SourceCredentials(BaseModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[str] = None
    scope: Optional[str] = None


class ContentSource(BaseModel):
    """A connected Slack workspace and what to sync from it."""

    id: str
    organization_id: str = "default"
    name: str = "Slack"
    type: SourceType = SourceType.SLACK
    config: SlackContentConfig = Field(default_factory=SlackContentConfig)
    credentials: Optional[SourceCredentials] = None


class FetchOptions(BaseModel):
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    limit: Optional[int] = None
    cursor: Optional[str] = None


class FetchResult(BaseModel):
    items: List[RawContentItem] = []
    has_more: bool = False
    next_cursor: Optional[str] = None
