# Shared data models
from app.models.content import (
    ContentItemType,
    ContentParticipant,
    ContentSource,
    FetchOptions,
    FetchResult,
    ParticipantRole,
    RawContentItem,
    SourceCredentials,
    SourceType,
)

__all__ = [
    "ContentItemType",
    "ContentParticipant",
    "ContentSource",
    "FetchOptions",
    "FetchResult",
    "ParticipantRole",
    "RawContentItem",
    "SourceCredentials",
    "SourceType",
]
