"""
Slack message normalizer.

Maps one Slack message into a RawContentItem.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from app.integrations.slack.formatters import resolve_mrkdwn
from app.integrations.slack.models import (
    AggregatedReaction,
    SlackChannelInfo,
    SlackMessage,
    SlackMessageMetadata,
    SlackUser,
)
from app.models.content import (
    ContentItemType,
    ContentParticipant,
    ParticipantRole,
    RawContentItem,
)
from app.services.attachments import (
    MessageProcessingContext,
    file_metadata_only,
    process_slack_files,
)

logger = logging.getLogger(__name__)

MESSAGE_PREVIEW_LENGTH = 50


def ts_to_datetime(ts: Optional[str]) -> datetime:
    """Slack timestamps are epoch seconds encoded as strings."""
    return datetime.fromtimestamp(float(ts or "0"), tz=timezone.utc)


def user_display_name(user: Optional[SlackUser], fallback: str = "Unknown") -> str:
    if user is None:
        return fallback
    return user.resolved_name or fallback


def user_name_map(users: Mapping[str, SlackUser]) -> Dict[str, str]:
    """user id -> display name, for mention resolution."""
    return {uid: u.resolved_name for uid, u in users.items() if u.resolved_name}


def preview(text: Optional[str], length: int) -> str:
    if not text:
        return ""
    return text[:length] + ("..." if len(text) > length else "")


def generate_message_title(
    message: SlackMessage, channel: SlackChannelInfo, user: Optional[SlackUser] = None
) -> str:
    snippet = preview(message.text, MESSAGE_PREVIEW_LENGTH)
    if message.is_thread_root:
        return f"Thread: {snippet} ({message.reply_count} replies)"
    return f"{user_display_name(user)} in #{channel.name or 'unknown'}: {snippet}"


def message_reactions(message: SlackMessage) -> Optional[List[AggregatedReaction]]:
    if message.reactions is None:
        return None
    return [
        AggregatedReaction(name=r.name, count=r.count, users=list(r.users))
        for r in message.reactions
        if r.name
    ]


async def message_to_raw_content_item(
    message: SlackMessage,
    channel: SlackChannelInfo,
    users: Mapping[str, SlackUser],
    permalink: Optional[str] = None,
    processing_context: Optional[MessageProcessingContext] = None,
    channels: Optional[Mapping[str, str]] = None,
) -> RawContentItem:
    """
    Convert a single Slack message into a RawContentItem.

    Files are downloaded and stored only when a processing context is given;
    otherwise only their metadata is recorded.

    Args:
        message: Raw Slack message
        channel: Channel the message was posted in
        users: User directory snapshot (slack user id -> SlackUser)
        permalink: Optional message permalink
        processing_context: Optional file processing context
        channels: Optional channel id -> name map for mention resolution

    Returns:
        RawContentItem of type "thread" for thread roots, "message" otherwise
    """
    author_id = message.author_id
    user = users.get(author_id)

    if processing_context is not None:
        files = await process_slack_files(message.files, processing_context)
    else:
        files = file_metadata_only(message.files)

    edited = message.edited if message.edited and message.edited.user and message.edited.ts else None

    metadata = SlackMessageMetadata(
        channel_id=channel.id or "unknown",
        channel_name=channel.name or "unknown",
        channel_type=channel.channel_type,
        message_ts=message.ts,
        thread_ts=message.thread_ts,
        reactions=message_reactions(message),
        files=files,
        blocks=message.blocks,
        edited=edited,
        reply_count=message.reply_count,
        reply_users_count=message.reply_users_count,
        latest_reply=message.latest_reply,
        permalink=permalink,
    )

    participants = None
    if user is not None:
        participants = [
            ContentParticipant(
                external_id=user.slack_user_id,
                name=user_display_name(user, user.slack_user_id),
                email=user.email or None,
                role=ParticipantRole.AUTHOR,
            )
        ]

    return RawContentItem(
        external_id=message.ts,
        type=ContentItemType.THREAD if message.is_thread_root else ContentItemType.MESSAGE,
        title=generate_message_title(message, channel, user),
        content=resolve_mrkdwn(message.text, user_name_map(users), channels),
        author_external=author_id,
        author_name=user_display_name(user, author_id),
        created_at_source=ts_to_datetime(message.ts),
        updated_at_source=ts_to_datetime(edited.ts) if edited else None,
        metadata=metadata.model_dump(exclude_none=True),
        participants=participants,
    )
