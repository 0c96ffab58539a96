"""
Thread aggregation.

Merges a thread root and its replies into a single "thread" content item:
chronological transcript, participant roles, reaction union and the combined
file set.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

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
from app.services.normalizer import (
    preview,
    ts_to_datetime,
    user_display_name,
    user_name_map,
)

logger = logging.getLogger(__name__)

THREAD_PREVIEW_LENGTH = 40
TRANSCRIPT_SEPARATOR = "\n\n---\n\n"


def generate_thread_title(
    root: SlackMessage,
    channel: SlackChannelInfo,
    user: Optional[SlackUser] = None,
    reply_count: int = 0,
) -> str:
    snippet = preview(root.text, THREAD_PREVIEW_LENGTH) or "Discussion"
    reply_suffix = f" ({reply_count} replies)" if reply_count else ""
    return f"{user_display_name(user)} in #{channel.name or 'unknown'}: {snippet}{reply_suffix}"


def format_transcript_time(ts: Optional[str]) -> str:
    """UTC ISO-8601 with millisecond precision, e.g. 2024-01-24T19:10:00.000Z."""
    dt = ts_to_datetime(ts)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def order_messages(root: SlackMessage, replies: Sequence[SlackMessage]) -> List[SlackMessage]:
    """Ascending by timestamp; ties keep input order."""
    return sorted([root, *replies], key=lambda m: m.timestamp)


def build_transcript(
    messages: Sequence[SlackMessage],
    users: Mapping[str, SlackUser],
    channels: Optional[Mapping[str, str]] = None,
) -> str:
    names = user_name_map(users)
    blocks = []
    for msg in messages:
        author = user_display_name(users.get(msg.author_id))
        time = format_transcript_time(msg.ts)
        text = resolve_mrkdwn(msg.text, names, channels) or ""
        blocks.append(f"**{author}** ({time}):\n{text}")
    return TRANSCRIPT_SEPARATOR.join(blocks)


def aggregate_reactions(messages: Sequence[SlackMessage]) -> List[AggregatedReaction]:
    """Sum counts and union reactor ids per reaction name."""
    counts: Dict[str, int] = {}
    reactors: Dict[str, List[str]] = {}
    for msg in messages:
        for reaction in msg.reactions or []:
            if not reaction.name:
                continue
            counts[reaction.name] = counts.get(reaction.name, 0) + reaction.count
            seen = reactors.setdefault(reaction.name, [])
            for user_id in reaction.users:
                if user_id not in seen:
                    seen.append(user_id)
    return [
        AggregatedReaction(name=name, count=counts[name], users=reactors[name])
        for name in counts
    ]


def collect_participants(
    messages: Sequence[SlackMessage],
    root_author: str,
    users: Mapping[str, SlackUser],
) -> List[ContentParticipant]:
    participant_ids: List[str] = []
    for msg in messages:
        if msg.author_id not in participant_ids:
            participant_ids.append(msg.author_id)

    participants = []
    for user_id in participant_ids:
        user = users.get(user_id)
        participants.append(
            ContentParticipant(
                external_id=user_id,
                name=user_display_name(user),
                email=(user.email or None) if user else None,
                role=ParticipantRole.AUTHOR if user_id == root_author else ParticipantRole.PARTICIPANT,
            )
        )
    return participants


async def aggregate_thread(
    root: SlackMessage,
    replies: Sequence[SlackMessage],
    channel: SlackChannelInfo,
    users: Mapping[str, SlackUser],
    permalink: Optional[str] = None,
    processing_context: Optional[MessageProcessingContext] = None,
    channels: Optional[Mapping[str, str]] = None,
) -> RawContentItem:
    """
    Aggregate a thread root and its replies into one content item.

    Args:
        root: Thread root message
        replies: Replies, in any order, without the root
        channel: Channel the thread lives in
        users: User directory snapshot
        permalink: Optional permalink of the root
        processing_context: Optional file processing context
        channels: Optional channel id -> name map for mention resolution

    Returns:
        RawContentItem of type "thread"
    """
    ordered = order_messages(root, replies)
    root_author = root.author_id
    user = users.get(root_author)

    # Root files first, then replies chronologically
    file_order = [root, *(m for m in ordered if m is not root)]
    all_files = [f for m in file_order for f in (m.files or [])]
    if processing_context is not None:
        files = await process_slack_files(all_files, processing_context)
    else:
        files = file_metadata_only(all_files)

    participants = collect_participants(ordered, root_author, users)

    metadata = SlackMessageMetadata(
        channel_id=channel.id or "unknown",
        channel_name=channel.name or "unknown",
        channel_type=channel.channel_type,
        message_ts=root.ts,
        thread_ts=root.ts,
        reactions=aggregate_reactions(ordered),
        files=files,
        reply_count=len(replies),
        reply_users_count=len(participants),
        permalink=permalink,
    )

    logger.debug(
        f"Aggregated thread {root.ts}: {len(replies)} replies, {len(participants)} participants"
    )

    return RawContentItem(
        external_id=root.ts,
        type=ContentItemType.THREAD,
        title=generate_thread_title(root, channel, user, len(replies)),
        content=build_transcript(ordered, users, channels),
        author_external=root_author,
        author_name=user_display_name(user, root_author),
        created_at_source=ts_to_datetime(root.ts),
        updated_at_source=ts_to_datetime(ordered[-1].ts),
        metadata=metadata.model_dump(exclude_none=True),
        participants=participants,
    )
