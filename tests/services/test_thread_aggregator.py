"""
Tests for thread aggregation.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from app.integrations.slack.models import SlackChannelInfo, SlackMessage, SlackUser
from app.models.content import ContentItemType, ParticipantRole
from app.services.attachments import MessageProcessingContext
from app.services.thread_aggregator import (
    aggregate_reactions,
    aggregate_thread,
    format_transcript_time,
    generate_thread_title,
    order_messages,
)

CHANNEL = SlackChannelInfo(id="C1", name="incidents", is_private=True)
USERS = {
    "U1": SlackUser(slack_user_id="U1", real_name="Alice", email="alice@example.com"),
    "U2": SlackUser(slack_user_id="U2", display_name="bob"),
}

ROOT = SlackMessage(
    ts="1706123400.000000",
    user="U1",
    text="API is returning 500s, *anyone* else?",
    reply_count=3,
    thread_ts="1706123400.000000",
    reactions=[{"name": "eyes", "count": 2, "users": ["U2", "U3"]}],
    files=[{"id": "F1", "name": "trace.log", "url_private": "https://f/F1", "size": 5}],
)
REPLY_1 = SlackMessage(
    ts="1706123450.000000",
    user="U2",
    text="Yes, looking at <#C2|backend>",
    thread_ts=ROOT.ts,
    reactions=[{"name": "eyes", "count": 2, "users": ["U1", "U3"]}, {"name": "+1", "count": 1, "users": ["U1"]}],
    files=[{"id": "F2", "name": "graph.png", "url_private": "https://f/F2", "size": 5}],
)
REPLY_2 = SlackMessage(ts="1706123500.000000", user="U1", text="Fixed, thanks <@U2>", thread_ts=ROOT.ts)
REPLY_3 = SlackMessage(ts="1706123600.000000", user="U9", text="late to the party", thread_ts=ROOT.ts)


def test_order_is_independent_of_input_order():
    ordered = order_messages(ROOT, [REPLY_3, REPLY_2, REPLY_1])
    assert [m.ts for m in ordered] == [ROOT.ts, REPLY_1.ts, REPLY_2.ts, REPLY_3.ts]


def test_order_is_stable_for_equal_timestamps():
    a = SlackMessage(ts="5.0", user="U1", text="a")
    b = SlackMessage(ts="5.0", user="U2", text="b")
    assert [m.text for m in order_messages(SlackMessage(ts="1.0"), [a, b])][1:] == ["a", "b"]


def test_reaction_users_are_unioned_not_summed():
    [eyes, plus_one] = aggregate_reactions([ROOT, REPLY_1])
    assert eyes.name == "eyes"
    assert eyes.count == 4
    assert sorted(eyes.users) == ["U1", "U2", "U3"]
    assert plus_one.count == 1 and plus_one.users == ["U1"]


def test_thread_title():
    assert generate_thread_title(ROOT, CHANNEL, USERS["U1"], 3) == (
        "Alice in #incidents: API is returning 500s, *anyone* else? (3 replies)"
    )
    long_root = SlackMessage(ts="1.0", text="y" * 41)
    assert generate_thread_title(long_root, CHANNEL, None, 0) == f"Unknown in #incidents: {'y' * 40}..."
    assert generate_thread_title(SlackMessage(ts="1.0"), CHANNEL, None, 1) == "Unknown in #incidents: Discussion (1 replies)"


@pytest.mark.asyncio
async def test_aggregates_thread():
    item = await aggregate_thread(
        ROOT, [REPLY_3, REPLY_1, REPLY_2], CHANNEL, USERS, permalink="https://x.slack.com/p1", channels={"C2": "x"}
    )

    assert item.type == ContentItemType.THREAD
    assert item.external_id == ROOT.ts
    assert item.author_name == "Alice"
    assert item.created_at_source == datetime.fromtimestamp(1706123400, tz=timezone.utc)
    assert item.updated_at_source == datetime.fromtimestamp(1706123600, tz=timezone.utc)

    blocks = item.content.split("\n\n---\n\n")
    assert blocks == [
        "**Alice** (2024-01-24T19:10:00.000Z):\nAPI is returning 500s, **anyone** else?",
        "**bob** (2024-01-24T19:10:50.000Z):\nYes, looking at #backend",
        "**Alice** (2024-01-24T19:11:40.000Z):\nFixed, thanks @bob",
        "**Unknown** (2024-01-24T19:13:20.000Z):\nlate to the party",
    ]

    assert [(p.external_id, p.role) for p in item.participants] == [
        ("U1", ParticipantRole.AUTHOR),
        ("U2", ParticipantRole.PARTICIPANT),
        ("U9", ParticipantRole.PARTICIPANT),
    ]
    assert item.metadata["reply_count"] == 3
    assert item.metadata["reply_users_count"] == 3
    assert item.metadata["thread_ts"] == ROOT.ts
    assert item.metadata["channel_type"] == "private"
    assert [f["id"] for f in item.metadata["files"]] == ["F1", "F2"]


@pytest.mark.asyncio
async def test_zero_replies_is_still_a_thread():
    item = await aggregate_thread(ROOT, [], CHANNEL, USERS)

    assert item.type == ContentItemType.THREAD
    assert item.updated_at_source == item.created_at_source
    assert not item.title.endswith("replies)")


@pytest.mark.asyncio
async def test_files_processed_once_for_whole_thread():
    storage = MagicMock(is_configured=True)
    storage.upload_file = AsyncMock()
    client = MagicMock()
    client.download_file = AsyncMock(return_value=(b"x", "text/plain"))
    context = MessageProcessingContext(source_id="src", client=client, storage=storage)

    item = await aggregate_thread(ROOT, [REPLY_1], CHANNEL, USERS, processing_context=context)

    keys = [f["storage_key"] for f in item.metadata["files"]]
    assert keys == ["slack-files/src/F1/trace.log", "slack-files/src/F2/graph.png"]
    assert client.download_file.await_count == 2


def test_transcript_time_always_has_milliseconds():
    assert format_transcript_time("1706123400.000000") == "2024-01-24T19:10:00.000Z"
    assert format_transcript_time("1706123400.123456") == "2024-01-24T19:10:00.123Z"
    assert format_transcript_time("1706123400") == "2024-01-24T19:10:00.000Z"


@pytest.mark.asyncio
async def test_reply_tied_with_root_keeps_its_files():
    root = SlackMessage(ts="100.000001", user="U1", text="root", files=[{"id": "F1", "url_private": "https://f/F1"}])
    tied = SlackMessage(ts="100.000001", user="U2", text="same ts", files=[{"id": "F2", "url_private": "https://f/F2"}])

    item = await aggregate_thread(root, [tied], CHANNEL, USERS)

    assert [f["id"] for f in item.metadata["files"]] == ["F1", "F2"]
    assert item.content.count("\n\n---\n\n") == 1
