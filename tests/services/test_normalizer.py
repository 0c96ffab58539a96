"""
Tests for single-message normalization.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from app.integrations.slack.models import SlackChannelInfo, SlackMessage, SlackUser
from app.models.content import ContentItemType, ParticipantRole
from app.services.attachments import MessageProcessingContext
from app.services.normalizer import generate_message_title, message_to_raw_content_item

CHANNEL = SlackChannelInfo(id="C1", name="general", is_private=False)
USERS = {
    "U1": SlackUser(slack_user_id="U1", display_name="jane", real_name="Jane Doe", email="jane@example.com"),
    "U2": SlackUser(slack_user_id="U2", display_name="bob"),
}


def _message(**overrides):
    data = {"ts": "1706123400.123456", "user": "U1", "text": "Deploy finished for <#C9|ops>"}
    data.update(overrides)
    return SlackMessage.model_validate(data)


class TestTitles:
    def test_plain_message(self):
        title = generate_message_title(_message(text="short"), CHANNEL, USERS["U1"])
        assert title == "Jane Doe in #general: short"

    def test_long_text_truncated_at_50(self):
        text = "x" * 60
        title = generate_message_title(_message(text=text), CHANNEL, USERS["U2"])
        assert title == f"bob in #general: {'x' * 50}..."

    def test_thread_root(self):
        title = generate_message_title(_message(text="Outage?", reply_count=3), CHANNEL, USERS["U1"])
        assert title == "Thread: Outage? (3 replies)"

    def test_unknown_author(self):
        assert generate_message_title(_message(text="hi"), CHANNEL, None) == "Unknown in #general: hi"


@pytest.mark.asyncio
async def test_normalizes_message():
    message = _message(
        reactions=[{"name": "tada", "count": 2, "users": ["U1", "U2"]}, {"count": 1}],
        edited={"user": "U1", "ts": "1706123500.000000"},
    )

    item = await message_to_raw_content_item(message, CHANNEL, USERS, permalink="https://x.slack.com/p1")

    assert item.external_id == "1706123400.123456"
    assert item.type == ContentItemType.MESSAGE
    assert item.content == "Deploy finished for #ops"
    assert item.author_external == "U1"
    assert item.author_name == "Jane Doe"
    assert item.created_at_source == datetime.fromtimestamp(1706123400.123456, tz=timezone.utc)
    assert item.updated_at_source == datetime.fromtimestamp(1706123500, tz=timezone.utc)
    assert item.metadata["channel_id"] == "C1"
    assert item.metadata["channel_type"] == "public"
    assert item.metadata["permalink"] == "https://x.slack.com/p1"
    assert item.metadata["reactions"] == [{"name": "tada", "count": 2, "users": ["U1", "U2"]}]
    assert item.metadata["edited"] == {"user": "U1", "ts": "1706123500.000000"}
    [participant] = item.participants
    assert participant.role == ParticipantRole.AUTHOR
    assert participant.email == "jane@example.com"


@pytest.mark.asyncio
async def test_unresolved_author_has_no_participants():
    item = await message_to_raw_content_item(_message(user="U404"), CHANNEL, USERS)

    assert item.participants is None
    assert item.author_name == "U404"
    assert item.title.startswith("Unknown in #general")


@pytest.mark.asyncio
async def test_bot_message_uses_bot_id():
    item = await message_to_raw_content_item(_message(user=None, bot_id="B1"), CHANNEL, USERS)
    assert item.author_external == "B1"


@pytest.mark.asyncio
async def test_thread_root_typed_as_thread():
    item = await message_to_raw_content_item(_message(reply_count=2, thread_ts="1706123400.123456"), CHANNEL, USERS)
    assert item.type == ContentItemType.THREAD
    assert item.metadata["reply_count"] == 2


@pytest.mark.asyncio
async def test_files_processed_with_context():
    storage = MagicMock(is_configured=False)
    context = MessageProcessingContext(source_id="s", client=MagicMock(), storage=storage)
    message = _message(files=[{"id": "F1", "name": "a.png", "url_private": "https://f/1", "size": 10}])

    item = await message_to_raw_content_item(message, CHANNEL, USERS, processing_context=context)

    assert item.metadata["files"][0]["skip_reason"] == "Storage not configured"


@pytest.mark.asyncio
async def test_files_metadata_only_without_context():
    message = _message(files=[{"id": "F1", "name": "a.png", "url_private": "https://f/1", "size": 10}])

    item = await message_to_raw_content_item(message, CHANNEL, USERS)

    assert item.metadata["files"] == [
        {"id": "F1", "name": "a.png", "mimetype": "application/octet-stream", "url": "https://f/1", "size": 10}
    ]


@pytest.mark.asyncio
async def test_item_is_immutable():
    item = await message_to_raw_content_item(_message(), CHANNEL, USERS)
    with pytest.raises(Exception):
        item.title = "changed"
