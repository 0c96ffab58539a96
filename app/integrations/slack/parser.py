"""
Slack Permalink and Sync Cursor Parsing

Permalinks resolve to the content item they point at; the sync cursor is
"{channel_id}:{ts}".
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import parse_qs, urlparse

PERMALINK_PATTERN = re.compile(r"^([^.]+)\.slack\.com$")
ARCHIVE_PATH_PATTERN = re.compile(r"^/archives/([A-Z0-9]+)/p(\d{16})$")
SLACK_TS_PATTERN = re.compile(r"^\d{10}\.\d{6}$")


@dataclass
class ParsedPermalink:
    workspace: str
    channel_id: str
    message_ts: str
    thread_ts: str

    @property
    def is_reply(self) -> bool:
        return self.message_ts != self.thread_ts


def _p_to_ts(raw: str) -> str:
    # p1234567890123456 -> 1234567890.123456
    return f"{raw[:10]}.{raw[10:]}"


def parse_permalink(permalink: str) -> ParsedPermalink:
    """
    Parse a Slack message permalink.

    Replies carry their thread root in the query string
    (`?thread_ts=...&cid=...`); `thread_ts` is the root for replies and the
    message itself otherwise, which is the external id of the content item.

    Examples:
        https://acme.slack.com/archives/C123ABC456/p1234567890123456
        -> channel_id C123ABC456, thread_ts 1234567890.123456

    Raises:
        ValueError: If the URL is not a Slack message permalink
    """
    url = urlparse(permalink.strip())
    host = PERMALINK_PATTERN.match(url.netloc or "")
    path = ARCHIVE_PATH_PATTERN.match(url.path or "")
    if url.scheme != "https" or not host or not path:
        raise ValueError(f"Invalid Slack permalink format: {permalink}")

    channel_id, raw_ts = path.groups()
    message_ts = _p_to_ts(raw_ts)

    thread_ts = parse_qs(url.query).get("thread_ts", [message_ts])[0]
    if not SLACK_TS_PATTERN.match(thread_ts):
        raise ValueError(f"Invalid thread_ts in Slack permalink: {permalink}")

    return ParsedPermalink(
        workspace=host.group(1),
        channel_id=channel_id,
        message_ts=message_ts,
        thread_ts=thread_ts,
    )


def encode_cursor(channel_id: str, ts: str) -> str:
    return f"{channel_id}:{ts}"


def parse_cursor(cursor: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Split a sync cursor into (channel_id, ts).

    Returns None for empty or malformed cursors.
    """
    if not cursor or ":" not in cursor:
        return None
    channel_id, _, ts = cursor.partition(":")
    if not channel_id or not ts:
        return None
    return channel_id, ts
