"""
Slack mrkdwn Resolver

Turns Slack inline markup into plain markdown:
    <@U123>               -> @Jane Doe
    <#C123|general>       -> #general
    <https://x.io|docs>   -> [docs](https://x.io)
    <https://x.io>        -> https://x.io
    *bold*                -> **bold**

Tokens are consumed, never re-emitted, so resolving twice is a no-op.
Unknown ids fall back to the raw id.
"""

import re
from typing import Mapping, Optional

USER_MENTION_PATTERN = re.compile(r"<@([UW][A-Z0-9]+)(?:\|([^>]*))?>")
CHANNEL_MENTION_PATTERN = re.compile(r"<#([CG][A-Z0-9]+)(?:\|([^>]*))?>")
BROADCAST_PATTERN = re.compile(r"<!(here|channel|everyone)(?:\|[^>]*)?>")
LABELED_LINK_PATTERN = re.compile(r"<([a-zA-Z][a-zA-Z0-9+.-]*:[^|>\s]+)\|([^>]+)>")
BARE_LINK_PATTERN = re.compile(r"<([a-zA-Z][a-zA-Z0-9+.-]*:[^|>\s]+)>")
# Only isolated asterisks; `**x**` is left alone
EMPHASIS_PATTERN = re.compile(r"(?<!\*)\*(?!\*)([^*\n]+?)(?<!\*)\*(?!\*)")
# Markdown link targets and bare URLs
URL_SPAN_PATTERN = re.compile(r"(\]\([^)\s]+\)|[a-zA-Z][a-zA-Z0-9+.-]*://\S+)")


def resolve_user_mentions(text: str, users: Optional[Mapping[str, str]] = None) -> str:
    def _replace(match: re.Match) -> str:
        user_id, label = match.group(1), match.group(2)
        name = (users or {}).get(user_id) or label or user_id
        return f"@{name}"

    return USER_MENTION_PATTERN.sub(_replace, text)


def resolve_channel_mentions(text: str, channels: Optional[Mapping[str, str]] = None) -> str:
    """Embedded channel names win over the lookup table."""

    def _replace(match: re.Match) -> str:
        channel_id, label = match.group(1), match.group(2)
        name = label or (channels or {}).get(channel_id) or channel_id
        return f"#{name}"

    return CHANNEL_MENTION_PATTERN.sub(_replace, text)


def resolve_links(text: str) -> str:
    text = LABELED_LINK_PATTERN.sub(lambda m: f"[{m.group(2)}]({m.group(1)})", text)
    return BARE_LINK_PATTERN.sub(lambda m: m.group(1), text)


def convert_emphasis(text: str) -> str:
    """Link targets and bare URLs are left untouched."""
    parts = URL_SPAN_PATTERN.split(text)
    # split() with one group puts the protected spans at odd indexes
    for i in range(0, len(parts), 2):
        parts[i] = EMPHASIS_PATTERN.sub(lambda m: f"**{m.group(1)}**", parts[i])
    return "".join(parts)


def resolve_mrkdwn(
    text: Optional[str],
    users: Optional[Mapping[str, str]] = None,
    channels: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """
    Resolve every supported Slack token in `text`.

    Args:
        text: Raw message text (None passes through)
        users: user id -> display name
        channels: channel id -> channel name

    Returns:
        Markdown text
    """
    if not text:
        return text

    text = resolve_user_mentions(text, users)
    text = resolve_channel_mentions(text, channels)
    text = BROADCAST_PATTERN.sub(lambda m: f"@{m.group(1)}", text)
    text = resolve_links(text)
    return convert_emphasis(text)
