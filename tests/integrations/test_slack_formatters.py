"""
Tests for Slack mrkdwn resolution.
"""

import pytest

from app.integrations.slack.formatters import (
    convert_emphasis,
    resolve_channel_mentions,
    resolve_links,
    resolve_mrkdwn,
    resolve_user_mentions,
)

USERS = {"U123": "Jane Doe", "U456": "Bob"}
CHANNELS = {"C111": "engineering"}


class TestUserMentions:
    def test_resolves_known_user(self):
        assert resolve_user_mentions("hi <@U123>", USERS) == "hi @Jane Doe"

    def test_unknown_user_falls_back_to_label_then_id(self):
        assert resolve_user_mentions("<@U999|jdoe>", USERS) == "@jdoe"
        assert resolve_user_mentions("<@U999>", USERS) == "@U999"
        assert resolve_user_mentions("<@U999>") == "@U999"


class TestChannelMentions:
    def test_embedded_name_wins(self):
        assert resolve_channel_mentions("<#C111|general>", CHANNELS) == "#general"

    def test_lookup_then_raw_id(self):
        assert resolve_channel_mentions("see <#C111>", CHANNELS) == "see #engineering"
        assert resolve_channel_mentions("see <#C222>", CHANNELS) == "see #C222"


class TestLinks:
    def test_labeled_link_becomes_markdown(self):
        assert resolve_links("<https://example.com|docs>") == "[docs](https://example.com)"

    def test_bare_link_unwrapped(self):
        assert resolve_links("go to <https://example.com/a?b=1>") == "go to https://example.com/a?b=1"

    def test_mailto(self):
        assert resolve_links("<mailto:a@b.io|a@b.io>") == "[a@b.io](mailto:a@b.io)"


class TestEmphasis:
    def test_single_asterisk_becomes_bold(self):
        assert convert_emphasis("this is *important*") == "this is **important**"

    def test_double_asterisk_untouched(self):
        assert convert_emphasis("already **bold**") == "already **bold**"

    def test_unbalanced_asterisk_untouched(self):
        assert convert_emphasis("2 * 3 = 6") == "2 * 3 = 6"

    def test_link_targets_and_urls_untouched(self):
        assert convert_emphasis("[*doc*](https://x.io/a*b*c)") == "[**doc**](https://x.io/a*b*c)"
        assert convert_emphasis("*see* https://x.io/a*b*c") == "**see** https://x.io/a*b*c"


class TestResolveMrkdwn:
    def test_full_message(self):
        text = "*Heads up* <@U123>: deploy notes in <#C111> and <https://wiki.io/x|the wiki> <!here>"
        assert resolve_mrkdwn(text, USERS, CHANNELS) == (
            "**Heads up** @Jane Doe: deploy notes in #engineering and [the wiki](https://wiki.io/x) @here"
        )

    def test_link_with_asterisks_in_target(self):
        assert resolve_mrkdwn("<https://x.io/a*b*c|doc>") == "[doc](https://x.io/a*b*c)"
        assert resolve_mrkdwn("<https://x.io/a*b*c>") == "https://x.io/a*b*c"

    def test_none_and_empty_pass_through(self):
        assert resolve_mrkdwn(None, USERS, CHANNELS) is None
        assert resolve_mrkdwn("", USERS, CHANNELS) == ""

    @pytest.mark.parametrize(
        "text",
        [
            "*a* <@U123> <#C111|x> <https://a.io|b> <https://c.io>",
            "*a*b*c* and *unclosed",
            "**bold** *it* <@U999> <#C999>",
            "*a **b* c*",
            "<https://x.io/a*b*c|*doc*> and *this*",
            "plain text, nothing to do",
        ],
    )
    def test_idempotent(self, text):
        once = resolve_mrkdwn(text, USERS, CHANNELS)
        assert resolve_mrkdwn(once, USERS, CHANNELS) == once
