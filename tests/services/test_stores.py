"""
Tests for the in-memory user directory, channel sync state store and
runtime credential store.
"""

import pytest

from app.integrations.slack.models import SlackUser
from app.services import credential_store
from app.services.sync_state import ChannelSyncStateStore
from app.services.user_directory import UserDirectory


class TestUserDirectory:
    def test_snapshot_is_scoped_per_source(self):
        directory = UserDirectory()
        directory.upsert_many("a", [SlackUser(slack_user_id="U1", real_name="Alice")])

        assert list(directory.snapshot("a")) == ["U1"]
        assert directory.snapshot("b") == {}

    def test_upsert_replaces_existing_user(self):
        directory = UserDirectory()
        directory.upsert_many("a", [SlackUser(slack_user_id="U1", display_name="al")])
        directory.upsert_many("a", [SlackUser(slack_user_id="U1", real_name="Alice"), SlackUser(slack_user_id="U2")])

        snapshot = directory.snapshot("a")
        assert snapshot["U1"].resolved_name == "Alice"
        assert set(snapshot) == {"U1", "U2"}

    def test_snapshot_is_a_copy(self):
        directory = UserDirectory()
        directory.upsert_many("a", [SlackUser(slack_user_id="U1")])

        directory.snapshot("a").clear()

        assert "U1" in directory.snapshot("a")

    def test_clear(self):
        directory = UserDirectory()
        directory.upsert_many("a", [SlackUser(slack_user_id="U1")])
        directory.clear("a")
        directory.clear("never-synced")

        assert directory.snapshot("a") == {}


class TestChannelSyncStateStore:
    def test_missing_record(self):
        assert ChannelSyncStateStore().get("src", "C1") is None

    def test_create_applies_defaults(self):
        store = ChannelSyncStateStore()

        state = store.update("src", "C1", last_synced_ts="1706123400.000100")

        assert state.channel_name == "C1"
        assert state.channel_type == "public"
        assert state.message_count == 0
        assert state.last_synced_ts == "1706123400.000100"

    def test_update_merges_fields(self):
        store = ChannelSyncStateStore()
        store.update("src", "C1", channel_name="incidents", channel_type="private")

        store.update("src", "C1", message_count=7)

        state = store.get("src", "C1")
        assert state.channel_name == "incidents"
        assert state.channel_type == "private"
        assert state.message_count == 7

    def test_invalid_channel_type_rejected(self):
        store = ChannelSyncStateStore()
        store.update("src", "C1")

        with pytest.raises(Exception):
            store.update("src", "C1", channel_type="shared")

    def test_returned_state_does_not_alias_store(self):
        store = ChannelSyncStateStore()
        state = store.update("src", "C1")

        state.message_count = 99

        assert store.get("src", "C1").message_count == 0


class TestCredentialStore:
    @pytest.fixture(autouse=True)
    def _clean(self):
        credential_store.clear_credentials()
        yield
        credential_store.clear_credentials()

    def test_falls_back_to_default(self):
        assert credential_store.get_credential(credential_store.SLACK_BOT_TOKEN, "env-token") == "env-token"

        credential_store.set_credential(credential_store.SLACK_BOT_TOKEN, "ui-token")

        assert credential_store.get_credential(credential_store.SLACK_BOT_TOKEN, "env-token") == "ui-token"
        assert credential_store.has_credential(credential_store.SLACK_BOT_TOKEN)

    def test_blank_value_is_not_an_override(self):
        credential_store.set_credential(credential_store.SLACK_CHANNEL_IDS, "")

        assert not credential_store.has_credential(credential_store.SLACK_CHANNEL_IDS)
        assert credential_store.get_credential(credential_store.SLACK_CHANNEL_IDS, "C1") == "C1"

    def test_clear_by_prefix(self):
        credential_store.set_credential(credential_store.SLACK_BOT_TOKEN, "t")
        credential_store.set_credential("other_key", "x")

        removed = credential_store.clear_credentials(credential_store.SLACK_PREFIX)

        assert removed == [credential_store.SLACK_BOT_TOKEN]
        assert credential_store.has_credential("other_key")
