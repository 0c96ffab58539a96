"""
Slack Content Adapter

Ingests Slack messages and threads as platform-agnostic content items.

Responsibilities:
- Incremental per-channel sync bounded by a "{channel_id}:{ts}" cursor
- Thread aggregation for thread roots, single-message normalization otherwise
- Point lookup of one item by message timestamp
- Normalization of real-time Events API payloads
- Channel listing, user directory sync and channel watermark access

Channels are processed sequentially to stay inside Slack's per-token rate
limit; file attachments within one item are processed concurrently.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from app.config import Settings, get_settings
from app.integrations.slack.client import SlackClient
from app.integrations.slack.events import (
    MessageEvent,
    ReactionEvent,
    SlackEvent,
    parse_event,
)
from app.integrations.slack.models import (
    ChannelSyncState,
    SlackChannelInfo,
    SlackContentConfig,
    SlackMessage,
    SlackUser,
)
from app.integrations.slack.parser import encode_cursor, parse_cursor
from app.models.content import (
    ContentSource,
    FetchOptions,
    FetchResult,
    RawContentItem,
    SourceCredentials,
    SourceType,
)
from app.services.attachments import MessageProcessingContext
from app.services.errors import ContentSourceAuthError, ContentSourceSyncError
from app.services.normalizer import message_to_raw_content_item
from app.services.storage import StorageService, get_storage
from app.services.sync_state import ChannelSyncStateStore
from app.services.thread_aggregator import aggregate_thread
from app.services.user_directory import UserDirectory
from app.utils.helpers import datetime_to_slack_ts, later_ts, or_default

logger = logging.getLogger(__name__)

THREAD_BROADCAST_SUBTYPE = "thread_broadcast"


class SlackContentAdapter:
    """ContentSourceAdapter implementation for Slack workspaces."""

    source_type = SourceType.SLACK

    def __init__(
        self,
        storage: Optional[StorageService] = None,
        user_directory: Optional[UserDirectory] = None,
        sync_state_store: Optional[ChannelSyncStateStore] = None,
        client_factory: Optional[Callable[[str], SlackClient]] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.storage = storage if storage is not None else get_storage()
        self.user_directory = user_directory or UserDirectory()
        self.sync_state_store = sync_state_store or ChannelSyncStateStore()
        self.client_factory = client_factory or (
            lambda token: SlackClient(token, settings=self.settings)
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_access_token(self, source: ContentSource) -> str:
        credentials = source.credentials
        if credentials is None or not credentials.access_token:
            raise ContentSourceAuthError("No access token found for Slack source", source.id)
        return credentials.access_token

    def _processing_context(self, source: ContentSource, client: SlackClient) -> MessageProcessingContext:
        return MessageProcessingContext(
            source_id=source.id,
            client=client,
            storage=self.storage,
            sync_files=source.config.sync_files,
        )

    async def _fetch_channel_map(self, client: SlackClient) -> Dict[str, str]:
        """channel id -> name, used for resolving channel mentions."""
        channels = await client.list_channels(limit=1000)
        return {c.id: c.name for c in channels if c.id and c.name}

    async def _channel_info(self, client: SlackClient, channel_id: str) -> Optional[SlackChannelInfo]:
        channel = await or_default(
            client.get_channel_info(channel_id), None, f"conversations.info {channel_id}"
        )
        if channel is not None and not channel.id:
            channel = channel.model_copy(update={"id": channel_id})
        return channel

    async def _permalink(self, client: SlackClient, channel_id: str, ts: str) -> Optional[str]:
        return await or_default(client.get_permalink(channel_id, ts), None, f"permalink {ts}")

    @staticmethod
    def _should_ingest(message: SlackMessage, config: SlackContentConfig) -> bool:
        # Join/leave and other system messages are noise
        if message.subtype and message.subtype != THREAD_BROADCAST_SUBTYPE:
            return False
        if config.exclude_bots and message.bot_id:
            return False
        return True

    async def _run_guarded(self, source: ContentSource, operation: str, coro) -> Any:
        """
        Run one adapter pass under the sync deadline.

        Auth and sync errors pass through; anything else becomes a
        ContentSourceSyncError.
        """
        timeout = self.settings.sync_timeout_seconds
        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except (ContentSourceAuthError, ContentSourceSyncError):
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"{operation} for source {source.id} timed out after {timeout}s")
            raise ContentSourceSyncError(
                f"{operation} timed out after {timeout}s", source.id, cause=e
            ) from e
        except Exception as e:
            logger.error(f"{operation} failed for source {source.id}: {e}")
            raise ContentSourceSyncError(str(e) or "Unknown error", source.id, cause=e) from e

    # ------------------------------------------------------------------
    # ContentSourceAdapter interface
    # ------------------------------------------------------------------

    async def validate_credentials(self, source: ContentSource) -> bool:
        try:
            token = self._get_access_token(source)
            await self.client_factory(token).auth_test()
            return True
        except Exception as e:
            logger.info(f"Credential validation failed for source {source.id}: {e}")
            return False

    async def fetch_content(
        self, source: ContentSource, options: Optional[FetchOptions] = None
    ) -> FetchResult:
        """
        Pull one page of new content from every configured channel.

        Raises:
            ContentSourceAuthError: Source has no access token
            ContentSourceSyncError: The pass failed as a whole
        """
        return await self._run_guarded(
            source, "fetch_content", self._fetch_content(source, options or FetchOptions())
        )

    async def _fetch_content(self, source: ContentSource, options: FetchOptions) -> FetchResult:
        token = self._get_access_token(source)
        config = source.config
        channel_ids = config.channels

        if not channel_ids:
            return FetchResult(items=[], has_more=False)

        logger.info(f"Starting Slack sync for source {source.id}: {len(channel_ids)} channels")

        client = self.client_factory(token)
        users = self.user_directory.snapshot(source.id)
        context = self._processing_context(source, client)
        channel_map = await or_default(self._fetch_channel_map(client), {}, "channel map")

        limit = options.limit or self.settings.slack_page_size
        cursor = parse_cursor(options.cursor)
        since_ts = datetime_to_slack_ts(options.since)
        latest = datetime_to_slack_ts(options.until)

        items: List[RawContentItem] = []
        has_more = False

        for channel_id in channel_ids:
            channel = await self._channel_info(client, channel_id)
            if channel is None:
                continue

            oldest = cursor[1] if cursor and cursor[0] == channel_id else None
            oldest = later_ts(oldest, since_ts)

            history_call = client.fetch_history(channel_id, oldest=oldest, latest=latest, limit=limit)
            if len(channel_ids) > 1:
                page = await or_default(history_call, None, f"conversations.history {channel_id}")
                if page is None:
                    continue
            else:
                page = await history_call

            has_more = has_more or page.has_more

            for message in page.messages:
                if not self._should_ingest(message, config):
                    continue

                if message.is_thread_root and config.sync_threads:
                    thread = await client.fetch_thread_replies(channel_id, message.ts)
                    # conversations.replies returns the parent first
                    replies = thread[1:] if thread and thread[0].ts == message.ts else thread
                    permalink = await self._permalink(client, channel_id, message.ts)
                    item = await aggregate_thread(
                        message, replies, channel, users, permalink, context, channel_map
                    )
                else:
                    permalink = await self._permalink(client, channel_id, message.ts)
                    item = await message_to_raw_content_item(
                        message, channel, users, permalink, context, channel_map
                    )
                items.append(item)

            logger.debug(f"Channel {channel_id}: {len(page.messages)} messages fetched")

        # Only the first configured channel can be resumed from this cursor
        next_cursor = None
        if has_more and items:
            next_cursor = encode_cursor(channel_ids[0], items[-1].external_id)

        logger.info(f"Slack sync for source {source.id} complete: {len(items)} items, has_more={has_more}")
        return FetchResult(items=items, has_more=has_more, next_cursor=next_cursor)

    async def fetch_item(self, source: ContentSource, external_id: str) -> Optional[RawContentItem]:
        """
        Look up one item by message timestamp across the configured channels.

        Returns:
            The message or aggregated thread, or None if no channel has it
        """
        return await self._run_guarded(
            source, "fetch_item", self._fetch_item(source, external_id)
        )

    async def _fetch_item(self, source: ContentSource, external_id: str) -> Optional[RawContentItem]:
        token = self._get_access_token(source)
        client = self.client_factory(token)
        users = self.user_directory.snapshot(source.id)
        context = self._processing_context(source, client)
        channel_map = await or_default(self._fetch_channel_map(client), {}, "channel map")

        for channel_id in source.config.channels:
            messages = await or_default(
                client.fetch_thread_replies(channel_id, external_id),
                [],
                f"conversations.replies probe {channel_id}",
            )
            if not messages:
                continue

            channel = await self._channel_info(client, channel_id)
            if channel is None:
                continue

            permalink = await self._permalink(client, channel_id, external_id)
            root, replies = messages[0], messages[1:]
            if replies:
                return await aggregate_thread(
                    root, replies, channel, users, permalink, context, channel_map
                )
            return await message_to_raw_content_item(
                root, channel, users, permalink, context, channel_map
            )

        logger.info(f"Item {external_id} not found in any configured channel")
        return None

    async def refresh_auth(self, source: ContentSource) -> SourceCredentials:
        """Slack bot tokens do not expire; returns the current credentials."""
        self._get_access_token(source)
        return source.credentials.model_copy()

    # ------------------------------------------------------------------
    # Slack-specific operations
    # ------------------------------------------------------------------

    async def list_channels(self, source: ContentSource) -> List[SlackChannelInfo]:
        client = self.client_factory(self._get_access_token(source))
        try:
            return await client.list_channels(exclude_archived=True)
        except Exception as e:
            raise ContentSourceSyncError(f"Failed to list channels: {e}", source.id, cause=e) from e

    async def sync_users(self, source: ContentSource) -> List[SlackUser]:
        """Refresh the user directory for this source from users.list."""
        client = self.client_factory(self._get_access_token(source))
        try:
            members = await client.list_users()
        except Exception as e:
            raise ContentSourceSyncError(f"Failed to list users: {e}", source.id, cause=e) from e

        users = [SlackUser.from_member(m) for m in members if m.get("id")]
        self.user_directory.upsert_many(source.id, users)
        logger.info(f"Synced {len(users)} Slack users for source {source.id}")
        return users

    def get_channel_sync_state(self, source_id: str, channel_id: str) -> Optional[ChannelSyncState]:
        return self.sync_state_store.get(source_id, channel_id)

    def update_channel_sync_state(self, source_id: str, channel_id: str, **update: Any) -> ChannelSyncState:
        return self.sync_state_store.update(source_id, channel_id, **update)

    async def handle_event(
        self, source: ContentSource, event: Union[Dict[str, Any], SlackEvent]
    ) -> Optional[RawContentItem]:
        """
        Normalize one real-time Slack event.

        Reactions re-fetch the reacted-to item, thread replies re-aggregate
        their whole thread, plain messages are normalized on their own.
        Unknown event types are ignored.

        Raises:
            ContentSourceSyncError: On any failure, including missing credentials
        """
        try:
            if isinstance(event, dict):
                event = parse_event(event)

            if isinstance(event, ReactionEvent):
                target = event.target
                if target is None:
                    return None
                return await self.fetch_item(source, target.ts)

            if isinstance(event, MessageEvent):
                return await self._run_guarded(
                    source, "handle_event", self._handle_message_event(source, event)
                )
        except ContentSourceAuthError as e:
            raise ContentSourceSyncError(e.message, source.id, cause=e) from e
        except ValidationError as e:
            raise ContentSourceSyncError(f"Malformed Slack event: {e}", source.id, cause=e) from e

        logger.debug(f"Ignoring Slack event type {event.type!r}")
        return None

    async def _handle_message_event(
        self, source: ContentSource, event: MessageEvent
    ) -> Optional[RawContentItem]:
        if not event.channel or not event.ts:
            return None
        if not self._should_ingest(event, source.config):
            return None

        token = self._get_access_token(source)
        client = self.client_factory(token)

        channel = await self._channel_info(client, event.channel)
        if channel is None:
            return None

        users = self.user_directory.snapshot(source.id)
        context = self._processing_context(source, client)
        channel_map = await or_default(self._fetch_channel_map(client), {}, "channel map")

        if event.is_thread_reply:
            # A new reply changes the transcript and reactions of the whole thread
            thread = await client.fetch_thread_replies(event.channel, event.thread_ts)
            if not thread:
                logger.warning(f"Thread {event.thread_ts} returned no messages")
                return None
            permalink = await self._permalink(client, event.channel, event.thread_ts)
            return await aggregate_thread(
                thread[0], thread[1:], channel, users, permalink, context, channel_map
            )

        permalink = await self._permalink(client, event.channel, event.ts)
        message = SlackMessage.model_validate(event.model_dump(exclude={"channel"}))
        return await message_to_raw_content_item(
            message, channel, users, permalink, context, channel_map
        )
