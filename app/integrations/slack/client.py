"""
Slack API Client

Thin async wrapper over slack_sdk's WebClient:
- Every Web API call is an authenticated GET
- Cursor pagination follows response_metadata.next_cursor
- Non-2xx responses and `ok: false` bodies both surface as SlackApiCallError
- No retries here; callers decide whether a failure is fatal or degrading
"""

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError, SlackClientError
from app.config import Settings, get_settings
from app.integrations.slack.models import SlackChannelInfo, SlackHistoryPage, SlackMessage
from typing import List, Optional, Dict, Any, Tuple
import asyncio
import logging
import requests

logger = logging.getLogger(__name__)


class SlackApiCallError(Exception):
    """A Slack endpoint call failed at the HTTP or application level."""

    def __init__(self, endpoint: str, message: str):
        super().__init__(f"Slack API error ({endpoint}): {message}")
        self.endpoint = endpoint
        self.upstream_message = message


class SlackClient:
    """Slack Web API client bound to one access token."""

    def __init__(
        self,
        token: str,
        settings: Optional[Settings] = None,
        web_client: Optional[WebClient] = None,
    ):
        self.settings = settings or get_settings()
        self.token = token
        self.client = web_client or WebClient(
            token=token,
            base_url=self.settings.slack_api_base_url,
            timeout=self.settings.http_timeout_seconds,
        )

    async def fetch(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Issue one GET against a Web API method.

        Args:
            endpoint: API method name, e.g. "conversations.history"
            params: Query parameters

        Returns:
            Response body as a dict

        Raises:
            SlackApiCallError: On HTTP failure or an `ok: false` body
        """
        logger.debug(f"GET {endpoint} params={params}")
        try:
            response = await asyncio.to_thread(
                self.client.api_call,
                endpoint,
                http_verb="GET",
                params=params or {},
            )
        except SlackApiError as e:
            error = e.response.get("error") if e.response is not None else None
            raise SlackApiCallError(endpoint, error or str(e)) from e
        except (SlackClientError, OSError) as e:
            raise SlackApiCallError(endpoint, str(e)) from e

        data = response.data
        if not isinstance(data, dict) or not data.get("ok"):
            error = data.get("error") if isinstance(data, dict) else None
            raise SlackApiCallError(endpoint, error or "Unknown error")
        return data

    async def paginate(
        self, endpoint: str, key: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Any]:
        """
        Collect `key` from every page of a cursor-paginated listing.

        Each follow-up request repeats the original params plus the cursor.
        An absent or empty next_cursor ends the listing.
        """
        results: List[Any] = []
        cursor: Optional[str] = None
        while True:
            page_params = dict(params or {})
            if cursor:
                page_params["cursor"] = cursor
            data = await self.fetch(endpoint, page_params)
            results.extend(data.get(key) or [])
            cursor = (data.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                break
        logger.debug(f"{endpoint}: collected {len(results)} {key}")
        return results

    async def list_channels(self, exclude_archived: bool = False, limit: int = 200) -> List[SlackChannelInfo]:
        params = {"types": "public_channel,private_channel", "limit": limit}
        if exclude_archived:
            params["exclude_archived"] = "true"
        channels = await self.paginate("conversations.list", "channels", params)
        return [SlackChannelInfo.model_validate(c) for c in channels]

    async def get_channel_info(self, channel_id: str) -> SlackChannelInfo:
        data = await self.fetch("conversations.info", {"channel": channel_id})
        return SlackChannelInfo.model_validate(data.get("channel") or {})

    async def fetch_history(
        self,
        channel_id: str,
        oldest: Optional[str] = None,
        latest: Optional[str] = None,
        limit: int = 100,
        cursor: Optional[str] = None,
    ) -> SlackHistoryPage:
        """Fetch one page of channel history, newest first."""
        params: Dict[str, Any] = {"channel": channel_id, "limit": limit}
        if cursor:
            params["cursor"] = cursor
        if oldest:
            params["oldest"] = oldest
        if latest:
            params["latest"] = latest

        data = await self.fetch("conversations.history", params)
        return SlackHistoryPage(
            messages=[SlackMessage.model_validate(m) for m in data.get("messages") or []],
            has_more=bool(data.get("has_more")),
            next_cursor=(data.get("response_metadata") or {}).get("next_cursor") or None,
        )

    async def fetch_thread_replies(self, channel_id: str, thread_ts: str, limit: int = 100) -> List[SlackMessage]:
        """
        Fetch every message of a thread.

        The first element is always the thread root.
        """
        messages = await self.paginate(
            "conversations.replies",
            "messages",
            {"channel": channel_id, "ts": thread_ts, "limit": limit},
        )
        return [SlackMessage.model_validate(m) for m in messages]

    async def list_users(self, limit: int = 200) -> List[Dict[str, Any]]:
        return await self.paginate("users.list", "members", {"limit": limit})

    async def get_permalink(self, channel_id: str, message_ts: str) -> Optional[str]:
        data = await self.fetch(
            "chat.getPermalink", {"channel": channel_id, "message_ts": message_ts}
        )
        return data.get("permalink")

    async def auth_test(self) -> Dict[str, Any]:
        return await self.fetch("auth.test")

    async def download_file(self, url: str) -> Tuple[bytes, str]:
        """
        Download a private file with the bot token.

        Returns:
            (content bytes, content type)
        """

        def _download() -> Tuple[bytes, str]:
            response = requests.get(
                url,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.settings.http_timeout_seconds,
            )
            response.raise_for_status()
            content_type = response.headers.get("content-type") or "application/octet-stream"
            return response.content, content_type

        return await asyncio.to_thread(_download)
