"""
Slack Content Routes

Sync passes, point lookups, channel/user management and the Events API relay.

ContentSourceAuthError and ContentSourceSyncError propagate to the handlers
registered in app.main (401 and 502).
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging
import time

from app.api.dependencies import get_adapter, get_source
from app.integrations.slack.models import ChannelSyncState, SlackChannelInfo
from app.integrations.slack.parser import parse_permalink
from app.models.content import ContentSource, FetchOptions, FetchResult, RawContentItem
from app.services.slack_content_adapter import SlackContentAdapter

logger = logging.getLogger(__name__)
router = APIRouter()


class SyncResponse(BaseModel):
    success: bool
    result: FetchResult
    processing_time_seconds: float


class UserSyncResponse(BaseModel):
    success: bool
    total_users: int


class EventResponse(BaseModel):
    ok: bool = True
    item: Optional[RawContentItem] = None


def record_watermarks(adapter: SlackContentAdapter, source: ContentSource, items: List[RawContentItem]) -> None:
    """Advance each channel's sync state to the newest item it produced."""
    per_channel: Dict[str, List[RawContentItem]] = {}
    for item in items:
        channel_id = item.metadata.get("channel_id")
        if channel_id:
            per_channel.setdefault(channel_id, []).append(item)

    for channel_id, channel_items in per_channel.items():
        newest = max(channel_items, key=lambda i: float(i.external_id))
        existing = adapter.get_channel_sync_state(source.id, channel_id)
        previous_count = existing.message_count if existing else 0
        adapter.update_channel_sync_state(
            source.id,
            channel_id,
            channel_name=newest.metadata.get("channel_name"),
            channel_type=newest.metadata.get("channel_type"),
            last_synced_ts=newest.external_id,
            last_synced_at=datetime.now(),
            message_count=previous_count + len(channel_items),
        )


@router.get("/channels", response_model=List[SlackChannelInfo])
async def list_channels(
    adapter: SlackContentAdapter = Depends(get_adapter),
    source: ContentSource = Depends(get_source),
):
    return await adapter.list_channels(source)


@router.get("/channels/{channel_id}/sync-state", response_model=ChannelSyncState)
async def get_sync_state(
    channel_id: str,
    adapter: SlackContentAdapter = Depends(get_adapter),
    source: ContentSource = Depends(get_source),
):
    state = adapter.get_channel_sync_state(source.id, channel_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"No sync state for channel {channel_id}")
    return state


@router.post("/users/sync", response_model=UserSyncResponse)
async def sync_users(
    adapter: SlackContentAdapter = Depends(get_adapter),
    source: ContentSource = Depends(get_source),
):
    users = await adapter.sync_users(source)
    return UserSyncResponse(success=True, total_users=len(users))


@router.post("/sync", response_model=SyncResponse)
async def sync_content(
    options: Optional[FetchOptions] = None,
    adapter: SlackContentAdapter = Depends(get_adapter),
    source: ContentSource = Depends(get_source),
):
    """
    Run one incremental sync pass over the configured channels.

    Examples:
    - POST /api/slack/sync  (body optional)
    - POST /api/slack/sync  {"limit": 20, "cursor": "C123:1706123400.123456"}
    - POST /api/slack/sync  {"since": "2026-01-01T00:00:00Z"}
    """
    start_time = time.time()
    result = await adapter.fetch_content(source, options or FetchOptions())

    record_watermarks(adapter, source, result.items)
    processing_time = time.time() - start_time
    logger.info(f"Sync complete: {len(result.items)} items in {processing_time:.2f}s")
    return SyncResponse(
        success=True,
        result=result,
        processing_time_seconds=round(processing_time, 2),
    )


@router.get("/items", response_model=RawContentItem)
async def get_item_by_permalink(
    permalink: str = Query(..., description="Slack message permalink"),
    adapter: SlackContentAdapter = Depends(get_adapter),
    source: ContentSource = Depends(get_source),
):
    try:
        parsed = parse_permalink(permalink)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return await get_item(parsed.thread_ts, adapter, source)


@router.get("/items/{external_id}", response_model=RawContentItem)
async def get_item(
    external_id: str,
    adapter: SlackContentAdapter = Depends(get_adapter),
    source: ContentSource = Depends(get_source),
):
    item = await adapter.fetch_item(source, external_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Item {external_id} not found")
    return item


@router.post("/events", response_model=None)
async def slack_events(
    request: Request,
    adapter: SlackContentAdapter = Depends(get_adapter),
    source: ContentSource = Depends(get_source),
):
    """
    Events API relay.

    Signature verification happens upstream of this service.
    """
    payload: Dict[str, Any] = await request.json()

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    if payload.get("type") != "event_callback" or not isinstance(payload.get("event"), dict):
        return EventResponse(ok=True)

    item = await adapter.handle_event(source, payload["event"])
    return EventResponse(ok=True, item=item)
