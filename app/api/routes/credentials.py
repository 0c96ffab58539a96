from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List, Optional
import logging

from app.api.dependencies import get_adapter, get_source
from app.integrations.slack.client import SlackApiCallError
from app.models.content import ContentSource, SourceCredentials
from app.services.credential_store import (
    SLACK_BOT_TOKEN,
    SLACK_CHANNEL_IDS,
    SLACK_PREFIX,
    set_credential,
    clear_credentials,
    has_credential,
)
from app.services.slack_content_adapter import SlackContentAdapter

logger = logging.getLogger(__name__)
router = APIRouter()


class SlackConnectRequest(BaseModel):
    """Credentials sent from the UI to store on the backend."""

    channel_ids: List[str]
    bot_token: Optional[str] = None  # Optional override for the .env token


class SlackConnectResponse(BaseModel):
    success: bool
    message: str
    channel_names: List[str] = []


class SlackStatusResponse(BaseModel):
    connected: bool
    token_configured: bool
    channel_ids: List[str]
    runtime_override: bool


CHANNEL_ERROR_MESSAGES = {
    "channel_not_found": "Channel '{channel_id}' not found. Please check the channel ID and ensure the bot is added to the channel.",
    "not_in_channel": "Bot is not a member of channel '{channel_id}'. Please add the bot to the channel first.",
    "invalid_auth": "Invalid Slack bot token. Please check your token and try again.",
}


@router.post("/slack/connect", response_model=SlackConnectResponse)
async def connect_slack(
    request: SlackConnectRequest,
    adapter: SlackContentAdapter = Depends(get_adapter),
    source: ContentSource = Depends(get_source),
):
    """
    Store Slack credentials and verify every channel is reachable.

    The channel list (and optional bot token override) is kept in the
    in-memory credential store and picked up by every sync route.
    """
    channel_ids = [c.strip() for c in request.channel_ids if c.strip()]
    if not channel_ids:
        return SlackConnectResponse(success=False, message="At least one channel ID is required")

    token = request.bot_token or (source.credentials.access_token if source.credentials else None)
    if not token:
        return SlackConnectResponse(
            success=False,
            message="Slack bot token is not configured. Please provide a token or set SLACK_BOT_TOKEN in your environment.",
        )

    candidate = source.model_copy(update={"credentials": SourceCredentials(access_token=token)})
    if not await adapter.validate_credentials(candidate):
        return SlackConnectResponse(success=False, message=CHANNEL_ERROR_MESSAGES["invalid_auth"])

    client = adapter.client_factory(token)
    channel_names = []
    for channel_id in channel_ids:
        try:
            channel = await client.get_channel_info(channel_id)
        except SlackApiCallError as e:
            template = CHANNEL_ERROR_MESSAGES.get(e.upstream_message)
            if template is None:
                logger.error(f"Slack API error during channel validation: {e}")
                return SlackConnectResponse(success=False, message=f"Slack API error: {e.upstream_message}")
            return SlackConnectResponse(success=False, message=template.format(channel_id=channel_id))
        channel_names.append(channel.name or channel_id)
        logger.info(f"Validated access to Slack channel: #{channel.name} ({channel_id})")

    set_credential(SLACK_CHANNEL_IDS, ",".join(channel_ids))
    if request.bot_token:
        set_credential(SLACK_BOT_TOKEN, request.bot_token)

    logger.info(f"Slack credentials stored for {len(channel_ids)} channels")
    return SlackConnectResponse(
        success=True,
        message="Successfully connected to " + ", ".join(f"#{n}" for n in channel_names),
        channel_names=channel_names,
    )


@router.post("/slack/disconnect", response_model=SlackConnectResponse)
async def disconnect_slack():
    """
    Remove stored Slack credentials from the backend.
    """
    clear_credentials(SLACK_PREFIX)
    logger.info("Slack credentials cleared")
    return SlackConnectResponse(success=True, message="Disconnected from Slack")


@router.get("/slack/status", response_model=SlackStatusResponse)
async def slack_status(source: ContentSource = Depends(get_source)):
    token_configured = bool(source.credentials and source.credentials.access_token)
    return SlackStatusResponse(
        connected=token_configured and bool(source.config.channels),
        token_configured=token_configured,
        channel_ids=source.config.channels,
        runtime_override=has_credential(SLACK_CHANNEL_IDS) or has_credential(SLACK_BOT_TOKEN),
    )
