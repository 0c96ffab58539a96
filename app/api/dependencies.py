"""
Shared route dependencies.

The adapter is created lazily so importing the app never touches Slack.
The active content source is assembled from settings, with runtime
credential-store values taking precedence.
"""

from app.config import get_settings
from app.integrations.slack.models import SlackContentConfig
from app.models.content import ContentSource, SourceCredentials
from app.services.credential_store import SLACK_BOT_TOKEN, SLACK_CHANNEL_IDS, get_credential
from app.services.slack_content_adapter import SlackContentAdapter

_adapter = None


def get_adapter() -> SlackContentAdapter:
    """Get SlackContentAdapter instance with lazy initialization."""
    global _adapter
    if _adapter is None:
        _adapter = SlackContentAdapter()
    return _adapter


def get_source() -> ContentSource:
    settings = get_settings()
    token = get_credential(SLACK_BOT_TOKEN, settings.slack_bot_token)
    channels = get_credential(SLACK_CHANNEL_IDS, settings.slack_channel_ids)

    return ContentSource(
        id=settings.slack_source_id,
        organization_id=settings.slack_organization_id,
        name="Slack",
        config=SlackContentConfig(
            channels=[c.strip() for c in channels.split(",") if c.strip()],
            sync_threads=settings.slack_sync_threads,
            sync_files=settings.slack_sync_files,
            exclude_bots=settings.slack_exclude_bots,
        ),
        credentials=SourceCredentials(access_token=token or None),
    )
