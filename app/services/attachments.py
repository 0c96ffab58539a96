"""
Slack file attachment pipeline.

Each file is either skipped with a reason or downloaded from Slack and
uploaded to storage under a deterministic key. Files of one message (or one
aggregated thread) are processed concurrently and independently; failures
turn into skipped results and never propagate.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from app.config import Settings, get_settings
from app.integrations.slack.client import SlackClient
from app.integrations.slack.models import SlackFile, SlackFileAttachment
from app.services.storage import StorageService

logger = logging.getLogger(__name__)

MISSING_URL_REASON = "Missing Slack file URL"
STORAGE_NOT_CONFIGURED_REASON = "Storage not configured"
SYNC_DISABLED_REASON = "File sync disabled"


@dataclass(frozen=True)
class MessageProcessingContext:
    """What the pipeline needs to download and store files for one source."""

    source_id: str
    client: SlackClient
    storage: StorageService
    sync_files: bool = True


def generate_slack_file_key(prefix: str, source_id: str, file_id: str, filename: str) -> str:
    """Format: {prefix}/{source_id}/{file_id}/{sanitized filename}"""
    sanitized = re.sub(r"[^a-zA-Z0-9.-]", "_", filename)
    return f"{prefix}/{source_id}/{file_id}/{sanitized}"


def _skipped(file: SlackFile, reason: str) -> SlackFileAttachment:
    return SlackFileAttachment(
        id=file.id,
        name=file.name,
        mimetype=file.mimetype,
        url=file.url_private,
        size=file.size,
        skipped=True,
        skip_reason=reason,
    )


def file_metadata_only(files: Optional[Sequence[SlackFile]]) -> Optional[List[SlackFileAttachment]]:
    """Describe files without attempting any download."""
    if not files:
        return None
    return [
        SlackFileAttachment(id=f.id, name=f.name, mimetype=f.mimetype, url=f.url_private, size=f.size)
        for f in files
    ]


async def process_slack_file(
    file: SlackFile,
    context: MessageProcessingContext,
    settings: Optional[Settings] = None,
) -> SlackFileAttachment:
    settings = settings or get_settings()

    if not file.url_private:
        return _skipped(file, MISSING_URL_REASON)

    max_size = settings.max_file_size_bytes
    if file.size > max_size:
        return _skipped(file, f"File exceeds {max_size // (1024 * 1024)}MB limit")

    if not context.storage.is_configured:
        return _skipped(file, STORAGE_NOT_CONFIGURED_REASON)

    if not context.sync_files:
        return _skipped(file, SYNC_DISABLED_REASON)

    try:
        data, _ = await context.client.download_file(file.url_private)
    except Exception as e:
        logger.warning(f"Download failed for Slack file {file.id}: {e}")
        return _skipped(file, f"Download failed: {e}")

    storage_key = generate_slack_file_key(
        settings.slack_files_prefix, context.source_id, file.id, file.name
    )
    try:
        await context.storage.upload_file(
            data,
            storage_key,
            content_type=file.mimetype,
            metadata={
                "sourceId": context.source_id,
                "slackFileId": file.id,
                "originalName": file.name,
            },
        )
    except Exception as e:
        logger.warning(f"Upload failed for Slack file {file.id}: {e}")
        return _skipped(file, f"Upload failed: {e}")

    return SlackFileAttachment(
        id=file.id,
        name=file.name,
        mimetype=file.mimetype,
        url=file.url_private,
        size=file.size,
        storage_key=storage_key,
    )


async def process_slack_files(
    files: Optional[Sequence[SlackFile]],
    context: MessageProcessingContext,
    settings: Optional[Settings] = None,
) -> Optional[List[SlackFileAttachment]]:
    """
    Process every file concurrently.

    Returns:
        One result per input file, in input order, or None when there are no files
    """
    if not files:
        return None

    results = await asyncio.gather(
        *(process_slack_file(f, context, settings) for f in files)
    )
    stored = sum(1 for r in results if r.storage_key)
    logger.debug(f"Processed {len(results)} files for source {context.source_id} ({stored} stored)")
    return list(results)
