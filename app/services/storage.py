"""
Blob storage used for synced Slack files.

Only the upload contract matters to the sync engine: `is_configured` and
`upload_file`. LocalStorage writes under a directory; any other backend can
be swapped in by implementing StorageService.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

from pydantic import BaseModel

from app.config import get_settings

logger = logging.getLogger(__name__)


class StorageUploadError(Exception):
    """Raised when a blob could not be written."""

    pass


class UploadResult(BaseModel):
    key: str
    size: int
    content_type: str


class StorageService(Protocol):
    @property
    def is_configured(self) -> bool: ...

    async def upload_file(
        self,
        data: bytes,
        key: str,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> UploadResult: ...


class LocalStorage:
    """Filesystem-backed storage rooted at `storage_dir`."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root) if root else None

    @property
    def is_configured(self) -> bool:
        return self.root is not None

    async def upload_file(
        self,
        data: bytes,
        key: str,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> UploadResult:
        if self.root is None:
            raise StorageUploadError("Storage not configured")

        target = (self.root / key).resolve()
        if self.root.resolve() not in target.parents:
            raise StorageUploadError(f"Invalid storage key: {key}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            sidecar = target.with_name(target.name + ".meta.json")
            sidecar.write_text(
                json.dumps({"content_type": content_type, "metadata": metadata or {}})
            )
        except OSError as e:
            raise StorageUploadError(str(e)) from e

        logger.debug(f"Stored {len(data)} bytes at {key}")
        return UploadResult(key=key, size=len(data), content_type=content_type)


def get_storage() -> LocalStorage:
    return LocalStorage(get_settings().storage_dir or None)
