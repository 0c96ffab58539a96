"""
Content source error taxonomy.

Callers of the content adapter only ever see these two families.
"""

from typing import Optional


class ContentSourceAuthError(Exception):
    """
    Raised when a source has missing or unusable credentials.
    Fatal for the call that hit it.
    """

    def __init__(self, message: str, source_id: str, source_type: str = "slack"):
        super().__init__(message)
        self.message = message
        self.source_id = source_id
        self.source_type = source_type


class ContentSourceSyncError(Exception):
    """
    Raised when a sync, lookup or event pass fails as a whole.
    Carries the originating error as `cause`.
    """

    def __init__(
        self,
        message: str,
        source_id: str,
        source_type: str = "slack",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.source_id = source_id
        self.source_type = source_type
        self.cause = cause
