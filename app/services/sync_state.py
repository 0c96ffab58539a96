"""
Per-channel sync watermarks.

Stored in-memory only; records are created on first update and never deleted.
"""

import threading
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from app.integrations.slack.models import ChannelSyncState


class ChannelSyncStateStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._states: Dict[Tuple[str, str], ChannelSyncState] = {}

    def get(self, source_id: str, channel_id: str) -> Optional[ChannelSyncState]:
        with self._lock:
            state = self._states.get((source_id, channel_id))
            return state.model_copy() if state else None

    def update(self, source_id: str, channel_id: str, **update: Any) -> ChannelSyncState:
        """
        Merge `update` into the channel's record, creating it if needed.

        New records default channel_name to the channel id and type to public.
        """
        with self._lock:
            existing = self._states.get((source_id, channel_id))
            if existing is None:
                data = {
                    "source_id": source_id,
                    "channel_id": channel_id,
                    "channel_name": update.get("channel_name") or channel_id,
                    "channel_type": update.get("channel_type") or "public",
                }
                data.update({k: v for k, v in update.items() if v is not None})
                state = ChannelSyncState(**data)
            else:
                state = existing.model_copy(update={**update, "updated_at": datetime.now()})
                state = ChannelSyncState.model_validate(state.model_dump())
            self._states[(source_id, channel_id)] = state
            return state.model_copy()
