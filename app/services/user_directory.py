"""
In-memory Slack user directory, keyed by source id.

Populated by the adapter's sync_users step; normalization reads a snapshot.
"""

import threading
from typing import Dict, Iterable

from app.integrations.slack.models import SlackUser


class UserDirectory:
    def __init__(self):
        self._lock = threading.Lock()
        self._users: Dict[str, Dict[str, SlackUser]] = {}

    def snapshot(self, source_id: str) -> Dict[str, SlackUser]:
        """A copy of the directory for one source (slack user id -> user)."""
        with self._lock:
            return dict(self._users.get(source_id, {}))

    def upsert_many(self, source_id: str, users: Iterable[SlackUser]) -> None:
        with self._lock:
            directory = self._users.setdefault(source_id, {})
            for user in users:
                directory[user.slack_user_id] = user

    def clear(self, source_id: str) -> None:
        with self._lock:
            self._users.pop(source_id, None)
