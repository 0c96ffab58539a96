"""
Runtime overrides for the Slack source configuration.

Values set through POST /api/slack/connect take precedence over the .env
defaults in config.Settings. Kept in-memory only; a restart falls back to
the environment.
"""

import threading
from typing import Dict, List

SLACK_PREFIX = "slack_"
SLACK_BOT_TOKEN = "slack_bot_token"
SLACK_CHANNEL_IDS = "slack_channel_ids"

_lock = threading.Lock()
_store: Dict[str, str] = {}


def set_credential(key: str, value: str) -> None:
    with _lock:
        _store[key] = value


def get_credential(key: str, default: str = "") -> str:
    """Stored value for `key`, or `default` when unset or blank."""
    with _lock:
        return _store.get(key) or default


def clear_credentials(prefix: str = "") -> List[str]:
    """Drop every key starting with `prefix`; returns the removed keys."""
    with _lock:
        removed = [k for k in _store if k.startswith(prefix)]
        for k in removed:
            del _store[k]
        return removed


def has_credential(key: str) -> bool:
    with _lock:
        return bool(_store.get(key))
