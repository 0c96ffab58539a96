"""
Utility package exports
"""

from app.utils.helpers import or_default, datetime_to_slack_ts, later_ts

__all__ = ["or_default", "datetime_to_slack_ts", "later_ts"]
