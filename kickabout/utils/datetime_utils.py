"""
Datetime utility functions.
"""

from datetime import datetime
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def isoformat_or_none(value: datetime):
    """Serialize an optional timestamp for API responses."""
    return value.isoformat() if value else None
