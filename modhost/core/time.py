"""UTC clock helpers"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()
