# inventrack/time_helpers.py
from datetime import datetime, timezone
from zoneinfo import ZoneInfo
from flask import current_app


def app_tz():
    return current_app.config.get("APP_TZ", ZoneInfo("UTC"))


def utcnow():
    """Naive UTC instant, the representation stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_local():
    return datetime.now(app_tz())


def isoformat_utc(dt):
    if dt is None:
        return None
    return dt.replace(microsecond=0).isoformat() + "Z"
