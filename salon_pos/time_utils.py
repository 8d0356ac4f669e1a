from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from salon_pos.config import settings


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.business_timezone)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def business_today() -> date:
    return utcnow().astimezone(business_tz()).date()


def day_range(start_date: date, end_date: date, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
    """Half-open UTC interval covering start_date 00:00 through the end of end_date."""
    zone = tz or business_tz()
    start = datetime.combine(start_date, time.min, tzinfo=zone)
    end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def to_local(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return ensure_utc(value).astimezone(business_tz())
