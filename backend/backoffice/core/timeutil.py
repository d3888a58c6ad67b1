from datetime import UTC, datetime


def as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive; they are stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat_utc(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value is not None else None
