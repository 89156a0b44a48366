from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware UTC now; every stored timestamp uses this."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back without tzinfo; treat those as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
