"""Timestamp parsing and formatting shared by extraction and export."""

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime


def format_iso(moment: datetime) -> str:
    """
    Format a datetime as UTC ISO 8601 with milliseconds.

    Example:
        format_iso(datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=UTC))
        # "2024-01-02T03:04:05.678Z"
    """
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def format_date_string(moment: datetime) -> str:
    """Format a datetime as "Tue Jan 02 2024" (UTC)."""
    return moment.astimezone(UTC).strftime("%a %b %d %Y")


def utc_now_iso() -> str:
    return format_iso(datetime.now(UTC))


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Parse a stored timestamp.

    Accepts ISO 8601 (naive values are taken as UTC) and RFC 2822 dates.

    Returns:
        Aware datetime, or None if the value is empty or unparsable
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None
        if parsed is None:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    try:
        return parsed.astimezone(UTC)
    except OverflowError:
        return None
