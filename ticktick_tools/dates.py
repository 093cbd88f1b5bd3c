"""Date formats accepted by the TickTick APIs."""
from datetime import date, datetime, timezone

from .errors import ValidationError


def _parse_iso(value: str, field_name: str) -> datetime:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required", field_name)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid date for {field_name}: '{value}'", field_name)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def format_ticktick_date(value: str | None, field_name: str = "date") -> str | None:
    """ISO 8601 input -> 'yyyy-MM-ddTHH:mm:ss+HHMM' (no colon in the offset).

    Naive input is read in the local timezone. Empty input returns None.
    """
    if not value:
        return None
    return _parse_iso(value, field_name).strftime("%Y-%m-%dT%H:%M:%S%z")


def format_date_yyyymmdd(value: str, field_name: str = "date") -> str:
    """'2024-03-15T10:30:00Z' -> '20240315', in the input's own offset."""
    return _parse_iso(value, field_name).strftime("%Y%m%d")


def format_date_stamp(day: date) -> int:
    return int(day.strftime("%Y%m%d"))


def format_iso_with_millis(moment: datetime) -> str:
    """UTC timestamp with zeroed millis: '2024-03-15T10:30:00.000+0000'."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + ".000+0000"


def format_completed_range(value: str, field_name: str = "date") -> str:
    """UTC 'yyyy-MM-dd HH:mm:ss', the format of the completed-tasks query."""
    return _parse_iso(value, field_name).astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
