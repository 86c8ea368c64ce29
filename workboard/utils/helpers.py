"""Shared input-coercion helpers used by services and blueprints.

parse_date:     ISO / DD.MM.YYYY string → date (None on empty, ValidationError on bad input)
format_date:    date → "YYYY-MM-DD" or "" for None
parse_bool:     JSON / query-string truthiness
parse_int:      int with ValidationError on bad input
"""
import logging
from datetime import date, datetime

from workboard.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def parse_date(value, field_name="date"):
    """Parse a date string to a date object.

    Returns None for empty input.  Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY

    Raises:
        ValidationError: value is present but not a recognisable date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError) as exc:
        raise ValidationError(
            f"Invalid {field_name}. Use YYYY-MM-DD or DD.MM.YYYY.",
            details={field_name: str(value)},
        ) from exc


def format_date(value):
    """Render a date as YYYY-MM-DD, or an empty string when unset."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%Y-%m-%d")


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def parse_int(value, field_name, default=None):
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer", details={field_name: value})
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"{field_name} must be an integer", details={field_name: value},
        ) from exc
