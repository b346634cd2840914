"""
Datetime utility functions.
"""

from datetime import date, datetime
from typing import Optional, Union
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def today() -> date:
    return utcnow().date()


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """
    Parse a date of birth style value ("YYYY-MM-DD").

    Accepts a full ISO timestamp too and keeps only the date part.

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def combine_date_time(date_str: str, time_str: Optional[str] = None) -> datetime:
    """
    Combine a "YYYY-MM-DD" date and an optional "HH:MM" time into one datetime.

    A full ISO timestamp with an offset (including a trailing "Z") is
    converted to UTC and stored naive, matching the tryout ``date`` column.

    Raises:
        ValueError: If either part cannot be parsed
    """
    date_str = (date_str or "").strip()
    if time_str:
        value = datetime.fromisoformat(f"{date_str[:10]} {time_str.strip()}")
    else:
        if date_str.endswith(("Z", "z")):
            date_str = date_str[:-1] + "+00:00"
        value = datetime.fromisoformat(date_str)
    if value.tzinfo is not None:
        value = value.astimezone(pytz.UTC).replace(tzinfo=None)
    return value


def calculate_age(date_of_birth: Optional[date], on: Optional[date] = None) -> Optional[int]:
    """
    Age in whole years at ``on`` (defaults to today).

    Examples:
        >>> calculate_age(date(2000, 6, 15), on=date(2024, 6, 14))
        23
        >>> calculate_age(date(2000, 6, 15), on=date(2024, 6, 15))
        24
    """
    if date_of_birth is None:
        return None
    on = on or today()
    age = on.year - date_of_birth.year
    if (on.month, on.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def years_before(on: date, years: int) -> date:
    """The same calendar day ``years`` earlier (Feb 29 falls back to Feb 28)."""
    try:
        return on.replace(year=on.year - years)
    except ValueError:
        return on.replace(year=on.year - years, day=28)
