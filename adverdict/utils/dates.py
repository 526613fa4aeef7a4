"""Datetime helpers."""

from __future__ import annotations

import os
import re
from datetime import date, datetime

import pendulum

DEFAULT_TZ = "America/Los_Angeles"

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def timezone_name() -> str:
    return os.environ.get("TIMEZONE", DEFAULT_TZ)


def now_in_tz() -> pendulum.DateTime:
    tz = pendulum.timezone(timezone_name())
    return pendulum.now(tz)


def today_in_tz() -> date:
    return now_in_tz().date()


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def parse_report_date(value: str) -> date:
    """Parse a report date as ISO, M/D/YYYY, or anything pendulum understands.

    Raises ValueError when nothing matches.
    """
    text = value.strip()
    if ISO_DATE_RE.match(text):
        return date.fromisoformat(text)
    match = US_DATE_RE.match(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        return date(year, month, day)
    try:
        parsed = pendulum.parse(text, strict=False)
    except (OverflowError, TypeError) as exc:
        raise ValueError(f"Unrecognized date {value!r}") from exc
    if isinstance(parsed, (datetime, date)):
        return date(parsed.year, parsed.month, parsed.day)
    raise ValueError(f"Unrecognized date {value!r}")
