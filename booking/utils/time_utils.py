# booking/utils/time_utils.py
"""
Time-of-day helpers for the Venue Booking.

Windows and bookings store times as integer minutes since midnight so that
ordering and overlap tests are plain integer comparisons.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import re
from datetime import date, datetime, timedelta

MINUTES_PER_DAY = 24 * 60

_HHMM_RE = re.compile(r'^(\d{1,2}):(\d{2})$')


def parse_minutes(value):
    """
    Convert a time-of-day value to minutes since midnight.

    Accepts an int (already minutes), a ``"HH:MM"`` string, a numeric string
    or a ``datetime.time``. ``"24:00"`` is accepted as the end of the day.

    Raises:
        ValueError: if the value cannot be interpreted or is out of range.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid time value: {value!r}")

    if isinstance(value, int):
        minutes = value
    elif hasattr(value, 'hour') and hasattr(value, 'minute'):
        minutes = value.hour * 60 + value.minute
    elif isinstance(value, str):
        text = value.strip()
        match = _HHMM_RE.match(text)
        if match:
            hours, mins = int(match.group(1)), int(match.group(2))
            if mins >= 60:
                raise ValueError(f"Invalid time value: {value!r}")
            minutes = hours * 60 + mins
        elif text.isdigit():
            minutes = int(text)
        else:
            raise ValueError(f"Invalid time value: {value!r}")
    else:
        raise ValueError(f"Invalid time value: {value!r}")

    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise ValueError(f"Time out of range: {value!r}")
    return minutes


def format_minutes(minutes):
    """Format minutes since midnight as ``"HH:MM"``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value):
    """Parse ``YYYY-MM-DD`` (or an ISO datetime, keeping only the date part)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if 'T' in text:
        text = text.split('T')[0]
    return datetime.strptime(text, '%Y-%m-%d').date()


def date_range(start, end):
    """Yield every date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
