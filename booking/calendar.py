# booking/calendar.py
"""
Calendar projection for the Venue Booking.

Turns raw availability windows and bookings into per-date marker sets used
by every calendar surface (admin calendar, organiser booking calendar,
approval queue). A date may carry several markers at once:

    {'approved': bool, 'available': [venue ids], 'pending': bool}

Per-date results are cached; receivers in signals.py invalidate the dates
touched by each committed change.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import logging
from datetime import date as date_type
from typing import Dict, Iterable, Optional

from django.conf import settings
from django.core.cache import cache

from .models import AvailabilityWindow, Booking
from .utils.time_utils import date_range

logger = logging.getLogger(__name__)

CACHE_PREFIX = 'calendar'


def empty_markers():
    return {'approved': False, 'available': [], 'pending': False}


def has_markers(markers):
    return markers['approved'] or markers['pending'] or bool(markers['available'])


class CalendarProjector:
    """Read-only view builder merging windows and bookings into date markers."""

    def generation_key(self, day):
        return f"{CACHE_PREFIX}:generation:{day.isoformat()}"

    def cache_key(self, day, venue_id=None, generation=0):
        return f"{CACHE_PREFIX}:{generation}:{venue_id or 'all'}:{day.isoformat()}"

    def generations(self, dates):
        """Current cache generation of each date; dates never invalidated are at 0."""
        keys = {self.generation_key(day): day for day in dates}
        stored = cache.get_many(list(keys))
        return {day: stored.get(key, 0) for key, day in keys.items()}

    def project(self, date_from: date_type, date_to: date_type, venue_id: Optional[int] = None) -> Dict:
        """Markers for every date from ``date_from`` to ``date_to`` inclusive."""
        if date_to < date_from:
            return {}
        return self.project_dates(date_range(date_from, date_to), venue_id=venue_id)

    def project_dates(self, dates: Iterable[date_type], venue_id: Optional[int] = None) -> Dict:
        """
        Markers for the given dates.

        Entries are stored under the generation read before computing, so a
        result computed across a concurrent invalidation is never served.
        Dates without any marker are omitted from the result.
        """
        dates = sorted(set(dates))
        if not dates:
            return {}

        generations = self.generations(dates)
        keys = {self.cache_key(day, venue_id, generations[day]): day for day in dates}
        cached = cache.get_many(list(keys))
        markers = {keys[key]: value for key, value in cached.items()}

        missing = [day for day in dates if day not in markers]
        if missing:
            computed = self._compute(missing, venue_id)
            cache.set_many(
                {self.cache_key(day, venue_id, generations[day]): value for day, value in computed.items()},
                getattr(settings, 'CALENDAR_CACHE_TIMEOUT', 300),
            )
            markers.update(computed)
            logger.debug(f"Projected {len(missing)} calendar date(s), {len(cached)} from cache")

        return {day: markers[day] for day in dates if has_markers(markers[day])}

    def _compute(self, dates, venue_id=None):
        result = {day: empty_markers() for day in dates}
        available = {day: set() for day in dates}

        coverage = AvailabilityWindow.venues.through.objects.filter(
            availabilitywindow__date__in=dates, venue__is_active=True
        )
        if venue_id:
            coverage = coverage.filter(venue_id=venue_id)
        for day, window_venue in coverage.values_list('availabilitywindow__date', 'venue_id'):
            available[day].add(window_venue)

        bookings = Booking.objects.filter(date__in=dates, status__in=Booking.ACTIVE_STATUSES)
        if venue_id:
            bookings = bookings.filter(venue_id=venue_id)
        for day, status in bookings.values_list('date', 'status').distinct():
            if status == Booking.STATUS_APPROVED:
                result[day]['approved'] = True
            elif status == Booking.STATUS_PENDING:
                result[day]['pending'] = True

        for day in dates:
            result[day]['available'] = sorted(available[day])
        return result

    def invalidate(self, keys):
        """
        Retire cached markers for the given (venue_id, date) keys.

        Bumping a date's generation retires its per-venue and all-venues
        entries at once; the old entries expire on their own.
        """
        days = sorted({day for _, day in keys})
        for day in days:
            key = self.generation_key(day)
            try:
                cache.incr(key)
            except ValueError:
                # First invalidation of this date; lost races fall back to incr.
                if not cache.add(key, 1, timeout=None):
                    cache.incr(key)
        if days:
            logger.debug(f"Invalidated calendar markers for {len(days)} date(s)")


calendar_projector = CalendarProjector()
