# booking/availability.py
"""
Availability window store for the Venue Booking.

Administrators declare windows naming one or more venues, a date and a
half-open minute range. Mutations hold the (venue, date) lock of every key
they touch; reads are lock-free snapshots.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import logging
from collections import namedtuple
from typing import Iterable, List, Optional

from . import events
from .exceptions import InvalidInterval, VenueNotFound, WindowNotFound
from .locks import lock_venue_rows, schedule_locks
from .models import AvailabilityWindow, Venue
from .utils.time_utils import MINUTES_PER_DAY, format_minutes

logger = logging.getLogger(__name__)


class Interval(namedtuple('Interval', ['start', 'end', 'window_id'], defaults=[None])):
    """Half-open minute range [start, end), optionally tagged with its window."""
    __slots__ = ()

    def contains(self, start, end):
        return self.start <= start and end <= self.end


def validate_interval(start, end):
    """Reject zero-length, inverted or out-of-day ranges."""
    if start is None or end is None:
        raise InvalidInterval("Start and end times are required.")
    if start < 0 or end > MINUTES_PER_DAY:
        raise InvalidInterval("Times must fall between 00:00 and 24:00.")
    if start >= end:
        raise InvalidInterval(
            f"Start time {format_minutes(start)} must be before end time {format_minutes(end)}."
        )


class AvailabilityStore:
    """Owns admin-declared availability windows."""

    def __init__(self, locks=None):
        self.locks = locks or schedule_locks

    def _check_venues(self, venue_ids):
        ids = set(venue_ids or [])
        if not ids:
            raise VenueNotFound("At least one venue is required.")
        found = set(Venue.objects.filter(pk__in=ids).values_list('pk', flat=True))
        missing = sorted(ids - found)
        if missing:
            raise VenueNotFound(f"Unknown venue id(s): {', '.join(str(m) for m in missing)}.")
        return sorted(ids)

    def _lock_venues(self, venue_ids):
        """Lock venue rows until the current transaction ends."""
        missing = sorted(set(venue_ids) - lock_venue_rows(venue_ids))
        if missing:
            raise VenueNotFound(f"Unknown venue id(s): {', '.join(str(m) for m in missing)}.")

    def add_window(self, venue_ids, date, start, end, created_by=None, notes=''):
        """Validate and store a window; returns the stored AvailabilityWindow."""
        return self.add_windows([{
            'venue_ids': venue_ids, 'date': date, 'start': start, 'end': end, 'notes': notes,
        }], created_by=created_by)[0]

    def add_windows(self, entries, created_by=None):
        """
        Store several windows at once.

        All entries are validated before anything is written, so a bad entry
        leaves the store unchanged.
        """
        prepared = []
        for entry in entries:
            validate_interval(entry['start'], entry['end'])
            venue_ids = self._check_venues(entry['venue_ids'])
            prepared.append((venue_ids, entry))

        keys = [(venue_id, entry['date']) for venue_ids, entry in prepared for venue_id in venue_ids]
        created = []
        with self.locks.hold(keys):
            self._lock_venues({venue_id for venue_id, _ in keys})
            for venue_ids, entry in prepared:
                window = AvailabilityWindow.objects.create(
                    date=entry['date'],
                    start_minute=entry['start'],
                    end_minute=entry['end'],
                    notes=entry.get('notes') or '',
                    created_by=created_by,
                )
                window.venues.set(venue_ids)
                created.append(window)
                events.emit(
                    events.window_changed, sender=AvailabilityWindow,
                    window_id=window.pk, action='created',
                    keys=[(venue_id, window.date) for venue_id in venue_ids],
                )

        for window in created:
            logger.info(
                f"Window {window.pk} added for venues {window.venue_ids} on {window.date} "
                f"{window.start_time}-{window.end_time}"
            )
        return created

    def get_window(self, window_id):
        try:
            return AvailabilityWindow.objects.prefetch_related('venues').get(pk=window_id)
        except AvailabilityWindow.DoesNotExist:
            raise WindowNotFound(f"Availability window {window_id} does not exist.")

    def _lock_window(self, window_id):
        """Re-read a window inside the held keys' transaction."""
        try:
            return AvailabilityWindow.objects.select_for_update().get(pk=window_id)
        except AvailabilityWindow.DoesNotExist:
            raise WindowNotFound(f"Availability window {window_id} does not exist.")

    def update_window(self, window_id, venue_ids=None, date=None, start=None, end=None, notes=None):
        """
        Update a window's venues, date or times.

        Locks the keys the window covered before and after the change. The
        window is re-read under those locks; if another writer moved it in
        the meantime the keys are recomputed and the update retried. Only
        the fields passed in are written.
        Already-approved bookings are never invalidated by shrinking a window.
        """
        if venue_ids is not None:
            venue_ids = self._check_venues(venue_ids)

        snapshot = self.get_window(window_id)
        while True:
            locked = self._window_keys(snapshot, venue_ids, date)
            with self.locks.hold(locked):
                window = self._lock_window(window_id)
                old_venue_ids = window.venue_ids
                new_venue_ids = venue_ids if venue_ids is not None else old_venue_ids
                old_keys = [(venue_id, window.date) for venue_id in old_venue_ids]
                new_keys = [(venue_id, date or window.date) for venue_id in new_venue_ids]
                touched = sorted(set(old_keys + new_keys))

                if set(touched) <= set(locked):
                    if venue_ids is not None:
                        self._lock_venues(new_venue_ids)
                    window = self._apply_update(window, old_venue_ids, new_venue_ids,
                                                date, start, end, notes)
                    events.emit(
                        events.window_changed, sender=AvailabilityWindow,
                        window_id=window.pk, action='updated', keys=touched,
                    )
                    break
            logger.info(f"Window {window_id} moved while waiting for its locks, retrying")
            snapshot = self.get_window(window_id)

        logger.info(f"Window {window.pk} updated: venues {new_venue_ids} on {window.date} "
                    f"{window.start_time}-{window.end_time}")
        return window

    @staticmethod
    def _window_keys(window, venue_ids=None, date=None):
        """Keys a window covers now plus the keys it would cover after the change."""
        keys = {(venue_id, window.date) for venue_id in window.venue_ids}
        keys.update((venue_id, date or window.date) for venue_id in (venue_ids or window.venue_ids))
        return sorted(keys)

    def _apply_update(self, window, old_venue_ids, new_venue_ids, date, start, end, notes):
        changed = {
            'date': date,
            'start_minute': start,
            'end_minute': end,
            'notes': notes,
        }
        changed = {name: value for name, value in changed.items() if value is not None}
        for name, value in changed.items():
            setattr(window, name, value)
        validate_interval(window.start_minute, window.end_minute)

        window.save(update_fields=[*changed, 'updated_at'])
        if new_venue_ids != old_venue_ids:
            window.venues.set(new_venue_ids)
        return window

    def delete_window(self, window_id):
        snapshot = self.get_window(window_id)
        while True:
            locked = self._window_keys(snapshot)
            with self.locks.hold(locked):
                window = self._lock_window(window_id)
                keys = [(venue_id, window.date) for venue_id in window.venue_ids]
                if set(keys) <= set(locked):
                    window.delete()
                    events.emit(
                        events.window_changed, sender=AvailabilityWindow,
                        window_id=window_id, action='deleted', keys=keys,
                    )
                    break
            logger.info(f"Window {window_id} moved while waiting for its locks, retrying")
            snapshot = self.get_window(window_id)
        logger.info(f"Window {window_id} deleted")

    def windows_for(self, venue_id, date) -> List[Interval]:
        """Ordered intervals declared for a venue on a date (possibly empty)."""
        rows = AvailabilityWindow.objects.filter(
            venues__pk=venue_id, date=date
        ).order_by('start_minute', 'end_minute').values_list('start_minute', 'end_minute', 'pk')
        return [Interval(start, end, pk) for start, end, pk in rows]

    def windows_in_range(self, date_from=None, date_to=None, venue_id: Optional[int] = None):
        """Windows between two dates (inclusive), optionally for one venue."""
        queryset = AvailabilityWindow.objects.prefetch_related('venues')
        if date_from:
            queryset = queryset.filter(date__gte=date_from)
        if date_to:
            queryset = queryset.filter(date__lte=date_to)
        if venue_id:
            queryset = queryset.filter(venues__pk=venue_id).distinct()
        return queryset.order_by('date', 'start_minute', 'end_minute')


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Union of intervals as a sorted list of disjoint intervals."""
    merged = []
    for interval in sorted(intervals, key=lambda i: (i.start, i.end)):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, interval.end))
        else:
            merged.append(Interval(interval.start, interval.end))
    return merged


availability_store = AvailabilityStore()
