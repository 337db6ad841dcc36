# booking/conflicts.py
"""
Booking conflict detection for the Venue Booking.

This module decides whether a candidate (venue, date, start, end) booking
is legal against the declared availability windows and existing bookings,
and suggests alternative slots when it is not.

All intervals are half-open [start, end) in minutes since midnight:
two intervals overlap iff ``s1 < e2 and s2 < e1``.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.conf import settings

from .availability import AvailabilityStore, Interval, availability_store, merge_intervals
from .exceptions import (
    InvalidInterval, NoAvailabilityWindow, Overlap, VenueNotFound, REJECTION_ERRORS
)
from .models import Booking, Venue
from .utils.time_utils import MINUTES_PER_DAY, format_minutes

logger = logging.getLogger(__name__)


def intervals_overlap(s1, e1, s2, e2):
    return s1 < e2 and s2 < e1


class BookingConflict:
    """Represents a booking conflict with details."""

    def __init__(self, booking1, booking2, conflict_type='overlap'):
        self.booking1 = booking1
        self.booking2 = booking2
        self.conflict_type = conflict_type
        self.overlap_start = max(booking1.start_minute, booking2.start_minute)
        self.overlap_end = min(booking1.end_minute, booking2.end_minute)
        self.overlap_duration = self.overlap_end - self.overlap_start

    def __str__(self):
        return (f"Conflict between booking {self.booking1.pk} and booking {self.booking2.pk} "
                f"on {self.booking2.date} from {format_minutes(self.overlap_start)} "
                f"to {format_minutes(self.overlap_end)}")

    @staticmethod
    def _booking_dict(booking):
        return {
            'id': booking.pk,
            'title': booking.title,
            'venue_id': booking.venue_id,
            'date': booking.date.isoformat(),
            'start': booking.start_minute,
            'end': booking.end_minute,
            'status': booking.status,
        }

    def to_dict(self):
        """Convert conflict to dictionary for JSON serialization."""
        return {
            'booking1': self._booking_dict(self.booking1),
            'booking2': self._booking_dict(self.booking2),
            'conflict_type': self.conflict_type,
            'overlap_start': format_minutes(self.overlap_start),
            'overlap_end': format_minutes(self.overlap_end),
            'overlap_duration_minutes': self.overlap_duration,
        }


@dataclass
class Evaluation:
    """Outcome of ``ConflictResolver.evaluate``: Allowed, or Rejected with a reason."""
    allowed: bool
    reason: Optional[str] = None
    detail: str = ''
    window: Optional[Interval] = None
    conflicts: List[BookingConflict] = field(default_factory=list)

    @classmethod
    def allow(cls, window):
        return cls(allowed=True, window=window)

    @classmethod
    def reject(cls, error_class, detail=None, conflicts=None):
        return cls(
            allowed=False,
            reason=error_class.code,
            detail=detail or error_class.default_detail,
            conflicts=conflicts or [],
        )

    def as_error(self):
        """The SchedulingError matching this rejection."""
        error_class = REJECTION_ERRORS[self.reason]
        extra = {}
        if self.conflicts:
            extra['conflicts'] = [c.to_dict() for c in self.conflicts]
        return error_class(self.detail, **extra)

    def raise_for_rejection(self):
        if not self.allowed:
            raise self.as_error()

    def to_dict(self):
        data = {'allowed': self.allowed}
        if self.allowed:
            data['window'] = {
                'id': self.window.window_id,
                'start': self.window.start,
                'end': self.window.end,
            }
        else:
            data['reason'] = self.reason
            data['detail'] = self.detail
            data['conflicts'] = [c.to_dict() for c in self.conflicts]
        return data


class ConflictResolver:
    """Decides booking legality against availability windows and existing bookings."""

    BLOCKING_STATUSES = Booking.ACTIVE_STATUSES

    def __init__(self, store: AvailabilityStore = None):
        self.store = store or availability_store

    def evaluate(self, venue_id, date, start, end, blocking_statuses=None,
                 exclude_booking_ids=None) -> Evaluation:
        """
        Evaluate a candidate booking.

        Args:
            venue_id: Venue primary key
            date: Booking date
            start, end: minutes since midnight
            blocking_statuses: booking statuses that make an overlap a rejection;
                defaults to pending and approved
            exclude_booking_ids: bookings ignored for overlap (e.g. the one being approved)

        Returns:
            Evaluation; ``allowed`` is False with ``reason`` set on rejection
        """
        if start is None or end is None or start >= end or start < 0 or end > MINUTES_PER_DAY:
            return Evaluation.reject(InvalidInterval)

        if not Venue.objects.filter(pk=venue_id, is_active=True).exists():
            return Evaluation.reject(VenueNotFound, f"Venue {venue_id} does not exist.")

        # A request must fit inside one declared window; adjacent windows are not joined.
        windows = self.store.windows_for(venue_id, date)
        window = next((w for w in windows if w.contains(start, end)), None)
        if window is None:
            if windows:
                declared = ', '.join(f"{format_minutes(w.start)}-{format_minutes(w.end)}" for w in windows)
                detail = (f"{format_minutes(start)}-{format_minutes(end)} does not fit inside a "
                          f"single window on {date} (declared: {declared}).")
            else:
                detail = f"No availability declared for this venue on {date}."
            return Evaluation.reject(NoAvailabilityWindow, detail)

        statuses = tuple(blocking_statuses or self.BLOCKING_STATUSES)
        overlapping = Booking.objects.filter(
            venue_id=venue_id,
            date=date,
            status__in=statuses,
            start_minute__lt=end,
            end_minute__gt=start,
        ).exclude(pk__in=exclude_booking_ids or []).order_by('start_minute')

        if overlapping:
            candidate = Booking(venue_id=venue_id, date=date, start_minute=start, end_minute=end)
            conflicts = [BookingConflict(candidate, other) for other in overlapping]
            first = conflicts[0].booking2
            detail = (f"Overlaps {first.status} booking {first.pk} "
                      f"({first.start_time}-{first.end_time}).")
            return Evaluation.reject(Overlap, detail, conflicts)

        return Evaluation.allow(window)

    def suggest_alternative_times(self, venue_id, date, duration, limit=None):
        """
        Suggest free slots of ``duration`` minutes on the same venue and date.

        Free time is declared window time not covered by a pending or
        approved booking. Returns up to ``limit`` suggestions, earliest first.
        """
        if duration <= 0:
            return []
        limit = limit or getattr(settings, 'ALTERNATIVE_SLOT_LIMIT', 5)

        busy = merge_intervals(
            Interval(s, e) for s, e in Booking.objects.filter(
                venue_id=venue_id, date=date, status__in=self.BLOCKING_STATUSES
            ).values_list('start_minute', 'end_minute')
        )

        suggestions = []
        for window in self.store.windows_for(venue_id, date):
            cursor = window.start
            for block in busy:
                if not intervals_overlap(block.start, block.end, cursor, window.end):
                    continue
                if block.start - cursor >= duration:
                    suggestions.append(self._suggestion(cursor, duration, window))
                cursor = max(cursor, block.end)
            if window.end - cursor >= duration:
                suggestions.append(self._suggestion(cursor, duration, window))

        suggestions.sort(key=lambda s: s['start'])
        return suggestions[:limit]

    @staticmethod
    def _suggestion(start, duration, window):
        return {
            'start': start,
            'end': start + duration,
            'start_time': format_minutes(start),
            'end_time': format_minutes(start + duration),
            'window_id': window.window_id,
        }

    def find_approved_overlaps(self, venue_id=None, date_from=None, date_to=None):
        """
        Find pairs of approved bookings that overlap on the same venue and date.

        A healthy store returns an empty list; used by integrity audits.
        """
        queryset = Booking.objects.filter(status=Booking.STATUS_APPROVED)
        if venue_id:
            queryset = queryset.filter(venue_id=venue_id)
        if date_from:
            queryset = queryset.filter(date__gte=date_from)
        if date_to:
            queryset = queryset.filter(date__lte=date_to)

        conflicts = []
        groups = {}
        for booking in queryset.order_by('venue_id', 'date', 'start_minute'):
            groups.setdefault((booking.venue_id, booking.date), []).append(booking)

        for booking_list in groups.values():
            for i, booking1 in enumerate(booking_list):
                for booking2 in booking_list[i + 1:]:
                    # Sorted by start, so no later booking can overlap booking1 either.
                    if not booking1.overlaps(booking2.start_minute, booking2.end_minute):
                        break
                    conflicts.append(BookingConflict(booking1, booking2))
        return conflicts


conflict_resolver = ConflictResolver()
