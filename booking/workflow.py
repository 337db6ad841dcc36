# booking/workflow.py
"""
Booking submission and approval workflow for the Venue Booking.

States: pending (initial) -> approved | declined (both terminal).

Submission and decisions are the authoritative commit paths: each holds
the (venue, date) lock, re-runs the conflict check and only then writes.
A failed call leaves every store unchanged.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import logging
import time

from django.conf import settings
from django.utils import timezone

from . import events
from .conflicts import ConflictResolver, conflict_resolver
from .exceptions import (
    BookingNotFound, InvalidInterval, InvalidTransition, LockTimeout,
    MissingReason, StaleRequest, VenueNotFound,
)
from .locks import lock_venue_rows, schedule_locks
from .models import Booking, BookingHistory, Venue

logger = logging.getLogger(__name__)

OUTCOME_APPROVED = Booking.STATUS_APPROVED
OUTCOME_DECLINED = Booking.STATUS_DECLINED


def normalize_outcome(outcome):
    """Map 'Approved'/'approve'/'declined'/'decline' etc. to a terminal status."""
    value = str(outcome or '').strip().lower()
    if value in ('approved', 'approve'):
        return OUTCOME_APPROVED
    if value in ('declined', 'decline', 'rejected', 'reject'):
        return OUTCOME_DECLINED
    raise ValueError(f"Unknown outcome: {outcome!r}")


class ApprovalWorkflow:
    """Governs a booking's lifecycle from submission to decision."""

    def __init__(self, resolver: ConflictResolver = None, locks=None):
        self.resolver = resolver or conflict_resolver
        self.locks = locks or schedule_locks

    def _with_retry(self, func, *args, **kwargs):
        """Call ``func``, retrying LockTimeout with exponential backoff."""
        retries = getattr(settings, 'BOOKING_LOCK_RETRIES', 3)
        backoff = getattr(settings, 'BOOKING_LOCK_BACKOFF_SECONDS', 0.05)
        attempt = 0
        while True:
            try:
                return func(*args, **kwargs)
            except LockTimeout:
                if attempt >= retries:
                    logger.error(f"{func.__name__} gave up after {attempt + 1} lock attempts")
                    raise
                delay = backoff * (2 ** attempt)
                attempt += 1
                logger.warning(f"{func.__name__} hit lock contention, retry {attempt} in {delay:.2f}s")
                time.sleep(delay)

    def submit(self, organiser, venue_id, date, start, end, title='', description=''):
        """
        Submit a booking request.

        Returns:
            The new pending Booking

        Raises:
            InvalidInterval, VenueNotFound, NoAvailabilityWindow, Overlap, LockTimeout
        """
        if start is None or end is None or start >= end:
            raise InvalidInterval()
        if not Venue.objects.filter(pk=venue_id, is_active=True).exists():
            raise VenueNotFound(f"Venue {venue_id} does not exist.")

        return self._with_retry(
            self._submit_locked, organiser, venue_id, date, start, end, title, description
        )

    def _submit_locked(self, organiser, venue_id, date, start, end, title, description):
        with self.locks.hold([(venue_id, date)]):
            if not lock_venue_rows([venue_id]):
                raise VenueNotFound(f"Venue {venue_id} does not exist.")
            # Pending bookings reserve their slot, so they block new submissions too.
            evaluation = self.resolver.evaluate(venue_id, date, start, end)
            if not evaluation.allowed:
                logger.info(
                    f"Submission by {organiser.username} for venue {venue_id} on {date} "
                    f"rejected: {evaluation.reason}"
                )
                evaluation.raise_for_rejection()

            booking = Booking.objects.create(
                venue_id=venue_id,
                organiser=organiser,
                title=title or '',
                description=description or '',
                date=date,
                start_minute=start,
                end_minute=end,
                status=Booking.STATUS_PENDING,
            )
            BookingHistory.objects.create(
                booking=booking,
                user=organiser,
                action='created',
                new_values=self._snapshot(booking),
            )
            events.emit(events.booking_submitted, sender=Booking, booking=booking)

        logger.info(f"Booking {booking.pk} submitted for venue {venue_id} on {date} "
                    f"{booking.start_time}-{booking.end_time}")
        return booking

    def decide(self, booking_id, outcome, note='', decided_by=None):
        """
        Approve or decline a pending booking.

        Approval re-checks containment and overlap against approved bookings
        only; other pending requests for the same slot do not block it.

        Raises:
            BookingNotFound, InvalidTransition, MissingReason, StaleRequest, LockTimeout
            ValueError: if ``outcome`` is not recognised
        """
        status = normalize_outcome(outcome)
        note = (note or '').strip()
        if status == OUTCOME_DECLINED and not note:
            raise MissingReason()

        key = Booking.objects.filter(pk=booking_id).values_list('venue_id', 'date').first()
        if key is None:
            raise BookingNotFound(f"Booking {booking_id} does not exist.")

        return self._with_retry(self._decide_locked, booking_id, key, status, note, decided_by)

    def _decide_locked(self, booking_id, key, status, note, decided_by):
        with self.locks.hold([key]):
            booking = Booking.objects.select_for_update().get(pk=booking_id)
            if booking.is_terminal:
                raise InvalidTransition(
                    f"Booking {booking.pk} is already {booking.status}; submit a new booking instead."
                )

            if status == OUTCOME_APPROVED:
                evaluation = self.resolver.evaluate(
                    booking.venue_id, booking.date, booking.start_minute, booking.end_minute,
                    blocking_statuses=(Booking.STATUS_APPROVED,),
                    exclude_booking_ids=[booking.pk],
                )
                if not evaluation.allowed:
                    logger.info(f"Approval of booking {booking.pk} is stale: {evaluation.reason}")
                    raise StaleRequest(
                        f"Cannot approve booking {booking.pk}: {evaluation.detail}",
                        cause=evaluation.reason,
                    )

            old_values = self._snapshot(booking)
            booking.status = status
            booking.decision_note = note
            booking.decided_by = decided_by
            booking.decided_at = timezone.now()
            booking.save(update_fields=['status', 'decision_note', 'decided_by', 'decided_at', 'updated_at'])

            BookingHistory.objects.create(
                booking=booking,
                user=decided_by,
                action=status,
                old_values=old_values,
                new_values=self._snapshot(booking),
                notes=note,
            )
            signal = events.booking_approved if status == OUTCOME_APPROVED else events.booking_declined
            events.emit(signal, sender=Booking, booking=booking)

        logger.info(f"Booking {booking.pk} {status} by "
                    f"{decided_by.username if decided_by else 'system'}")
        return booking

    @staticmethod
    def _snapshot(booking):
        return {
            'venue_id': booking.venue_id,
            'date': booking.date.isoformat(),
            'start': booking.start_minute,
            'end': booking.end_minute,
            'status': booking.status,
            'decision_note': booking.decision_note,
        }


approval_workflow = ApprovalWorkflow()
