# booking/exceptions.py
"""
Scheduling errors raised by the booking engine.

Every refusal carries a stable ``code`` so API clients can explain exactly
why a slot was refused. Views translate these into ``{reason, detail}``
responses using ``status_code``.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

from rest_framework import status


class SchedulingError(Exception):
    """Base class for booking engine errors."""
    code = 'SchedulingError'
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request could not be scheduled.'

    def __init__(self, detail=None, **extra):
        self.detail = detail or self.default_detail
        self.extra = extra
        super().__init__(self.detail)

    def to_dict(self):
        """Convert error to dictionary for JSON responses."""
        data = {'reason': self.code, 'detail': self.detail}
        data.update(self.extra)
        return data


class InvalidInterval(SchedulingError):
    code = 'InvalidInterval'
    default_detail = 'Start time must be before end time.'


class VenueNotFound(SchedulingError):
    code = 'VenueNotFound'
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Venue does not exist.'


class VenueInUse(SchedulingError):
    code = 'VenueInUse'
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Venue is referenced by pending or approved bookings.'


class WindowNotFound(SchedulingError):
    code = 'WindowNotFound'
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Availability window does not exist.'


class BookingNotFound(SchedulingError):
    code = 'BookingNotFound'
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Booking does not exist.'


class NoAvailabilityWindow(SchedulingError):
    code = 'NoAvailabilityWindow'
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The requested time does not fit inside a declared availability window.'


class Overlap(SchedulingError):
    code = 'Overlap'
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The requested time overlaps an existing booking.'


class StaleRequest(SchedulingError):
    code = 'StaleRequest'
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Availability changed since this booking was submitted.'


class MissingReason(SchedulingError):
    code = 'MissingReason'
    default_detail = 'A note is required when declining a booking.'


class InvalidTransition(SchedulingError):
    code = 'InvalidTransition'
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Only pending bookings can be decided.'


class LockTimeout(SchedulingError):
    """Raised when a schedule key stays locked longer than the configured timeout.

    Indicates contention, not invalidity; callers may retry.
    """
    code = 'LockTimeout'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The schedule is busy, please retry.'


REJECTION_ERRORS = {
    cls.code: cls for cls in (
        InvalidInterval, VenueNotFound, NoAvailabilityWindow, Overlap,
    )
}
