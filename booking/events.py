# booking/events.py
"""
Change events sent by the booking engine.

Events are dispatched only after the surrounding transaction commits, so
receivers never observe state that is later rolled back. Delivery to people
(e-mail, push) is outside this app; receivers in signals.py turn events into
notification rows and calendar cache invalidations.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# kwargs: booking
booking_submitted = Signal()
booking_approved = Signal()
booking_declined = Signal()

# kwargs: window_id, action ('created' | 'updated' | 'deleted'), keys [(venue_id, date)]
window_changed = Signal()


def emit(signal, sender, **kwargs):
    """Send ``signal`` once the current transaction commits."""
    def _send():
        responses = signal.send_robust(sender=sender, **kwargs)
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    f"Receiver {getattr(receiver, '__name__', receiver)} failed: {response}",
                    exc_info=(type(response), response, response.__traceback__)
                )

    transaction.on_commit(_send)
