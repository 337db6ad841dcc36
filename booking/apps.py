"""
App configuration for the booking app.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

from django.apps import AppConfig


class BookingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'booking'
    verbose_name = 'Venue Booking'

    def ready(self):
        """Connect signal receivers."""
        import booking.signals  # noqa: F401
