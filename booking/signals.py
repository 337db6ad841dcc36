# booking/signals.py
"""
Django signals for the Venue Booking.

Receivers here turn committed engine events into notification rows and
calendar cache invalidations.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

from django.contrib.auth.models import User
from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_delete
from django.dispatch import receiver

from . import events
from .calendar import calendar_projector
from .models import UserProfile, Venue
from .notifications import availability_notifications, booking_notifications


@receiver(post_save, sender=User)
def create_user_profile(sender, instance, created, **kwargs):
    """Create UserProfile when User is created."""
    if created:
        UserProfile.objects.get_or_create(user=instance)


@receiver(events.booking_submitted)
def handle_booking_submitted(sender, booking, **kwargs):
    calendar_projector.invalidate([(booking.venue_id, booking.date)])
    booking_notifications.booking_submitted(booking)


@receiver(events.booking_approved)
def handle_booking_approved(sender, booking, **kwargs):
    calendar_projector.invalidate([(booking.venue_id, booking.date)])
    booking_notifications.booking_approved(booking)


@receiver(events.booking_declined)
def handle_booking_declined(sender, booking, **kwargs):
    calendar_projector.invalidate([(booking.venue_id, booking.date)])
    booking_notifications.booking_declined(booking)


@receiver(events.window_changed)
def handle_window_changed(sender, window_id, action, keys, **kwargs):
    calendar_projector.invalidate(keys)
    availability_notifications.window_changed(window_id, action, keys)


def _venue_keys(venue):
    dates = venue.availability_windows.values_list('date', flat=True).distinct()
    return [(venue.pk, day) for day in dates]


@receiver(post_save, sender=Venue)
def handle_venue_saved(sender, instance, created, **kwargs):
    """Notify admins and drop cached dates that list this venue."""
    keys = [] if created else _venue_keys(instance)
    action = 'added' if created else 'updated'

    def _after_commit():
        calendar_projector.invalidate(keys)
        availability_notifications.venue_changed(instance.pk, instance.name, action)

    transaction.on_commit(_after_commit)


@receiver(pre_delete, sender=Venue)
def collect_venue_keys(sender, instance, **kwargs):
    # Window links are gone by post_delete.
    instance._calendar_keys = _venue_keys(instance)


@receiver(post_delete, sender=Venue)
def handle_venue_deleted(sender, instance, **kwargs):
    keys = getattr(instance, '_calendar_keys', [])
    venue_id = instance.pk
    name = instance.name

    def _after_commit():
        calendar_projector.invalidate(keys)
        availability_notifications.venue_changed(venue_id, name, 'deleted')

    transaction.on_commit(_after_commit)
