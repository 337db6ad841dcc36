# booking/notifications.py
"""
Notification service for the Venue Booking.

Creates in-app notification rows from engine events. Delivering them to
devices (push, e-mail) is done by an external dispatcher reading these rows.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import logging
from typing import Any, Dict, List, Optional

from django.contrib.auth.models import User
from django.db.models import Q
from django.utils import timezone

from .models import Booking, Notification, UserProfile, Venue

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for creating and reading notifications."""

    def create_notification(
        self,
        user,
        notification_type: str,
        title: str,
        message: str,
        priority: str = 'medium',
        booking: Optional[Booking] = None,
        venue: Optional[Venue] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Notification:
        notification = Notification.objects.create(
            user=user,
            notification_type=notification_type,
            title=title,
            message=message,
            priority=priority,
            booking=booking,
            venue=venue,
            metadata=metadata or {},
        )
        logger.debug(f"Notification {notification.pk} ({notification_type}) created for {user.username}")
        return notification

    def get_admins(self):
        """Users who receive the administrator feed."""
        return User.objects.filter(
            Q(is_staff=True) | Q(userprofile__role=UserProfile.ROLE_ADMIN),
            is_active=True,
        ).distinct()

    def notify_admins(self, notification_type, title, message, **kwargs) -> List[Notification]:
        return [
            self.create_notification(admin, notification_type, title, message, **kwargs)
            for admin in self.get_admins()
        ]

    def get_user_notifications(self, user, limit: int = 20, unread_only: bool = False) -> List[Notification]:
        """Get notifications for a user."""
        queryset = Notification.objects.filter(user=user).select_related('booking', 'venue')
        if unread_only:
            queryset = queryset.filter(is_read=False)
        return list(queryset[:limit])

    def mark_notifications_as_read(self, user, notification_ids: Optional[List[int]] = None) -> int:
        """Mark notifications as read; all unread ones when no ids are given."""
        queryset = Notification.objects.filter(user=user, is_read=False)
        if notification_ids is not None:
            queryset = queryset.filter(id__in=notification_ids)
        return queryset.update(is_read=True, read_at=timezone.now())


class BookingNotifications:
    """Helper class for booking-specific notifications."""

    def __init__(self, service=None):
        self.service = service or notification_service

    def booking_submitted(self, booking: Booking):
        """Notify administrators that a booking awaits a decision."""
        organiser = booking.organiser.get_full_name() or booking.organiser.username
        self.service.notify_admins(
            'booking_submitted',
            title=f'Approval Required: {booking.venue.name}',
            message=(f'{organiser} requested {booking.venue.name} on {booking.date:%B %d, %Y} '
                     f'from {booking.start_time} to {booking.end_time}.'),
            booking=booking,
            venue=booking.venue,
            metadata={'booking_id': booking.pk, 'organiser_id': booking.organiser_id},
        )

    def booking_approved(self, booking: Booking):
        self.service.create_notification(
            user=booking.organiser,
            notification_type='booking_approved',
            title=f'Booking Approved: {booking.venue.name}',
            message=(f'Your booking of {booking.venue.name} on {booking.date:%B %d, %Y} '
                     f'from {booking.start_time} to {booking.end_time} has been approved.'),
            booking=booking,
            venue=booking.venue,
            metadata={'booking_id': booking.pk},
        )

    def booking_declined(self, booking: Booking):
        self.service.create_notification(
            user=booking.organiser,
            notification_type='booking_declined',
            title=f'Booking Declined: {booking.venue.name}',
            message=(f'Your booking of {booking.venue.name} on {booking.date:%B %d, %Y} '
                     f'was declined: {booking.decision_note}'),
            priority='high',
            booking=booking,
            venue=booking.venue,
            metadata={'booking_id': booking.pk, 'reason': booking.decision_note},
        )


class AvailabilityNotifications:
    """Administrator feed entries for availability and venue changes."""

    def __init__(self, service=None):
        self.service = service or notification_service

    def window_changed(self, window_id, action, keys):
        dates = sorted({day for _, day in keys})
        venue_ids = sorted({venue_id for venue_id, _ in keys})
        self.service.notify_admins(
            'window_changed',
            title=f'Availability {action.capitalize()}',
            message=(f'Availability window {window_id} {action} for '
                     f'{len(venue_ids)} venue(s) on {", ".join(d.isoformat() for d in dates)}.'),
            priority='low',
            metadata={'window_id': window_id, 'action': action, 'venue_ids': venue_ids},
        )

    def venue_changed(self, venue_id, name, action):
        self.service.notify_admins(
            'venue_changed',
            title=f'Venue {action.capitalize()}',
            message=f'Venue "{name}" was {action}.',
            priority='low',
            metadata={'venue_id': venue_id, 'action': action},
        )


notification_service = NotificationService()
booking_notifications = BookingNotifications(notification_service)
availability_notifications = AvailabilityNotifications(notification_service)
