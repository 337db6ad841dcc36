# booking/catalog.py
"""
Venue catalogue for the Venue Booking.

Plain CRUD over venue records; no scheduling logic beyond refusing to
delete a venue that pending or approved bookings still reference.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import logging

from django.db import transaction
from django.db.models import ProtectedError

from .exceptions import VenueInUse, VenueNotFound
from .locks import schedule_locks
from .models import Booking, ScheduleKey, Venue

logger = logging.getLogger(__name__)


class VenueCatalog:
    """Owns venue records."""

    def __init__(self, locks=None):
        self.locks = locks or schedule_locks

    def get(self, venue_id):
        try:
            return Venue.objects.prefetch_related('tools').get(pk=venue_id)
        except (Venue.DoesNotExist, ValueError, TypeError):
            raise VenueNotFound(f"Venue {venue_id} does not exist.")

    def list(self, filters=None):
        """
        List venues.

        Supported filters: ``search`` (name), ``location``, ``min_capacity``,
        ``tool`` (tool id) and ``is_active``.
        """
        filters = filters or {}
        queryset = Venue.objects.prefetch_related('tools')

        if filters.get('search'):
            queryset = queryset.filter(name__icontains=filters['search'])
        if filters.get('location'):
            queryset = queryset.filter(location__icontains=filters['location'])
        if filters.get('min_capacity') is not None:
            queryset = queryset.filter(capacity__gte=filters['min_capacity'])
        if filters.get('tool'):
            queryset = queryset.filter(tools__pk=filters['tool']).distinct()
        if filters.get('is_active') is not None:
            queryset = queryset.filter(is_active=filters['is_active'])

        return queryset.order_by('name')

    @transaction.atomic
    def create(self, tools=None, **fields):
        venue = Venue(**fields)
        venue.full_clean()
        venue.save()
        if tools:
            venue.tools.set(tools)
        logger.info(f"Venue {venue.pk} '{venue.name}' created")
        return venue

    @transaction.atomic
    def update(self, venue_id, tools=None, **fields):
        venue = self.get(venue_id)
        for name, value in fields.items():
            setattr(venue, name, value)
        venue.full_clean()
        venue.save()
        if tools is not None:
            venue.tools.set(tools)
        logger.info(f"Venue {venue.pk} '{venue.name}' updated")
        return venue

    def delete(self, venue_id):
        """
        Delete a venue and its declined bookings.

        Holds every schedule key of the venue, then the venue row, in the
        same order as booking and window writers.

        Raises:
            VenueInUse: if a pending or approved booking references the venue
        """
        keys = ScheduleKey.objects.filter(venue_id=venue_id).values_list('venue_id', 'date')
        try:
            with self.locks.hold(list(keys)):
                venue = Venue.objects.select_for_update().get(pk=venue_id)
                active = venue.active_bookings().count()
                if active:
                    raise VenueInUse(
                        f"Venue {venue_id} has {active} pending or approved booking(s).",
                        active_bookings=active,
                    )
                venue.bookings.filter(status=Booking.STATUS_DECLINED).delete()
                venue.delete()
        except Venue.DoesNotExist:
            raise VenueNotFound(f"Venue {venue_id} does not exist.")
        except ProtectedError:
            # A booking was committed between the check and the delete.
            raise VenueInUse(f"Venue {venue_id} gained a booking while being deleted.")
        logger.info(f"Venue {venue_id} deleted")


venue_catalog = VenueCatalog()
