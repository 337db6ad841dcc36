"""Test cases for the venue catalogue."""
from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from booking.availability import AvailabilityStore
from booking.catalog import VenueCatalog
from booking.exceptions import LockTimeout, VenueInUse, VenueNotFound
from booking.locks import schedule_locks
from booking.models import Booking, Venue
from booking.tests.factories import (
    AvailabilityWindowFactory, BookingFactory, ToolFactory, VenueFactory
)

DAY = date(2025, 11, 10)


@pytest.mark.django_db
class TestVenueCatalog:
    """Test venue CRUD through the catalogue."""

    def setup_method(self):
        self.catalog = VenueCatalog()

    def test_create_with_tools(self):
        projector = ToolFactory(name='Projectors')
        venue = self.catalog.create(
            name='Great Hall', location='Ga-Rankuwa Campus, Building 20',
            capacity=150, price=Decimal('5000'), tools=[projector]
        )
        assert venue.pk
        assert venue.tool_ids == [projector.pk]

    def test_create_validates(self):
        with pytest.raises(ValidationError):
            self.catalog.create(name='Broken', location='Nowhere', capacity=0)
        assert not Venue.objects.exists()

    def test_update(self):
        venue = VenueFactory(tools=[ToolFactory()])
        chairs = ToolFactory(name='Chairs')

        updated = self.catalog.update(venue.pk, capacity=250, tools=[chairs])
        assert updated.capacity == 250
        assert updated.tool_ids == [chairs.pk]

        self.catalog.update(venue.pk, name='Renamed')
        assert Venue.objects.get(pk=venue.pk).tool_ids == [chairs.pk]

    def test_get_unknown(self):
        with pytest.raises(VenueNotFound):
            self.catalog.get(99999)

    def test_list_filters(self):
        projector = ToolFactory(name='Projectors')
        VenueFactory(name='Great Hall', location='Ga-Rankuwa Campus', capacity=150, tools=[projector])
        VenueFactory(name='Library Center', location='Emalahleni Campus', capacity=70)
        VenueFactory(name='Old Hall', location='Emalahleni Campus', capacity=300, is_active=False)

        assert [v.name for v in self.catalog.list({'location': 'emalahleni'})] == ['Library Center', 'Old Hall']
        assert [v.name for v in self.catalog.list({'min_capacity': 100})] == ['Great Hall', 'Old Hall']
        assert [v.name for v in self.catalog.list({'tool': projector.pk})] == ['Great Hall']
        assert [v.name for v in self.catalog.list({'search': 'hall', 'is_active': True})] == ['Great Hall']
        assert self.catalog.list().count() == 3

    def test_delete_unused_venue(self):
        venue = VenueFactory()
        AvailabilityWindowFactory(venues=[venue])
        self.catalog.delete(venue.pk)
        assert not Venue.objects.filter(pk=venue.pk).exists()

    @pytest.mark.parametrize('status', [Booking.STATUS_PENDING, Booking.STATUS_APPROVED])
    def test_delete_refused_with_active_bookings(self, status):
        venue = VenueFactory()
        BookingFactory(venue=venue, status=status)
        with pytest.raises(VenueInUse) as exc_info:
            self.catalog.delete(venue.pk)
        assert exc_info.value.to_dict()['active_bookings'] == 1
        assert Venue.objects.filter(pk=venue.pk).exists()

    def test_delete_removes_declined_bookings(self):
        venue = VenueFactory()
        BookingFactory(venue=venue, status=Booking.STATUS_DECLINED, decision_note='Closed')
        self.catalog.delete(venue.pk)
        assert not Venue.objects.filter(pk=venue.pk).exists()
        assert not Booking.objects.exists()

    def test_delete_unknown(self):
        with pytest.raises(VenueNotFound):
            self.catalog.delete(99999)

    def test_delete_waits_for_schedule_keys(self, settings):
        """A writer holding one of the venue's keys keeps the venue alive."""
        settings.BOOKING_LOCK_TIMEOUT_SECONDS = 0.05
        venue = VenueFactory()
        AvailabilityStore().add_window([venue.pk], DAY, 540, 1020)

        held = schedule_locks._lock_for((venue.pk, DAY))
        held.acquire()
        try:
            with pytest.raises(LockTimeout):
                self.catalog.delete(venue.pk)
        finally:
            held.release()
        assert Venue.objects.filter(pk=venue.pk).exists()

        self.catalog.delete(venue.pk)
        assert not Venue.objects.filter(pk=venue.pk).exists()
