"""Test cases for booking API endpoints."""
import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from booking.models import AvailabilityWindow, Booking, Notification, Venue
from booking.tests.factories import (
    AdminProfileFactory, AvailabilityWindowFactory, BookingFactory, NotificationFactory,
    ToolFactory, UserProfileFactory, VenueFactory
)


@pytest.fixture
def organiser_client():
    client = APIClient()
    client.user = UserProfileFactory().user
    client.force_authenticate(user=client.user)
    return client


@pytest.fixture
def admin_client():
    client = APIClient()
    client.user = AdminProfileFactory().user
    client.force_authenticate(user=client.user)
    return client


@pytest.fixture
def venue():
    venue = VenueFactory(name='Venue-1')
    AvailabilityWindowFactory(venues=[venue], date='2025-11-10', start_minute=540, end_minute=1020)
    return venue


@pytest.mark.django_db
class TestVenueAPI:
    """Test venue and tool endpoints."""

    def test_requires_authentication(self):
        response = APIClient().get(reverse('api:venue-list'))
        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    def test_list_hides_inactive_from_organisers(self, organiser_client, admin_client):
        VenueFactory(name='Open Hall')
        VenueFactory(name='Closed Hall', is_active=False)

        response = organiser_client.get(reverse('api:venue-list'))
        assert [v['name'] for v in response.data['results']] == ['Open Hall']

        response = admin_client.get(reverse('api:venue-list'))
        assert len(response.data['results']) == 2

    def test_list_filters(self, organiser_client):
        VenueFactory(name='Great Hall', capacity=150)
        VenueFactory(name='Library Center', capacity=70)

        response = organiser_client.get(reverse('api:venue-list'), {'minCapacity': 100})
        assert [v['name'] for v in response.data['results']] == ['Great Hall']

        response = organiser_client.get(reverse('api:venue-list'), {'minCapacity': 'lots'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_admin_creates_venue_with_tools(self, admin_client):
        chairs = ToolFactory(name='Chairs')
        data = {
            'name': 'Ruth First Hall',
            'location': 'Soshanguve Campus, Building 18',
            'capacity': 110,
            'price': '5200.00',
            'toolIds': [chairs.pk],
        }
        response = admin_client.post(reverse('api:venue-list'), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['tool_ids'] == [chairs.pk]
        assert response.data['tools'][0]['name'] == 'Chairs'

    def test_invalid_capacity(self, admin_client):
        data = {'name': 'Tiny', 'location': 'Nowhere', 'capacity': 0}
        response = admin_client.post(reverse('api:venue-list'), data, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_organiser_cannot_create_venue(self, organiser_client):
        data = {'name': 'Sneaky', 'location': 'Nowhere', 'capacity': 10}
        response = organiser_client.post(reverse('api:venue-list'), data, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_delete_venue_in_use(self, admin_client):
        venue = VenueFactory()
        BookingFactory(venue=venue)

        response = admin_client.delete(reverse('api:venue-detail', args=[venue.pk]))
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['reason'] == 'VenueInUse'

        Booking.objects.all().delete()
        response = admin_client.delete(reverse('api:venue-detail', args=[venue.pk]))
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Venue.objects.filter(pk=venue.pk).exists()

    def test_tool_crud(self, admin_client, organiser_client):
        response = admin_client.post(reverse('api:tool-list'), {'name': 'Projectors'}, format='json')
        assert response.status_code == status.HTTP_201_CREATED

        response = organiser_client.get(reverse('api:tool-list'))
        assert [t['name'] for t in response.data['results']] == ['Projectors']

        response = organiser_client.delete(reverse('api:tool-detail', args=[response.data['results'][0]['id']]))
        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestAvailabilityAPI:
    """Test availability window endpoints."""

    def test_create_with_hhmm_times(self, admin_client):
        venue = VenueFactory()
        data = {'venueIds': [venue.pk], 'date': '2025-11-10', 'start': '09:00', 'end': '17:00'}
        response = admin_client.post(reverse('api:availability-list'), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['start'] == 540
        assert response.data['end_time'] == '17:00'
        assert response.data['venue_ids'] == [venue.pk]
        assert response.data['created_by'] == admin_client.user.pk

    def test_bulk_create(self, admin_client):
        venue1, venue2 = VenueFactory(), VenueFactory()
        data = {'entries': [
            {'venue_ids': [venue1.pk, venue2.pk], 'date': '2025-11-10', 'start': '09:00', 'end': '17:00'},
            {'venue_ids': [venue2.pk], 'date': '2025-11-11', 'start': 600, 'end': 840},
        ]}
        response = admin_client.post(reverse('api:availability-list'), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert len(response.data) == 2
        assert AvailabilityWindow.objects.count() == 2

    def test_inverted_interval(self, admin_client):
        venue = VenueFactory()
        data = {'venue_ids': [venue.pk], 'date': '2025-11-10', 'start': '17:00', 'end': '09:00'}
        response = admin_client.post(reverse('api:availability-list'), data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['reason'] == 'InvalidInterval'

    def test_unknown_venue(self, admin_client):
        data = {'venue_ids': [99999], 'date': '2025-11-10', 'start': 540, 'end': 600}
        response = admin_client.post(reverse('api:availability-list'), data, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['reason'] == 'VenueNotFound'

    def test_malformed_time(self, admin_client):
        venue = VenueFactory()
        data = {'venue_ids': [venue.pk], 'date': '2025-11-10', 'start': '25:00', 'end': '26:00'}
        response = admin_client.post(reverse('api:availability-list'), data, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'start' in response.data

    def test_list_by_venue_and_range(self, organiser_client, venue):
        AvailabilityWindowFactory(date='2025-12-01')
        url = reverse('api:availability-list')

        response = organiser_client.get(url, {'venueId': venue.pk})
        assert len(response.data['results']) == 1

        response = organiser_client.get(url, {'from': '2025-11-01', 'to': '2025-11-30'})
        assert [w['date'] for w in response.data['results']] == ['2025-11-10']

    def test_update_and_delete(self, admin_client, venue):
        window = AvailabilityWindow.objects.get()
        url = reverse('api:availability-detail', args=[window.pk])

        response = admin_client.patch(url, {'end': '12:00'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert (response.data['start'], response.data['end']) == (540, 720)

        response = admin_client.delete(url)
        assert response.status_code == status.HTTP_204_NO_CONTENT

        response = admin_client.delete(url)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['reason'] == 'WindowNotFound'

    def test_organiser_cannot_change_windows(self, organiser_client, venue):
        window = AvailabilityWindow.objects.get()
        response = organiser_client.delete(reverse('api:availability-detail', args=[window.pk]))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_check(self, organiser_client, venue):
        url = reverse('api:availability-check')
        response = organiser_client.get(url, {'venueId': venue.pk, 'date': '2025-11-10',
                                              'start': '10:00', 'end': '12:00'})
        assert response.status_code == status.HTTP_200_OK
        assert response.data['allowed'] is True

        response = organiser_client.get(url, {'venueId': venue.pk, 'date': '2025-11-10',
                                              'start': '08:00', 'end': '09:30'})
        assert response.data['allowed'] is False
        assert response.data['reason'] == 'NoAvailabilityWindow'
        assert response.data['alternatives'][0]['start_time'] == '09:00'
        assert not Booking.objects.exists()


@pytest.mark.django_db
class TestBookingAPI:
    """Test booking submission, decisions and listing."""

    def submit(self, client, venue, start, end, **extra):
        data = {'venueId': venue.pk, 'date': '2025-11-10', 'start': start, 'end': end}
        data.update(extra)
        return client.post(reverse('api:booking-list'), data, format='json')

    def test_submit(self, organiser_client, venue):
        response = self.submit(organiser_client, venue, '10:00', '12:00', title='Career fair')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == 'pending'
        assert response.data['start'] == 600
        assert response.data['start_time'] == '10:00'
        assert response.data['venue_id'] == venue.pk
        assert response.data['organiser']['id'] == organiser_client.user.pk

    def test_overlap_returns_alternatives(self, organiser_client, admin_client, venue):
        self.submit(organiser_client, venue, '10:00', '12:00')
        response = self.submit(admin_client, venue, '11:00', '13:00')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['reason'] == 'Overlap'
        assert response.data['detail']
        starts = [slot['start_time'] for slot in response.data['alternatives']]
        assert starts == ['12:00']

    def test_outside_window(self, organiser_client, venue):
        response = self.submit(organiser_client, venue, '08:00', '09:30')
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['reason'] == 'NoAvailabilityWindow'

    def test_invalid_interval(self, organiser_client, venue):
        response = self.submit(organiser_client, venue, 720, 600)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['reason'] == 'InvalidInterval'

    def test_missing_fields(self, organiser_client):
        response = organiser_client.post(reverse('api:booking-list'), {'start': 600}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'venue_id' in response.data

    def test_decide_approve(self, organiser_client, admin_client, venue):
        booking_id = self.submit(organiser_client, venue, 600, 720).data['id']
        url = reverse('api:booking-detail', args=[booking_id])

        response = admin_client.patch(url, {'outcome': 'Approved'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'approved'
        assert response.data['decided_by'] == admin_client.user.pk

        response = admin_client.patch(url, {'outcome': 'declined', 'note': 'Too late'}, format='json')
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['reason'] == 'InvalidTransition'

    def test_decline_without_note(self, organiser_client, admin_client, venue):
        booking_id = self.submit(organiser_client, venue, 600, 720).data['id']
        url = reverse('api:booking-detail', args=[booking_id])

        response = admin_client.patch(url, {'outcome': 'declined'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['reason'] == 'MissingReason'

        response = admin_client.patch(url, {'outcome': 'declined', 'note': 'venue closed for maintenance'},
                                      format='json')
        assert response.data['status'] == 'declined'
        assert response.data['decision_note'] == 'venue closed for maintenance'

    def test_stale_approval(self, admin_client, venue):
        first = BookingFactory(venue=venue, date='2025-11-10', start_minute=600, end_minute=720)
        second = BookingFactory(venue=venue, date='2025-11-10', start_minute=660, end_minute=780)
        admin_client.patch(reverse('api:booking-detail', args=[first.pk]), {'outcome': 'approved'}, format='json')

        response = admin_client.patch(reverse('api:booking-detail', args=[second.pk]),
                                      {'outcome': 'approved'}, format='json')
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['reason'] == 'StaleRequest'
        assert response.data['cause'] == 'Overlap'

    def test_unknown_outcome(self, admin_client, venue):
        booking = BookingFactory(venue=venue)
        response = admin_client.patch(reverse('api:booking-detail', args=[booking.pk]),
                                      {'outcome': 'maybe'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'outcome' in response.data

    def test_unknown_booking(self, admin_client):
        response = admin_client.patch(reverse('api:booking-detail', args=[99999]),
                                      {'outcome': 'approved'}, format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['reason'] == 'BookingNotFound'

    def test_organiser_cannot_decide(self, organiser_client, venue):
        booking_id = self.submit(organiser_client, venue, 600, 720).data['id']
        response = organiser_client.patch(reverse('api:booking-detail', args=[booking_id]),
                                          {'outcome': 'approved'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_organiser_sees_own_bookings(self, organiser_client, admin_client, venue):
        BookingFactory.create_batch(2, organiser=organiser_client.user, venue=venue)
        BookingFactory(venue=venue)

        response = organiser_client.get(reverse('api:booking-list'))
        assert len(response.data['results']) == 2

        response = admin_client.get(reverse('api:booking-list'))
        assert len(response.data['results']) == 3

    def test_approval_queue_filters(self, admin_client, venue):
        BookingFactory(venue=venue, status=Booking.STATUS_PENDING)
        BookingFactory(venue=venue, status=Booking.STATUS_APPROVED, start_minute=800, end_minute=900)
        BookingFactory(status=Booking.STATUS_PENDING)

        response = admin_client.get(reverse('api:booking-list'), {'status': 'pending', 'venueId': venue.pk})
        assert len(response.data['results']) == 1

        response = admin_client.get(reverse('api:booking-list'), {'date': '2025-11-10'})
        assert len(response.data['results']) == 3


@pytest.mark.django_db
class TestCalendarAPI:

    def test_calendar_markers(self, organiser_client, venue):
        other = VenueFactory(name='Venue-2')
        AvailabilityWindowFactory(venues=[other], date='2025-11-10', start_minute=600, end_minute=900)
        BookingFactory(venue=venue, date='2025-11-10')

        response = organiser_client.get(reverse('api:calendar'), {'from': '2025-11-01', 'to': '2025-11-30'})
        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            '2025-11-10': {
                'approved': False,
                'available': sorted([venue.pk, other.pk]),
                'pending': True,
            }
        }

    def test_calendar_for_one_venue(self, organiser_client, venue):
        VenueFactory()
        response = organiser_client.get(reverse('api:calendar'),
                                        {'from': '2025-11-10', 'to': '2025-11-10', 'venueId': venue.pk})
        assert response.data['2025-11-10']['available'] == [venue.pk]

    def test_calendar_range_validation(self, organiser_client):
        url = reverse('api:calendar')
        assert organiser_client.get(url, {'from': '2025-11-10'}).status_code == status.HTTP_400_BAD_REQUEST
        assert organiser_client.get(url, {'from': '2025-11-10', 'to': '2025-11-01'}).status_code == 400
        assert organiser_client.get(url, {'from': '2025-01-01', 'to': '2026-12-31'}).status_code == 400


@pytest.mark.django_db
class TestNotificationAPI:

    def test_list_and_mark_read(self, organiser_client):
        notifications = NotificationFactory.create_batch(2, user=organiser_client.user)
        NotificationFactory()

        response = organiser_client.get(reverse('api:notification-list'))
        assert len(response.data['results']) == 2

        response = organiser_client.get(reverse('api:notification-unread-count'))
        assert response.data['unread_count'] == 2

        response = organiser_client.post(reverse('api:notification-mark-read', args=[notifications[0].pk]))
        assert response.status_code == status.HTTP_200_OK
        assert Notification.objects.get(pk=notifications[0].pk).is_read

        response = organiser_client.post(reverse('api:notification-mark-all-read'))
        assert response.data['marked_read'] == 1
