"""Test cases for notifications created from engine events."""
from datetime import date

from django.test import TestCase

from booking.availability import AvailabilityStore
from booking.catalog import VenueCatalog
from booking.exceptions import NoAvailabilityWindow
from booking.models import Notification
from booking.notifications import NotificationService
from booking.tests.factories import (
    AdminProfileFactory, NotificationFactory, UserFactory, VenueFactory
)
from booking.workflow import ApprovalWorkflow

DAY = date(2025, 11, 10)


class TestNotificationService(TestCase):

    def setUp(self):
        self.service = NotificationService()
        self.user = UserFactory()

    def test_get_admins(self):
        role_admin = AdminProfileFactory().user
        staff = UserFactory(is_staff=True)
        UserFactory(is_staff=True, is_active=False)
        self.assertEqual(set(self.service.get_admins()), {role_admin, staff})

    def test_get_user_notifications(self):
        NotificationFactory.create_batch(3, user=self.user)
        read = NotificationFactory(user=self.user, is_read=True)
        NotificationFactory()

        self.assertEqual(len(self.service.get_user_notifications(self.user)), 4)
        unread = self.service.get_user_notifications(self.user, unread_only=True)
        self.assertEqual(len(unread), 3)
        self.assertNotIn(read, unread)

    def test_mark_notifications_as_read(self):
        first, second, third = NotificationFactory.create_batch(3, user=self.user)
        self.assertEqual(self.service.mark_notifications_as_read(self.user, [first.pk]), 1)
        self.assertEqual(self.service.mark_notifications_as_read(self.user), 2)
        self.assertFalse(Notification.objects.filter(user=self.user, is_read=False).exists())


class TestEventNotifications(TestCase):
    """Committed engine events land in the admin and organiser feeds."""

    def setUp(self):
        self.admin = AdminProfileFactory().user
        self.organiser = UserFactory(first_name='Thandi', last_name='Mokoena')
        self.venue = VenueFactory(name='Great Hall')
        self.store = AvailabilityStore()
        self.workflow = ApprovalWorkflow()
        with self.captureOnCommitCallbacks(execute=True):
            self.store.add_window([self.venue.pk], DAY, 540, 1020)

    def test_window_change_notifies_admins(self):
        notification = Notification.objects.get(user=self.admin, notification_type='window_changed')
        self.assertEqual(notification.metadata['action'], 'created')
        self.assertEqual(notification.metadata['venue_ids'], [self.venue.pk])

    def test_submission_notifies_admins(self):
        with self.captureOnCommitCallbacks(execute=True):
            booking = self.workflow.submit(self.organiser, self.venue.pk, DAY, 600, 720)

        notification = Notification.objects.get(notification_type='booking_submitted')
        self.assertEqual(notification.user, self.admin)
        self.assertEqual(notification.booking, booking)
        self.assertIn('Thandi Mokoena', notification.message)
        self.assertIn('10:00', notification.message)

    def test_decisions_notify_organiser(self):
        with self.captureOnCommitCallbacks(execute=True):
            approved = self.workflow.submit(self.organiser, self.venue.pk, DAY, 600, 660)
            declined = self.workflow.submit(self.organiser, self.venue.pk, DAY, 700, 760)
        with self.captureOnCommitCallbacks(execute=True):
            self.workflow.decide(approved.pk, 'approved', decided_by=self.admin)
            self.workflow.decide(declined.pk, 'declined', note='venue closed for maintenance',
                                 decided_by=self.admin)

        feed = Notification.objects.filter(user=self.organiser)
        self.assertEqual(feed.get(notification_type='booking_approved').booking, approved)
        declined_note = feed.get(notification_type='booking_declined')
        self.assertEqual(declined_note.priority, 'high')
        self.assertIn('venue closed for maintenance', declined_note.message)

    def test_rejected_submission_notifies_nobody(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(NoAvailabilityWindow):
                self.workflow.submit(self.organiser, self.venue.pk, DAY, 480, 600)
        self.assertEqual(callbacks, [])
        self.assertFalse(Notification.objects.filter(notification_type='booking_submitted').exists())

    def test_venue_changes_notify_admins(self):
        catalog = VenueCatalog()
        with self.captureOnCommitCallbacks(execute=True):
            venue = catalog.create(name='Auditorium', location='Emalahleni Campus', capacity=200)
        with self.captureOnCommitCallbacks(execute=True):
            catalog.update(venue.pk, capacity=220)
        with self.captureOnCommitCallbacks(execute=True):
            catalog.delete(venue.pk)

        actions = list(
            Notification.objects.filter(user=self.admin, notification_type='venue_changed')
            .order_by('pk').values_list('metadata__action', flat=True)
        )
        self.assertEqual(actions, ['added', 'updated', 'deleted'])

    def test_failing_receiver_does_not_stop_others(self):
        from booking import events

        def broken(sender, **kwargs):
            raise RuntimeError('receiver down')

        events.booking_submitted.connect(broken)
        try:
            with self.assertLogs('booking.events', level='ERROR'):
                with self.captureOnCommitCallbacks(execute=True):
                    self.workflow.submit(self.organiser, self.venue.pk, DAY, 600, 720)
        finally:
            events.booking_submitted.disconnect(broken)

        self.assertTrue(Notification.objects.filter(notification_type='booking_submitted').exists())
