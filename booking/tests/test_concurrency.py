"""Test cases for concurrent writers on the same (venue, date) key."""
import threading
from datetime import date

from django.db import connection
from django.test import TransactionTestCase

from booking.availability import AvailabilityStore
from booking.exceptions import SchedulingError
from booking.models import Booking
from booking.tests.factories import UserFactory, VenueFactory
from booking.workflow import ApprovalWorkflow

DAY = date(2025, 11, 10)


class ConcurrentWritersTestCase(TransactionTestCase):
    """Writers started together from separate threads, each on its own connection."""

    def setUp(self):
        self.store = AvailabilityStore()
        self.workflow = ApprovalWorkflow()
        self.venue = VenueFactory()
        self.window = self.store.add_window([self.venue.pk], DAY, 540, 1020)

    def run_together(self, *calls):
        """Release all calls at once; returns 'ok' or the error code per call."""
        barrier = threading.Barrier(len(calls))
        results = [None] * len(calls)

        def worker(index, call):
            try:
                barrier.wait(timeout=5)
                call()
                results[index] = 'ok'
            except SchedulingError as e:
                results[index] = e.code
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)
        return results

    def test_overlapping_submissions(self):
        first, second = UserFactory(), UserFactory()
        results = self.run_together(
            lambda: self.workflow.submit(first, self.venue.pk, DAY, 600, 720),
            lambda: self.workflow.submit(second, self.venue.pk, DAY, 660, 780),
        )

        self.assertEqual(sorted(results), ['Overlap', 'ok'])
        self.assertEqual(Booking.objects.count(), 1)

    def test_same_slot_from_many_organisers(self):
        organisers = UserFactory.create_batch(4)
        results = self.run_together(*[
            (lambda organiser=organiser: self.workflow.submit(organiser, self.venue.pk, DAY, 600, 720))
            for organiser in organisers
        ])

        self.assertEqual(sorted(results), ['Overlap', 'Overlap', 'Overlap', 'ok'])
        self.assertEqual(Booking.objects.filter(status=Booking.STATUS_PENDING).count(), 1)

    def test_approval_against_window_removal(self):
        booking = self.workflow.submit(UserFactory(), self.venue.pk, DAY, 600, 720)
        approval, removal = self.run_together(
            lambda: self.workflow.decide(booking.pk, 'approved'),
            lambda: self.store.delete_window(self.window.pk),
        )

        self.assertEqual(removal, 'ok')
        booking.refresh_from_db()
        # Either order is legal; the booking state must match the winner.
        if approval == 'ok':
            self.assertEqual(booking.status, Booking.STATUS_APPROVED)
        else:
            self.assertEqual(approval, 'StaleRequest')
            self.assertEqual(booking.status, Booking.STATUS_PENDING)
