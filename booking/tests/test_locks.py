"""Test cases for per-(venue, date) schedule locks."""
import gc
import threading
from datetime import date

from django.db import transaction
from django.test import TestCase

from booking.exceptions import LockTimeout
from booking.locks import ScheduleLockRegistry
from booking.models import ScheduleKey
from booking.tests.factories import VenueFactory

DAY = date(2025, 11, 10)


class TestScheduleLocks(TestCase):

    def setUp(self):
        self.locks = ScheduleLockRegistry()
        self.venue1 = VenueFactory()
        self.venue2 = VenueFactory()

    def test_hold_yields_sorted_unique_keys(self):
        keys = [(self.venue2.pk, DAY), (self.venue1.pk, DAY), (self.venue2.pk, DAY)]
        with self.locks.hold(keys) as ordered:
            self.assertEqual(ordered, sorted({(self.venue1.pk, DAY), (self.venue2.pk, DAY)}))
            self.assertTrue(self.locks.is_locked((self.venue1.pk, DAY)))
            self.assertTrue(transaction.get_connection().in_atomic_block)

        self.assertFalse(self.locks.is_locked((self.venue1.pk, DAY)))
        self.assertFalse(self.locks.is_locked((self.venue2.pk, DAY)))

    def test_schedule_key_rows_created_once(self):
        with self.locks.hold([(self.venue1.pk, DAY)]):
            pass
        with self.locks.hold([(self.venue1.pk, DAY)]):
            pass
        self.assertEqual(ScheduleKey.objects.filter(venue=self.venue1, date=DAY).count(), 1)

    def test_timeout_when_key_is_held(self):
        key = (self.venue1.pk, DAY)
        held = self.locks._lock_for(key)
        held.acquire()
        try:
            with self.assertRaises(LockTimeout) as ctx:
                with self.locks.hold([(self.venue2.pk, DAY), key], timeout=0.05):
                    self.fail('Lock should not have been acquired')
            self.assertEqual(ctx.exception.to_dict()['key'], f"{self.venue1.pk}@{DAY}")
        finally:
            held.release()

        # Keys acquired before the timeout are released again.
        self.assertFalse(self.locks.is_locked((self.venue2.pk, DAY)))

    def test_locks_released_on_error(self):
        key = (self.venue1.pk, DAY)
        with self.assertRaises(ValueError):
            with self.locks.hold([key]):
                raise ValueError('boom')
        self.assertFalse(self.locks.is_locked(key))

    def test_waiter_proceeds_after_release(self):
        """A second thread blocks on the in-process lock until the holder releases it."""
        key = (self.venue1.pk, DAY)
        lock = self.locks._lock_for(key)
        lock.acquire()
        acquired = threading.Event()

        def waiter():
            if lock.acquire(timeout=2):
                acquired.set()
                lock.release()

        thread = threading.Thread(target=waiter)
        thread.start()
        self.assertFalse(acquired.wait(0.05))
        lock.release()
        thread.join(2)
        self.assertTrue(acquired.is_set())

    def test_same_lock_object_per_key(self):
        key = (self.venue1.pk, DAY)
        self.assertIs(self.locks._lock_for(key), self.locks._lock_for(key))
        self.assertIsNot(self.locks._lock_for(key), self.locks._lock_for((self.venue2.pk, DAY)))

    def test_idle_locks_are_evicted(self):
        key = (self.venue1.pk, DAY)
        with self.locks.hold([key]):
            self.assertIn(key, self.locks._locks)
        gc.collect()
        self.assertNotIn(key, self.locks._locks)

        held = self.locks._lock_for(key)
        self.assertIs(self.locks._lock_for(key), held)
