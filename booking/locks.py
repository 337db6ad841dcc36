# booking/locks.py
"""
Per-(venue, date) exclusive locks for the booking engine.

Every mutation that can change the Allowed/Rejected outcome for a key holds
that key's lock while it re-validates and commits. The lock has two halves:

* an in-process ``threading.Lock`` per key, acquired with a timeout, which
  serializes worker threads of one process;
* a ``SELECT ... FOR UPDATE`` on the key's ``ScheduleKey`` row inside the
  commit transaction, which serializes separate processes on databases that
  support row locks.

Keys are always acquired in sorted order so multi-key writers cannot deadlock.
Venue rows are locked after the keys, in the same order by every writer.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import logging
import threading
import weakref
from contextlib import contextmanager

from django.conf import settings
from django.db import connection, transaction, OperationalError

from .exceptions import LockTimeout
from .models import ScheduleKey, Venue

logger = logging.getLogger(__name__)


class ScheduleLockRegistry:
    """Registry of per-key locks keyed by ``(venue_id, date)``."""

    def __init__(self):
        self._guard = threading.Lock()
        # Entries disappear once no thread holds or waits on the lock.
        self._locks = weakref.WeakValueDictionary()

    def _lock_for(self, key):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def _timeout(self, timeout):
        if timeout is None:
            return getattr(settings, 'BOOKING_LOCK_TIMEOUT_SECONDS', 5)
        return timeout

    @contextmanager
    def hold(self, keys, timeout=None):
        """
        Hold the locks for ``keys`` and open a transaction for the commit.

        Args:
            keys: iterable of (venue_id, date) tuples
            timeout: seconds to wait for each in-process lock

        Raises:
            LockTimeout: if any key could not be acquired in time
        """
        ordered = sorted(set(keys))
        wait = self._timeout(timeout)
        acquired = []
        try:
            for key in ordered:
                lock = self._lock_for(key)
                if not lock.acquire(timeout=wait):
                    logger.warning(f"Timed out waiting {wait}s for schedule key {key}")
                    raise LockTimeout(key=f"{key[0]}@{key[1]}")
                acquired.append(lock)

            with transaction.atomic():
                self._lock_rows(ordered, wait)
                yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()

    def _lock_rows(self, keys, wait):
        """Lock the ScheduleKey rows for ``keys`` in the current transaction."""
        if not keys:
            return
        if connection.vendor == 'postgresql':
            with connection.cursor() as cursor:
                cursor.execute(f"SET LOCAL lock_timeout = '{int(wait * 1000)}ms'")

        ids = []
        for venue_id, date in keys:
            row, _ = ScheduleKey.objects.get_or_create(venue_id=venue_id, date=date)
            ids.append(row.pk)

        try:
            list(ScheduleKey.objects.select_for_update().filter(pk__in=ids).order_by('pk'))
        except OperationalError as e:
            logger.warning(f"Database lock on schedule keys {keys} failed: {e}")
            raise LockTimeout() from e

    def is_locked(self, key):
        """Check whether ``key`` is currently held in this process."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()


schedule_locks = ScheduleLockRegistry()


def lock_venue_rows(venue_ids):
    """
    Lock venue rows until the current transaction ends.

    Writers that reference a venue take this after their schedule keys, so
    a concurrent venue delete either waits for them or makes them see the
    venue as gone. Returns the ids that still exist.
    """
    queryset = Venue.objects.filter(pk__in=list(venue_ids))
    if connection.features.has_select_for_no_key_update:
        queryset = queryset.select_for_update(no_key=True)
    else:
        queryset = queryset.select_for_update()
    return set(queryset.order_by('pk').values_list('pk', flat=True))
