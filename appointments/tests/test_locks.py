# appointments/tests/test_locks.py
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory, TestCase
from django.utils import timezone

from appointments.exceptions import LockHeld
from appointments.locks import (
    acquire_lock, booking_lock, cleanup_expired_locks, extend_lock, get_active_locks, get_client_identifier,
    is_lock_valid, release_lock, with_booking_lock,
)
from appointments.models import AppointmentLock
from core.models import SystemSetting
from .base import BookingFixtures


class LockGuardTests(BookingFixtures, TestCase):
    """Mutual exclusion on (specialist, date, time)"""

    def setUp(self):
        super().setUp()
        self.now = timezone.now()

    def acquire(self, client_id='client-a', time='10:00', now=None, specialist=None):
        return acquire_lock((specialist or self.specialist).id, self.monday, time, client_id, now=now or self.now)

    def test_acquire_creates_lock_with_ttl(self):
        lock = self.acquire()

        self.assertTrue(lock.id.startswith('lock_'))
        self.assertEqual(lock.locked_by, 'client-a')
        self.assertEqual(lock.expires_at, self.now + timedelta(minutes=5))
        self.assertTrue(is_lock_valid(lock.id, now=self.now))

    def test_second_acquire_for_same_slot_fails(self):
        first = self.acquire('client-a')

        with self.assertRaises(LockHeld) as cm:
            self.acquire('client-b', now=self.now + timedelta(seconds=30))

        self.assertEqual(cm.exception.existing_lock, first)
        self.assertEqual(AppointmentLock.objects.count(), 1)

    def test_different_slots_do_not_interfere(self):
        self.acquire(time='10:00')
        self.acquire(time='10:45')
        self.acquire(time='10:00', specialist=self.other_specialist)
        self.assertEqual(AppointmentLock.objects.count(), 3)

    def test_expired_lock_is_swept_on_acquire(self):
        stale = self.acquire('client-a')

        later = self.now + timedelta(minutes=5, seconds=1)
        fresh = self.acquire('client-b', now=later)

        self.assertFalse(AppointmentLock.objects.filter(pk=stale.id).exists())
        self.assertEqual(fresh.locked_by, 'client-b')

    def test_ttl_from_settings(self):
        SystemSetting.set_setting('booking_lock_minutes', '2')
        lock = self.acquire()
        self.assertEqual(lock.expires_at, self.now + timedelta(minutes=2))

    def test_release_is_idempotent(self):
        lock = self.acquire()
        self.assertTrue(release_lock(lock.id))
        self.assertFalse(release_lock(lock.id))
        self.assertFalse(release_lock('lock_does_not_exist'))
        self.acquire('client-b')

    def test_validity_and_extension(self):
        lock = self.acquire()

        self.assertFalse(is_lock_valid(lock.id, now=self.now + timedelta(minutes=6)))
        extended = extend_lock(lock.id, minutes=10, now=self.now + timedelta(minutes=4))
        self.assertEqual(extended.expires_at, self.now + timedelta(minutes=14))
        self.assertIsNone(extend_lock(lock.id, now=self.now + timedelta(minutes=15)))

    def test_cleanup_expired_locks(self):
        self.acquire(time='10:00')
        self.acquire(time='11:00', now=self.now + timedelta(minutes=3))

        removed = cleanup_expired_locks(now=self.now + timedelta(minutes=6))

        self.assertEqual(removed, 1)
        self.assertEqual(get_active_locks(now=self.now + timedelta(minutes=6)).count(), 1)

    def test_active_locks_by_specialist(self):
        self.acquire()
        self.acquire(specialist=self.other_specialist)
        self.assertEqual(get_active_locks(self.specialist.id, now=self.now).count(), 1)


class ScopedLockTests(BookingFixtures, TestCase):
    """The lock is released on every exit path"""

    def test_context_manager_releases_on_error(self):
        with self.assertRaises(RuntimeError):
            with booking_lock(self.specialist.id, self.monday, '10:00', 'client-a'):
                self.assertEqual(AppointmentLock.objects.count(), 1)
                raise RuntimeError('boom')
        self.assertEqual(AppointmentLock.objects.count(), 0)

    def test_with_booking_lock_returns_result_and_releases(self):
        result = with_booking_lock(self.specialist.id, self.monday, '10:00', 'client-a', lambda: 'done')

        self.assertTrue(result.success)
        self.assertEqual(result.result, 'done')
        self.assertEqual(AppointmentLock.objects.count(), 0)

    def test_with_booking_lock_reports_held_lock(self):
        existing = acquire_lock(self.specialist.id, self.monday, '10:00', 'client-a')
        calls = []

        result = with_booking_lock(self.specialist.id, self.monday, '10:00', 'client-b', lambda: calls.append(1))

        self.assertFalse(result.success)
        self.assertEqual(result.existing_lock, existing)
        self.assertTrue(result.error)
        self.assertEqual(calls, [])
        # The holder's lock is untouched
        self.assertTrue(is_lock_valid(existing.id))

    def test_with_booking_lock_propagates_operation_errors(self):
        def operation():
            raise ValueError('invalid')

        with self.assertRaises(ValueError):
            with_booking_lock(self.specialist.id, self.monday, '10:00', 'client-a', operation)
        self.assertEqual(AppointmentLock.objects.count(), 0)


class ClientIdentifierTests(TestCase):

    def setUp(self):
        self.factory = RequestFactory()

    def test_anonymous_client(self):
        request = self.factory.get('/', HTTP_USER_AGENT='Mozilla/5.0', REMOTE_ADDR='10.0.0.5')
        request.user = AnonymousUser()
        identifier = get_client_identifier(request)
        self.assertTrue(identifier.startswith('10.0.0.5:'))
        self.assertEqual(identifier, get_client_identifier(request))

    def test_forwarded_for(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='200.1.1.1, 10.0.0.1')
        request.user = AnonymousUser()
        self.assertTrue(get_client_identifier(request).startswith('200.1.1.1:'))

    def test_authenticated_user(self):
        user = get_user_model().objects.create_user(username='recepcion', password='secret')
        request = self.factory.get('/', REMOTE_ADDR='10.0.0.5')
        request.user = user
        self.assertEqual(get_client_identifier(request), f'user:{user.pk}@10.0.0.5')
