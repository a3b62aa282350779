# appointments/locks.py
"""
Booking concurrency guard.

A lock is a row in AppointmentLock keyed by (specialist, date, time).
The unique constraint on that key arbitrates concurrent acquires; the
appointment table's own constraint remains the final word on
double-bookings if this layer is bypassed.

    absent -> held -> absent      (released)
    held -> expired -> absent     (swept)
"""
import hashlib
import logging
from collections import namedtuple
from contextlib import contextmanager
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.models import get_client_ip

from .exceptions import LockHeld
from .models import AppointmentLock
from .timeutils import parse_date, to_time
from .utils import BookingConfig

logger = logging.getLogger(__name__)

LockResult = namedtuple('LockResult', ['success', 'result', 'error', 'existing_lock'])


def _now(now):
    return now or timezone.now()


def cleanup_expired_locks(now=None):
    """Delete every lock whose expiry has passed; returns how many were removed"""
    deleted, _ = AppointmentLock.objects.filter(expires_at__lte=_now(now)).delete()
    if deleted:
        logger.info(f"Swept {deleted} expired booking locks")
    return deleted


def acquire_lock(specialist_id, date, time, client_id, now=None, ttl_minutes=None):
    """
    Take the lock for one slot.

    Returns:
        AppointmentLock

    Raises:
        LockHeld: an unexpired lock already exists for the slot
    """
    now = _now(now)
    day = parse_date(date)
    at_time = to_time(time)
    ttl = ttl_minutes or BookingConfig.get_lock_minutes()

    # Lazy sweep so an expired holder never blocks the slot
    cleanup_expired_locks(now)

    try:
        with transaction.atomic():
            lock = AppointmentLock.objects.create(
                specialist_id=specialist_id,
                appointment_date=day,
                appointment_time=at_time,
                locked_by=str(client_id)[:128],
                locked_at=now,
                expires_at=now + timedelta(minutes=ttl),
            )
    except IntegrityError:
        existing = AppointmentLock.objects.filter(
            specialist_id=specialist_id, appointment_date=day, appointment_time=at_time
        ).first()
        logger.info(
            f"Lock held for specialist {specialist_id} {day} {at_time:%H:%M}"
            f" (requested by {client_id}, held by {existing.locked_by if existing else 'unknown'})"
        )
        raise LockHeld(existing_lock=existing)

    logger.debug(f"Acquired {lock.id} for specialist {specialist_id} {day} {at_time:%H:%M}")
    return lock


def release_lock(lock_id):
    """Delete a lock. Releasing an unknown or already released lock is a no-op."""
    deleted, _ = AppointmentLock.objects.filter(pk=lock_id).delete()
    if deleted:
        logger.debug(f"Released {lock_id}")
    return bool(deleted)


def is_lock_valid(lock_id, now=None):
    return AppointmentLock.objects.filter(pk=lock_id, expires_at__gt=_now(now)).exists()


def extend_lock(lock_id, minutes=None, now=None):
    """
    Push the expiry of a still-valid lock forward.

    Returns:
        the refreshed lock, or None if it expired or does not exist
    """
    now = _now(now)
    minutes = minutes or BookingConfig.get_lock_minutes()
    updated = AppointmentLock.objects.filter(pk=lock_id, expires_at__gt=now).update(
        expires_at=now + timedelta(minutes=minutes)
    )
    if not updated:
        return None
    return AppointmentLock.objects.get(pk=lock_id)


def get_active_locks(specialist_id=None, now=None):
    queryset = AppointmentLock.objects.filter(expires_at__gt=_now(now))
    if specialist_id is not None:
        queryset = queryset.filter(specialist_id=specialist_id)
    return queryset.order_by('appointment_date', 'appointment_time')


@contextmanager
def booking_lock(specialist_id, date, time, client_id, now=None):
    """Hold the slot lock for the duration of the block; always released on exit"""
    lock = acquire_lock(specialist_id, date, time, client_id, now=now)
    try:
        yield lock
    finally:
        release_lock(lock.id)


def with_booking_lock(specialist_id, date, time, client_id, operation, now=None):
    """
    Run ``operation()`` while holding the slot lock.

    A held lock is reported through the result rather than raised. Errors
    raised by ``operation`` propagate after the lock is released.

    Returns:
        LockResult
    """
    try:
        lock = acquire_lock(specialist_id, date, time, client_id, now=now)
    except LockHeld as e:
        return LockResult(False, None, e.message, e.existing_lock)

    try:
        return LockResult(True, operation(), None, None)
    finally:
        release_lock(lock.id)


def get_client_identifier(request):
    """Stable-enough identifier of the requesting client for lock ownership"""
    ip = get_client_ip(request) or 'unknown'
    user_agent = request.META.get('HTTP_USER_AGENT', '')
    fingerprint = hashlib.sha256(user_agent.encode('utf-8')).hexdigest()[:12]
    if getattr(request, 'user', None) is not None and request.user.is_authenticated:
        return f'user:{request.user.pk}@{ip}'
    return f'{ip}:{fingerprint}'
