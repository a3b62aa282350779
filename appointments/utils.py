# appointments/utils.py - Booking configuration and calendar helpers
import logging
from collections import namedtuple
from datetime import datetime, timedelta

import pytz
from django.conf import settings
from django.utils import timezone

from core.models import SystemSetting

logger = logging.getLogger(__name__)


class BookingConfig:
    """Helper class for booking-related configuration stored in SystemSetting"""

    SETTING_DEFINITIONS = [
        ('booking_lock_minutes', '5', 'Minutes a booking lock stays valid before it can be swept'),
        ('default_service_duration', '30', 'Duration in minutes used when a service has none'),
        ('next_slot_search_days', '30', 'Days ahead searched for a suggested slot when the requested one is taken'),
        ('send_confirmation_emails', 'true', 'Send a confirmation e-mail after a public booking'),
        ('min_advance_hours', '2', 'Minimum hours between now and the start of a public booking'),
        ('max_advance_days', '30', 'Maximum days ahead a public booking may be made'),
    ]

    @classmethod
    def get_lock_minutes(cls):
        """Get the booking lock TTL in minutes"""
        minutes = SystemSetting.get_int_setting('booking_lock_minutes', 5)
        if minutes <= 0:
            logger.warning(f"Ignoring non-positive booking_lock_minutes={minutes}")
            return 5
        return minutes

    @classmethod
    def get_default_service_duration(cls):
        return SystemSetting.get_int_setting('default_service_duration', 30)

    @classmethod
    def get_next_slot_search_days(cls):
        return SystemSetting.get_int_setting('next_slot_search_days', 30)

    @classmethod
    def confirmation_emails_enabled(cls):
        return SystemSetting.get_bool_setting('send_confirmation_emails', True)

    @classmethod
    def get_min_advance_hours(cls):
        hours = SystemSetting.get_int_setting('min_advance_hours', 2)
        if hours < 0:
            logger.warning(f"Ignoring negative min_advance_hours={hours}")
            return 0
        return hours

    @classmethod
    def get_max_advance_days(cls):
        days = SystemSetting.get_int_setting('max_advance_days', 30)
        if days <= 0:
            logger.warning(f"Ignoring non-positive max_advance_days={days}")
            return 30
        return days


def clinic_timezone():
    return pytz.timezone(settings.CLINIC_TIME_ZONE)


def local_now(now=None):
    """Current moment in the clinic's operating timezone"""
    now = now or timezone.now()
    if timezone.is_naive(now):
        now = pytz.utc.localize(now)
    return now.astimezone(clinic_timezone())


def local_today(now=None):
    """Calendar date of the clinic; past dates are compared against this"""
    return local_now(now).date()


def combine_local(day, at_time):
    """Aware datetime for a clinic calendar day and wall-clock time"""
    return clinic_timezone().localize(datetime.combine(day, at_time))


BookingBounds = namedtuple('BookingBounds', ['now', 'earliest', 'latest'])


def public_booking_bounds(now=None):
    """
    Range of start times open to public bookings: strictly after now, at
    least the minimum advance away and no further than the maximum advance.
    """
    current = local_now(now)
    return BookingBounds(
        current,
        current + timedelta(hours=BookingConfig.get_min_advance_hours()),
        current + timedelta(days=BookingConfig.get_max_advance_days()),
    )
