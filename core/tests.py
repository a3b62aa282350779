# core/tests.py
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory, SimpleTestCase, TestCase

from appointments.conflicts import ValidationReport
from appointments.exceptions import BookingError, LockHeld, NotFound, ScheduleConflictBlocked, SlotUnavailable
from specialists.models import Specialist
from .http import scheduling_error_response
from .models import AuditLog, SystemSetting, get_client_ip


class SystemSettingTests(TestCase):

    def test_defaults_when_missing_or_inactive(self):
        self.assertEqual(SystemSetting.get_int_setting('booking_lock_minutes', 5), 5)
        SystemSetting.objects.create(key='booking_lock_minutes', value='9', is_active=False)
        self.assertEqual(SystemSetting.get_int_setting('booking_lock_minutes', 5), 5)

    def test_typed_values(self):
        SystemSetting.set_setting('booking_lock_minutes', 7)
        SystemSetting.set_setting('send_confirmation_emails', 'No')
        self.assertEqual(SystemSetting.get_int_setting('booking_lock_minutes', 5), 7)
        self.assertFalse(SystemSetting.get_bool_setting('send_confirmation_emails', True))

    def test_unparseable_int_uses_default(self):
        SystemSetting.set_setting('next_slot_search_days', 'thirty')
        self.assertEqual(SystemSetting.get_int_setting('next_slot_search_days', 30), 30)

    def test_set_setting_updates_in_place(self):
        SystemSetting.set_setting('booking_lock_minutes', 5, 'Lock TTL')
        SystemSetting.set_setting('booking_lock_minutes', 10)
        setting = SystemSetting.objects.get(key='booking_lock_minutes')
        self.assertEqual(setting.value, '10')
        self.assertEqual(setting.description, 'Lock TTL')


class AuditLogTests(TestCase):

    def setUp(self):
        self.factory = RequestFactory()
        self.specialist = Specialist.objects.create(name='Dra. Sofía Ruiz')

    def test_log_action(self):
        user = get_user_model().objects.create_user('recepcion', password='x', is_staff=True)
        request = self.factory.post('/', REMOTE_ADDR='10.0.0.8')

        entry = AuditLog.log_action(user, 'update', self.specialist, {'name': 'x'}, request=request)

        self.assertEqual(entry.model_name, 'specialist')
        self.assertEqual(entry.object_id, str(self.specialist.pk))
        self.assertEqual(entry.ip_address, '10.0.0.8')
        self.assertEqual(entry.user, user)

    def test_anonymous_user_is_not_stored(self):
        entry = AuditLog.log_action(AnonymousUser(), 'delete', self.specialist)
        self.assertIsNone(entry.user)
        self.assertEqual(entry.changes, {})

    def test_forwarded_ip(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='203.0.113.5, 10.0.0.1')
        self.assertEqual(get_client_ip(request), '203.0.113.5')


class SchedulingErrorResponseTests(SimpleTestCase):

    def test_status_codes(self):
        self.assertEqual(scheduling_error_response(NotFound('gone')).status_code, 404)
        self.assertEqual(scheduling_error_response(LockHeld()).status_code, 409)
        self.assertEqual(scheduling_error_response(SlotUnavailable()).status_code, 409)
        blocked = ScheduleConflictBlocked(ValidationReport([], allow_override=False, subject='closure'))
        self.assertEqual(scheduling_error_response(blocked).status_code, 409)
        self.assertEqual(scheduling_error_response(BookingError('nope')).status_code, 400)
