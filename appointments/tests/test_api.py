# appointments/tests/test_api.py
import json
from datetime import date, time, timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from appointments.locks import acquire_lock
from appointments.models import Appointment, Closure, ScheduleException, WorkSchedule
from services.catalog import ServiceCatalog
from .base import MONDAY, BookingFixtures


class JsonClientMixin:

    def post_json(self, url, data, method='post'):
        return getattr(self.client, method)(url, data=json.dumps(data), content_type='application/json')


class PublicApiTests(JsonClientMixin, BookingFixtures, TestCase):
    """Public booking endpoints"""

    def setUp(self):
        super().setUp()
        self.make_schedule(start=time(9, 0), end=time(14, 0), lunch_start=time(13, 0), lunch_end=time(14, 0))
        self.booking = {
            'specialist_id': self.specialist.id,
            'service_id': self.facial.id,
            'appointment_date': self.monday.strftime('%Y-%m-%d'),
            'appointment_time': '09:45',
            'name': 'Carla Ruiz',
            'email': 'Carla@Example.com',
            'phone': '11 4444-3333',
        }

    def test_specialists(self):
        response = self.client.get(reverse('core:specialist_list'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([s['name'] for s in response.json()['specialists']], ['Lucía Fernández', 'Martín Sosa'])

    def test_services(self):
        ServiceCatalog().invalidate()
        response = self.client.get(reverse('core:service_list'))
        self.assertEqual(response.status_code, 200)
        durations = {s['name']: s['duration_minutes'] for s in response.json()['services']}
        self.assertEqual(durations['Limpieza facial'], 45)

    def test_available_times(self):
        response = self.client.get(reverse('core:available_times'), {
            'specialist_id': self.specialist.id,
            'date': self.monday.strftime('%Y-%m-%d'),
            'service_id': self.facial.id,
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['available_times'], ['09:00', '09:45', '10:30', '11:15', '12:00'])

    def test_available_times_requires_parameters(self):
        response = self.client.get(reverse('core:available_times'), {'specialist_id': self.specialist.id})
        self.assertEqual(response.status_code, 400)

    def test_available_times_bad_date(self):
        response = self.client.get(reverse('core:available_times'), {
            'specialist_id': self.specialist.id, 'date': '12/06/2024',
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'invalid_date_format')

    def test_book(self):
        response = self.post_json(reverse('core:book_appointment'), self.booking)

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['appointment']['appointment_time'], '09:45')
        self.assertEqual(data['appointment']['patient']['email'], 'carla@example.com')
        self.assertEqual(data['appointment']['patient']['phone'], '1144443333')

    def test_book_taken_slot(self):
        self.make_appointment(self.monday, time(9, 45))

        response = self.post_json(reverse('core:book_appointment'), self.booking)

        self.assertEqual(response.status_code, 409)
        data = response.json()
        self.assertEqual(data['code'], 'slot_unavailable')
        self.assertEqual(data['suggested_slot']['time'], '10:30')

    def test_book_while_locked(self):
        acquire_lock(self.specialist.id, self.monday, '09:45', 'someone-else')

        response = self.post_json(reverse('core:book_appointment'), self.booking)

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'lock_held')
        self.assertFalse(Appointment.objects.exists())

    def test_book_validation_errors(self):
        self.booking.update({'email': 'not-an-email', 'appointment_time': '9.45'})

        response = self.post_json(reverse('core:book_appointment'), self.booking)

        self.assertEqual(response.status_code, 400)
        data = response.json()
        self.assertEqual(data['code'], 'validation_error')
        self.assertIn('email', data['errors'])
        self.assertIn('appointment_time', data['errors'])

    def test_book_invalid_json(self):
        response = self.client.post(reverse('core:book_appointment'), data='{', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_book_get_not_allowed(self):
        self.assertEqual(self.client.get(reverse('core:book_appointment')).status_code, 405)

    def test_book_past_date_is_rejected(self):
        self.booking['appointment_date'] = (self.monday - timedelta(weeks=3)).strftime('%Y-%m-%d')

        response = self.post_json(reverse('core:book_appointment'), self.booking)

        self.assertEqual(response.status_code, 400)
        data = response.json()
        self.assertEqual(data['code'], 'booking_time_rejected')
        self.assertIsNone(data['suggested_slot'])
        self.assertFalse(Appointment.objects.exists())


class AdminApiTests(JsonClientMixin, BookingFixtures, TestCase):
    """Staff-only endpoints"""

    def setUp(self):
        super().setUp()
        User = get_user_model()
        self.staff = User.objects.create_user(username='recepcion', password='secret', is_staff=True)
        self.client.force_login(self.staff)
        self.make_schedule(start=time(9, 0), end=time(18, 0))

    def test_requires_authentication(self):
        self.client.logout()
        self.assertEqual(self.client.get(reverse('appointments:appointments')).status_code, 401)

    def test_requires_staff(self):
        user = get_user_model().objects.create_user(username='paciente', password='secret')
        self.client.force_login(user)
        self.assertEqual(self.client.get(reverse('appointments:schedules')).status_code, 403)

    def test_create_list_update_delete_appointment(self):
        response = self.post_json(reverse('appointments:appointments'), {
            'specialist_id': self.specialist.id,
            'service_id': self.facial.id,
            'appointment_date': self.monday.strftime('%Y-%m-%d'),
            'appointment_time': '10:00',
            'patient_id': self.patient.id,
        })
        self.assertEqual(response.status_code, 201)
        appointment_id = response.json()['appointment']['id']

        response = self.client.get(reverse('appointments:appointments'), {'date': self.monday.strftime('%Y-%m-%d')})
        self.assertEqual([a['id'] for a in response.json()['appointments']], [appointment_id])

        url = reverse('appointments:appointment_detail', args=[appointment_id])
        response = self.post_json(url, {'appointment_time': '11:00'}, method='patch')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['appointment']['appointment_time'], '11:00')

        self.assertEqual(self.client.delete(url).status_code, 200)
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_create_overlapping_appointment(self):
        self.make_appointment(self.monday, time(10, 0))
        response = self.post_json(reverse('appointments:appointments'), {
            'specialist_id': self.specialist.id,
            'service_id': self.peeling.id,
            'appointment_date': self.monday.strftime('%Y-%m-%d'),
            'appointment_time': '10:30',
            'patient_name': 'Laura Paz',
            'patient_email': 'laura@example.com',
        })
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'slot_unavailable')

    def test_create_needs_patient(self):
        response = self.post_json(reverse('appointments:appointments'), {
            'specialist_id': self.specialist.id,
            'service_id': self.peeling.id,
            'appointment_date': self.monday.strftime('%Y-%m-%d'),
            'appointment_time': '10:30',
        })
        self.assertEqual(response.status_code, 400)

    def test_status_change(self):
        appointment = self.make_appointment(self.monday, time(10, 0))
        url = reverse('appointments:appointment_status', args=[appointment.id])

        response = self.post_json(url, {'status': 'cancelled'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['appointment']['status'], 'cancelled')

        response = self.post_json(url, {'status': 'completed'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'invalid_status_transition')

    def test_admin_available_times(self):
        response = self.client.get(reverse('appointments:available_times'), {
            'specialist_id': self.specialist.id,
            'date': self.monday.strftime('%Y-%m-%d'),
            'service_id': self.laser.id,
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['available_times']), 9)

    def schedule_payload(self, **overrides):
        payload = {
            'specialist_id': self.specialist.id,
            'day_of_week': MONDAY,
            'start_time': '09:00',
            'end_time': '14:00',
            'lunch_start': None,
            'lunch_end': None,
            'allowed_service_ids': None,
        }
        payload.update(overrides)
        return payload

    def test_validate_schedule_change(self):
        self.make_appointment(self.monday, time(16, 0))

        response = self.post_json(reverse('appointments:validate_schedule'), self.schedule_payload())

        self.assertEqual(response.status_code, 200)
        validation = response.json()['validation']
        self.assertTrue(validation['has_conflicts'])
        self.assertFalse(validation['can_proceed'])
        self.assertEqual(validation['affected_appointments_count'], 1)
        self.assertEqual(validation['conflicts'][0]['type'], 'outside_hours')
        self.assertEqual(validation['conflicts'][0]['appointment_time'], '16:00')

    def test_apply_schedule_change_needs_confirmation(self):
        self.make_appointment(self.monday, time(16, 0))

        response = self.post_json(reverse('appointments:apply_schedule'), self.schedule_payload())
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'schedule_conflict')
        self.assertEqual(WorkSchedule.objects.get(day_of_week=MONDAY).end_time, time(18, 0))

        response = self.post_json(reverse('appointments:apply_schedule'), self.schedule_payload(confirmed=True))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(WorkSchedule.objects.get(day_of_week=MONDAY, is_active=True).end_time, time(14, 0))

    def test_apply_schedule_creates_new_day(self):
        response = self.post_json(
            reverse('appointments:apply_schedule'),
            self.schedule_payload(day_of_week=6, lunch_start='12:00', lunch_end='12:30', allowed_service_ids=[])
        )
        self.assertEqual(response.status_code, 200)
        schedule = WorkSchedule.objects.get(day_of_week=6)
        self.assertEqual(schedule.allowed_service_ids, [])
        self.assertEqual(len(response.json()['validation']['warnings']), 1)
        self.assertEqual(schedule.lunch_start, time(12, 0))

    def test_notification_history(self):
        appointment = self.make_appointment(self.monday, time(16, 0))
        self.post_json(reverse('appointments:apply_schedule'), self.schedule_payload(confirmed=True, notify=True))
        self.post_json(reverse('appointments:apply_schedule'), self.schedule_payload(confirmed=True, notify=True))

        response = self.client.get(reverse('appointments:notifications'), {'specialist_id': self.specialist.id})

        self.assertEqual(response.status_code, 200)
        notices = response.json()['notifications']
        self.assertEqual(len(notices), 1)
        self.assertEqual(notices[0]['appointment_id'], appointment.id)
        self.assertTrue(notices[0]['sent'])

    def test_apply_invalid_schedule(self):
        response = self.post_json(
            reverse('appointments:apply_schedule'),
            self.schedule_payload(lunch_start='13:30', lunch_end='14:30')
        )
        self.assertEqual(response.status_code, 400)

    def test_schedule_exception_flow(self):
        self.make_appointment(self.monday, time(15, 0))
        payload = {
            'specialist_id': self.specialist.id,
            'exception_date': self.monday.strftime('%Y-%m-%d'),
            'start_time': '09:00',
            'end_time': '13:00',
            'reason': 'Capacitación',
        }

        response = self.post_json(reverse('appointments:validate_schedule_exception'), payload)
        self.assertEqual(response.json()['validation']['affected_appointments_count'], 1)

        response = self.post_json(reverse('appointments:schedule_exceptions'), payload)
        self.assertEqual(response.status_code, 409)

        payload['confirmed'] = True
        response = self.post_json(reverse('appointments:schedule_exceptions'), payload)
        self.assertEqual(response.status_code, 200)
        exception_id = response.json()['exception']['id']

        response = self.client.get(reverse('appointments:schedule_exceptions'), {'specialist_id': self.specialist.id})
        self.assertEqual([e['id'] for e in response.json()['exceptions']], [exception_id])

        response = self.client.delete(reverse('appointments:schedule_exception_detail', args=[exception_id]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(ScheduleException.objects.exists())

    def test_closure_blocked_by_appointments(self):
        self.make_appointment(date(2024, 6, 12), time(10, 0))
        payload = {
            'specialist_id': self.specialist.id,
            'closure_type': 'vacation',
            'start_date': '2024-06-10',
            'end_date': '2024-06-14',
        }

        response = self.post_json(reverse('appointments:validate_closure'), payload)
        self.assertEqual(response.json()['validation']['conflicts'][0]['type'], 'closure_overlap')
        self.assertFalse(response.json()['validation']['allow_override'])

        payload['confirmed'] = True
        response = self.post_json(reverse('appointments:closures'), payload)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'schedule_conflict')
        self.assertFalse(Closure.objects.exists())

    def test_closure_crud(self):
        start = self.monday + timedelta(days=14)
        response = self.post_json(reverse('appointments:closures'), {
            'specialist_id': self.specialist.id,
            'start_date': start.strftime('%Y-%m-%d'),
            'end_date': (start + timedelta(days=4)).strftime('%Y-%m-%d'),
            'reason': 'Congreso',
        })
        self.assertEqual(response.status_code, 201)
        closure = response.json()['closure']
        self.assertEqual(closure['closure_type'], 'other')

        url = reverse('appointments:closure_detail', args=[closure['id']])
        response = self.post_json(url, {'end_date': (start + timedelta(days=6)).strftime('%Y-%m-%d')}, method='patch')
        self.assertEqual(response.status_code, 200)

        response = self.post_json(url, {'end_date': (start - timedelta(days=1)).strftime('%Y-%m-%d')}, method='patch')
        self.assertEqual(response.status_code, 400)

        self.assertEqual(len(self.client.get(reverse('appointments:closures')).json()['closures']), 1)
        self.assertEqual(self.client.delete(url).status_code, 200)
        self.assertFalse(Closure.objects.exists())

    def test_locks(self):
        acquire_lock(self.specialist.id, self.monday, '10:00', 'client-a')
        response = self.client.get(reverse('appointments:locks'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['locks'][0]['locked_by'], 'client-a')

    def test_patients(self):
        response = self.post_json(reverse('appointments:patients'), {'name': 'Laura Paz', 'email': 'laura@example.com'})
        self.assertEqual(response.status_code, 201)
        response = self.client.get(reverse('appointments:patients'), {'search': 'laura'})
        self.assertEqual([p['email'] for p in response.json()['patients']], ['laura@example.com'])
