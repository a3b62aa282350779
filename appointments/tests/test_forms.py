# appointments/tests/test_forms.py
"""
Tests for the schedule, closure and booking request forms
"""
from django.test import SimpleTestCase

from appointments.forms import (
    AdminAppointmentForm, BookingRequestForm, ClosureForm, ScheduleExceptionForm, WeeklyScheduleForm,
)


class WeeklyScheduleFormTest(SimpleTestCase):
    """Test WeeklyScheduleForm used by the schedule validate/apply endpoints"""

    def setUp(self):
        self.form_data = {
            'specialist_id': 1,
            'day_of_week': 1,
            'start_time': '09:00',
            'end_time': '18:00',
            'lunch_start': '13:00',
            'lunch_end': '14:00',
        }

    def test_valid_form(self):
        form = WeeklyScheduleForm(self.form_data)
        self.assertTrue(form.is_valid(), f"Form errors: {form.errors}")
        self.assertIsNone(form.cleaned_data['allowed_service_ids'])
        self.assertFalse(form.cleaned_data['confirmed'])

    def test_times_are_normalised(self):
        self.form_data.update({'start_time': '09:00:00', 'lunch_start': '', 'lunch_end': ''})
        form = WeeklyScheduleForm(self.form_data)
        self.assertTrue(form.is_valid(), f"Form errors: {form.errors}")
        self.assertEqual(form.cleaned_data['start_time'], '09:00')
        self.assertIsNone(form.cleaned_data['lunch_start'])

    def test_empty_service_list_is_kept(self):
        self.form_data['allowed_service_ids'] = []
        form = WeeklyScheduleForm(self.form_data)
        self.assertTrue(form.is_valid(), f"Form errors: {form.errors}")
        self.assertEqual(form.cleaned_data['allowed_service_ids'], [])

    def test_service_ids_must_be_a_list(self):
        self.form_data['allowed_service_ids'] = '3'
        self.assertFalse(WeeklyScheduleForm(self.form_data).is_valid())

    def test_invalid_time_format(self):
        self.form_data['end_time'] = '6pm'
        form = WeeklyScheduleForm(self.form_data)
        self.assertFalse(form.is_valid())
        self.assertIn('end_time', form.errors)

    def test_end_before_start(self):
        self.form_data.update({'start_time': '18:00', 'end_time': '09:00', 'lunch_start': '', 'lunch_end': ''})
        self.assertFalse(WeeklyScheduleForm(self.form_data).is_valid())

    def test_lunch_outside_hours(self):
        self.form_data.update({'lunch_start': '17:30', 'lunch_end': '18:30'})
        self.assertFalse(WeeklyScheduleForm(self.form_data).is_valid())

    def test_day_of_week_range(self):
        self.form_data['day_of_week'] = 7
        form = WeeklyScheduleForm(self.form_data)
        self.assertFalse(form.is_valid())
        self.assertIn('day_of_week', form.errors)


class ScheduleExceptionFormTest(SimpleTestCase):

    def test_valid_exception(self):
        form = ScheduleExceptionForm({
            'specialist_id': 1,
            'exception_date': '2024-06-12',
            'start_time': '10:00',
            'end_time': '13:00',
            'confirmed': True,
        })
        self.assertTrue(form.is_valid(), f"Form errors: {form.errors}")
        self.assertTrue(form.cleaned_data['confirmed'])

    def test_date_format(self):
        form = ScheduleExceptionForm({
            'specialist_id': 1,
            'exception_date': '12/06/2024',
            'start_time': '10:00',
            'end_time': '13:00',
        })
        self.assertFalse(form.is_valid())
        self.assertIn('exception_date', form.errors)


class ClosureFormTest(SimpleTestCase):

    def test_defaults_to_other(self):
        form = ClosureForm({'specialist_id': 1, 'start_date': '2024-06-10', 'end_date': '2024-06-14'})
        self.assertTrue(form.is_valid(), f"Form errors: {form.errors}")
        self.assertEqual(form.cleaned_data['closure_type'], 'other')

    def test_single_day_closure(self):
        form = ClosureForm({'specialist_id': 1, 'start_date': '2024-06-10', 'end_date': '2024-06-10'})
        self.assertTrue(form.is_valid(), f"Form errors: {form.errors}")

    def test_end_before_start(self):
        form = ClosureForm({'specialist_id': 1, 'start_date': '2024-06-14', 'end_date': '2024-06-10'})
        self.assertFalse(form.is_valid())

    def test_unknown_type(self):
        form = ClosureForm({
            'specialist_id': 1, 'closure_type': 'strike', 'start_date': '2024-06-10', 'end_date': '2024-06-14',
        })
        self.assertFalse(form.is_valid())


class BookingRequestFormTest(SimpleTestCase):
    """Test the public booking request"""

    def setUp(self):
        self.form_data = {
            'specialist_id': 1,
            'service_id': 2,
            'appointment_date': '2030-06-10',
            'appointment_time': '09:45',
            'name': '  María   José Pérez ',
            'email': ' MJ@Example.com ',
            'phone': '+54 11 5555-1234',
        }

    def test_valid_request(self):
        form = BookingRequestForm(self.form_data)
        self.assertTrue(form.is_valid(), f"Form errors: {form.errors}")
        self.assertEqual(form.cleaned_data['name'], 'María José Pérez')
        self.assertEqual(form.cleaned_data['email'], 'mj@example.com')
        self.assertEqual(form.cleaned_data['phone'], '+541155551234')

    def test_required_fields(self):
        form = BookingRequestForm({})
        self.assertFalse(form.is_valid())
        for field in ('specialist_id', 'service_id', 'appointment_date', 'appointment_time', 'name', 'email'):
            self.assertIn(field, form.errors)

    def test_invalid_time(self):
        self.form_data['appointment_time'] = '25:00'
        form = BookingRequestForm(self.form_data)
        self.assertFalse(form.is_valid())
        self.assertIn('appointment_time', form.errors)


class AdminAppointmentFormTest(SimpleTestCase):

    def test_patient_by_details(self):
        form = AdminAppointmentForm({
            'specialist_id': 1,
            'service_id': 2,
            'appointment_date': '2030-06-10',
            'appointment_time': '19:00',
            'patient_name': 'Laura Paz',
            'patient_email': 'laura@example.com',
        })
        self.assertTrue(form.is_valid(), f"Form errors: {form.errors}")

    def test_patient_required(self):
        form = AdminAppointmentForm({
            'specialist_id': 1,
            'service_id': 2,
            'appointment_date': '2030-06-10',
            'appointment_time': '19:00',
            'patient_name': 'Laura Paz',
        })
        self.assertFalse(form.is_valid())
