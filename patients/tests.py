# patients/tests.py
from django.test import SimpleTestCase, TestCase

from .forms import PatientInfoForm
from .models import Patient


class PatientInfoFormTests(SimpleTestCase):
    """Test cases for PatientInfoForm"""

    def setUp(self):
        self.valid_form_data = {
            'name': 'Juana Díaz',
            'email': 'juana@example.com',
            'phone': '11 5555-1234',
        }

    def test_valid_form_submission(self):
        form = PatientInfoForm(data=self.valid_form_data)
        self.assertTrue(form.is_valid(), f"Form errors: {form.errors}")
        self.assertEqual(form.cleaned_data['phone'], '1155551234')

    def test_required_fields(self):
        form = PatientInfoForm(data={})
        self.assertFalse(form.is_valid())
        self.assertIn('name', form.errors)
        self.assertIn('email', form.errors)

    def test_phone_is_optional(self):
        self.valid_form_data['phone'] = ''
        self.assertTrue(PatientInfoForm(data=self.valid_form_data).is_valid())

    def test_invalid_phone(self):
        for phone in ['12345', 'abc-defg-hij', '+54 11 5555 1234 5678 9']:
            self.valid_form_data['phone'] = phone
            form = PatientInfoForm(data=self.valid_form_data)
            self.assertFalse(form.is_valid(), phone)
            self.assertIn('phone', form.errors)

    def test_name_with_digits(self):
        self.valid_form_data['name'] = 'Juana 2'
        self.assertFalse(PatientInfoForm(data=self.valid_form_data).is_valid())

    def test_short_name(self):
        self.valid_form_data['name'] = 'J'
        self.assertFalse(PatientInfoForm(data=self.valid_form_data).is_valid())


class PatientModelTests(TestCase):

    def test_email_is_stored_lowercase(self):
        patient = Patient.objects.create(name='Juana Díaz', email='Juana@Example.COM')
        self.assertEqual(patient.email, 'juana@example.com')

    def test_find_or_create_new(self):
        patient, created = Patient.find_or_create('Juana Díaz', 'juana@example.com', '1155551234')
        self.assertTrue(created)
        self.assertEqual(patient.phone, '1155551234')

    def test_find_or_create_existing_is_case_insensitive(self):
        existing = Patient.objects.create(name='Juana', email='juana@example.com', phone='1100000000')

        patient, created = Patient.find_or_create('Juana Díaz', 'JUANA@example.com')

        self.assertFalse(created)
        self.assertEqual(patient.pk, existing.pk)
        self.assertEqual(patient.name, 'Juana Díaz')
        self.assertEqual(patient.phone, '1100000000')
        self.assertEqual(Patient.objects.count(), 1)
