# patients/forms.py
import re

from django import forms
from django.core.exceptions import ValidationError

PHONE_PATTERN = re.compile(r'^\+?\d{8,15}$')


class PatientInfoForm(forms.Form):
    """Patient details submitted with a public booking"""
    name = forms.CharField(max_length=150)
    email = forms.EmailField()
    phone = forms.CharField(max_length=30, required=False)

    def clean_name(self):
        name = ' '.join(self.cleaned_data.get('name', '').split())
        if len(name) < 2:
            raise ValidationError('Please enter the patient\'s full name.')
        if not re.match(r"^[^\d<>{}]+$", name):
            raise ValidationError('Name should only contain letters, spaces, hyphens, and apostrophes.')
        return name

    def clean_email(self):
        return self.cleaned_data.get('email', '').strip().lower()

    def clean_phone(self):
        """Strip separators and validate the remaining digits"""
        phone = self.cleaned_data.get('phone', '').strip()
        if phone:
            phone = re.sub(r'[\s\-().]', '', phone)
            if not PHONE_PATTERN.match(phone):
                raise ValidationError('Please enter a valid phone number (8 to 15 digits, optional leading +).')
        return phone
