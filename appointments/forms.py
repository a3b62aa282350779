# appointments/forms.py
from django import forms
from django.core.exceptions import ValidationError

from patients.forms import PatientInfoForm

from .exceptions import SchedulingError
from .models import Closure
from .scheduling import Window
from .timeutils import to_hhmm, to_minutes

DATE_INPUT_FORMATS = ['%Y-%m-%d']


def clean_hhmm(value, required=True):
    """Normalise a "HH:MM" input, raising a form ValidationError"""
    if value in (None, ''):
        if required:
            raise ValidationError('This field is required.')
        return None
    try:
        return to_hhmm(to_minutes(value))
    except SchedulingError as e:
        raise ValidationError(e.message)


def clean_service_ids(value):
    """
    None -> None (every service allowed); a list -> list of ids.
    An empty list is kept: it allows no service at all.
    """
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ValidationError('allowed_service_ids must be a list or null.')
    ids = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (int, str)) or str(item).strip() == '':
            raise ValidationError(f'Invalid service id: {item!r}')
        ids.append(int(item) if isinstance(item, str) and item.isdigit() else item)
    return ids


class WorkingHoursForm(forms.Form):
    """Hours, lunch break and allowed services of a proposed window"""
    start_time = forms.CharField()
    end_time = forms.CharField()
    lunch_start = forms.CharField(required=False)
    lunch_end = forms.CharField(required=False)
    confirmed = forms.BooleanField(required=False)
    notify = forms.BooleanField(required=False)

    def clean_start_time(self):
        return clean_hhmm(self.cleaned_data.get('start_time'))

    def clean_end_time(self):
        return clean_hhmm(self.cleaned_data.get('end_time'))

    def clean_lunch_start(self):
        return clean_hhmm(self.cleaned_data.get('lunch_start'), required=False)

    def clean_lunch_end(self):
        return clean_hhmm(self.cleaned_data.get('lunch_end'), required=False)

    def clean(self):
        cleaned_data = super().clean()

        # Read raw so that an empty list survives (form fields treat [] as empty)
        try:
            cleaned_data['allowed_service_ids'] = clean_service_ids(self.data.get('allowed_service_ids'))
        except ValidationError as e:
            self.add_error(None, e)

        start_time = cleaned_data.get('start_time')
        end_time = cleaned_data.get('end_time')
        if start_time and end_time:
            try:
                Window(
                    start_time, end_time,
                    cleaned_data.get('lunch_start'), cleaned_data.get('lunch_end'),
                ).validate()
            except SchedulingError as e:
                raise ValidationError(e.message)

        return cleaned_data


class WeeklyScheduleForm(WorkingHoursForm):
    specialist_id = forms.IntegerField(min_value=1)
    day_of_week = forms.IntegerField(min_value=0, max_value=6, help_text='0 = Sunday')


class ScheduleExceptionForm(WorkingHoursForm):
    specialist_id = forms.IntegerField(min_value=1)
    exception_date = forms.DateField(input_formats=DATE_INPUT_FORMATS)
    reason = forms.CharField(max_length=255, required=False)


class ClosureForm(forms.Form):
    specialist_id = forms.IntegerField(min_value=1)
    closure_type = forms.ChoiceField(choices=Closure.CLOSURE_TYPE_CHOICES, required=False)
    start_date = forms.DateField(input_formats=DATE_INPUT_FORMATS)
    end_date = forms.DateField(input_formats=DATE_INPUT_FORMATS)
    reason = forms.CharField(max_length=255, required=False)

    def clean_closure_type(self):
        return self.cleaned_data.get('closure_type') or 'other'

    def clean(self):
        cleaned_data = super().clean()
        start_date = cleaned_data.get('start_date')
        end_date = cleaned_data.get('end_date')
        if start_date and end_date and end_date < start_date:
            raise ValidationError('End date must be on or after the start date.')
        return cleaned_data


class BookingRequestForm(PatientInfoForm):
    """Public booking request: slot plus patient details"""
    specialist_id = forms.IntegerField(min_value=1)
    service_id = forms.IntegerField(min_value=1)
    appointment_date = forms.DateField(input_formats=DATE_INPUT_FORMATS)
    appointment_time = forms.CharField()
    notes = forms.CharField(max_length=1000, required=False)

    def clean_appointment_time(self):
        return clean_hhmm(self.cleaned_data.get('appointment_time'))


class AdminAppointmentForm(forms.Form):
    """Admin booking; the patient is given by id or by name and e-mail"""
    specialist_id = forms.IntegerField(min_value=1)
    service_id = forms.IntegerField(min_value=1)
    appointment_date = forms.DateField(input_formats=DATE_INPUT_FORMATS)
    appointment_time = forms.CharField()
    duration_minutes = forms.IntegerField(min_value=1, required=False)
    patient_id = forms.IntegerField(min_value=1, required=False)
    patient_name = forms.CharField(max_length=150, required=False)
    patient_email = forms.EmailField(required=False)
    patient_phone = forms.CharField(max_length=30, required=False)
    notes = forms.CharField(required=False)

    def clean_appointment_time(self):
        return clean_hhmm(self.cleaned_data.get('appointment_time'))

    def clean(self):
        cleaned_data = super().clean()
        if not cleaned_data.get('patient_id'):
            if not (cleaned_data.get('patient_name') and cleaned_data.get('patient_email')):
                raise ValidationError('Select a patient or enter the patient name and e-mail.')
        return cleaned_data
