# services/forms.py
from django import forms
from .models import Service


class ServiceForm(forms.ModelForm):
    """Form for creating and updating services"""

    class Meta:
        model = Service
        fields = ['name', 'description', 'duration_minutes', 'price', 'is_active']
        help_texts = {
            'duration_minutes': 'Expected duration in minutes (5-minute steps). Existing bookings keep the duration they were made with.',
        }

    def clean_duration_minutes(self):
        duration = self.cleaned_data.get('duration_minutes')
        if duration is not None:
            if duration < 15:
                raise forms.ValidationError('Duration must be at least 15 minutes.')
            if duration % 5:
                raise forms.ValidationError('Duration must be a multiple of 5 minutes.')
        return duration

    def clean_price(self):
        price = self.cleaned_data.get('price')
        if price is not None and price < 0:
            raise forms.ValidationError('Price cannot be negative.')
        return price
