# patients/models.py
from django.db import models


class Patient(models.Model):
    name = models.CharField(max_length=150)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=30, blank=True)

    # System fields
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['phone'], name='patient_phone_idx'),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"

    def save(self, *args, **kwargs):
        self.email = (self.email or '').strip().lower()
        self.name = (self.name or '').strip()
        super().save(*args, **kwargs)

    @classmethod
    def find_or_create(cls, name, email, phone=''):
        """
        Look the patient up by e-mail (case-insensitive) and refresh the
        contact details, or register a new patient.

        Returns:
            tuple: (patient, created)
        """
        email = email.strip().lower()
        phone = (phone or '').strip()
        patient = cls.objects.filter(email__iexact=email).first()

        if patient is None:
            return cls.objects.create(name=name, email=email, phone=phone), True

        patient.name = name.strip()
        if phone:
            patient.phone = phone
        patient.save(update_fields=['name', 'phone', 'updated_at'])
        return patient, False

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
        }
