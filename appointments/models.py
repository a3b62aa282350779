# appointments/models.py
import uuid
from datetime import datetime, timedelta

from django.core.exceptions import ValidationError
from django.db import models

from .timeutils import DAY_NAMES


class WorkingHours(models.Model):
    """
    Hours, lunch break and allowed services shared by the weekly schedule
    and the date-specific exceptions
    """
    start_time = models.TimeField()
    end_time = models.TimeField()
    lunch_start = models.TimeField(null=True, blank=True)
    lunch_end = models.TimeField(null=True, blank=True)
    # None means every service is allowed; an empty list allows none
    allowed_service_ids = models.JSONField(null=True, blank=True, default=None)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @property
    def has_lunch_break(self):
        return self.lunch_start is not None and self.lunch_end is not None

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError('End time must be after start time.')

        if (self.lunch_start is None) != (self.lunch_end is None):
            raise ValidationError('Lunch break needs both a start and an end time.')

        if self.has_lunch_break:
            if self.lunch_end <= self.lunch_start:
                raise ValidationError('Lunch end time must be after lunch start time.')
            if self.lunch_start < self.start_time or self.lunch_end > self.end_time:
                raise ValidationError('Lunch break must be within working hours.')

        if self.allowed_service_ids is not None:
            if not isinstance(self.allowed_service_ids, list):
                raise ValidationError('Allowed services must be a list of service ids.')

    @property
    def working_hours_display(self):
        hours = f"{self.start_time.strftime('%H:%M')} - {self.end_time.strftime('%H:%M')}"
        if self.has_lunch_break:
            hours += f" (Almuerzo: {self.lunch_start.strftime('%H:%M')}-{self.lunch_end.strftime('%H:%M')})"
        return hours

    def hours_dict(self):
        return {
            'start_time': self.start_time.strftime('%H:%M'),
            'end_time': self.end_time.strftime('%H:%M'),
            'lunch_start': self.lunch_start.strftime('%H:%M') if self.lunch_start else None,
            'lunch_end': self.lunch_end.strftime('%H:%M') if self.lunch_end else None,
            'allowed_service_ids': self.allowed_service_ids,
            'is_active': self.is_active,
        }


class WorkSchedule(WorkingHours):
    """Recurring weekly hours of a specialist for one day of the week"""
    DAY_OF_WEEK_CHOICES = list(enumerate(DAY_NAMES))

    specialist = models.ForeignKey('specialists.Specialist', on_delete=models.CASCADE, related_name='work_schedules')
    day_of_week = models.PositiveSmallIntegerField(choices=DAY_OF_WEEK_CHOICES, help_text="0 = Sunday ... 6 = Saturday")

    class Meta:
        ordering = ['specialist', 'day_of_week']
        indexes = [
            models.Index(fields=['specialist', 'day_of_week'], name='work_sched_spec_day_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F('start_time')),
                name='workschedule_end_after_start'
            ),
            models.CheckConstraint(
                condition=models.Q(day_of_week__lte=6),
                name='workschedule_valid_day_of_week'
            ),
            models.UniqueConstraint(
                fields=['specialist', 'day_of_week'],
                condition=models.Q(is_active=True),
                name='unique_active_schedule_per_day'
            ),
        ]

    def __str__(self):
        return f"{self.specialist.name} - {self.get_day_of_week_display()} ({self.working_hours_display})"

    def to_dict(self):
        data = {
            'id': self.id,
            'specialist_id': self.specialist_id,
            'day_of_week': self.day_of_week,
            'day_name': self.get_day_of_week_display(),
        }
        data.update(self.hours_dict())
        return data


class ScheduleException(WorkingHours):
    """Replaces the weekly schedule, in its entirety, for one exact date"""
    specialist = models.ForeignKey('specialists.Specialist', on_delete=models.CASCADE, related_name='schedule_exceptions')
    exception_date = models.DateField()
    reason = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ['exception_date']
        indexes = [
            models.Index(fields=['specialist', 'exception_date'], name='sched_exc_spec_date_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F('start_time')),
                name='scheduleexception_end_after_start'
            ),
            models.UniqueConstraint(
                fields=['specialist', 'exception_date'],
                condition=models.Q(is_active=True),
                name='unique_active_exception_per_date'
            ),
        ]

    def __str__(self):
        return f"{self.specialist.name} - {self.exception_date} ({self.working_hours_display})"

    def to_dict(self):
        data = {
            'id': self.id,
            'specialist_id': self.specialist_id,
            'exception_date': self.exception_date.strftime('%Y-%m-%d'),
            'reason': self.reason,
        }
        data.update(self.hours_dict())
        return data


class Closure(models.Model):
    """Vacations, holidays and other full-day closures; blocks every booking in the range"""
    CLOSURE_TYPE_CHOICES = [
        ('vacation', 'Vacaciones'),
        ('holiday', 'Feriado'),
        ('personal', 'Personal'),
        ('other', 'Otro'),
    ]

    specialist = models.ForeignKey('specialists.Specialist', on_delete=models.CASCADE, related_name='closures')
    closure_type = models.CharField(max_length=20, choices=CLOSURE_TYPE_CHOICES, default='other')
    start_date = models.DateField()
    end_date = models.DateField(help_text="Inclusive")
    reason = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-start_date']
        indexes = [
            models.Index(fields=['specialist', 'start_date', 'end_date'], name='closure_spec_range_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F('start_date')),
                name='closure_end_not_before_start'
            ),
        ]

    def __str__(self):
        return f"{self.specialist.name} - {self.get_closure_type_display()} {self.start_date} / {self.end_date}"

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError('End date must be on or after the start date.')

    def to_dict(self):
        return {
            'id': self.id,
            'specialist_id': self.specialist_id,
            'closure_type': self.closure_type,
            'start_date': self.start_date.strftime('%Y-%m-%d'),
            'end_date': self.end_date.strftime('%Y-%m-%d'),
            'reason': self.reason,
            'is_active': self.is_active,
        }


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('scheduled', 'Scheduled'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    # Statuses that occupy the agenda; matches the unique constraint below
    BLOCKING_STATUSES = ['scheduled', 'completed']
    STATUS_TRANSITIONS = {
        'scheduled': ['completed', 'cancelled'],
        'completed': [],
        'cancelled': [],
    }

    specialist = models.ForeignKey('specialists.Specialist', on_delete=models.PROTECT, related_name='appointments')
    service = models.ForeignKey('services.Service', on_delete=models.PROTECT, related_name='appointments')
    patient = models.ForeignKey('patients.Patient', on_delete=models.CASCADE, related_name='appointments')
    appointment_date = models.DateField()
    appointment_time = models.TimeField()
    # Captured from the service when booked; later service edits do not touch it
    duration_minutes = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='scheduled')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['appointment_date', 'appointment_time']
        indexes = [
            models.Index(fields=['status'], name='appt_status_idx'),
            models.Index(fields=['specialist', 'appointment_date'], name='appt_spec_date_idx'),
            models.Index(fields=['specialist', 'status'], name='appt_spec_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['specialist', 'appointment_date', 'appointment_time'],
                condition=~models.Q(status='cancelled'),
                name='unique_active_appointment_per_slot'
            ),
            models.CheckConstraint(
                condition=models.Q(duration_minutes__gt=0),
                name='appointment_positive_duration'
            ),
        ]

    def __str__(self):
        return f"{self.patient.name} - {self.appointment_date} {self.appointment_time.strftime('%H:%M')}"

    @property
    def end_time(self):
        end = datetime.combine(self.appointment_date, self.appointment_time) + timedelta(minutes=self.duration_minutes)
        return end.time()

    @property
    def blocks_time_slot(self):
        return self.status in self.BLOCKING_STATUSES

    def can_transition_to(self, new_status):
        return new_status in self.STATUS_TRANSITIONS.get(self.status, [])

    def to_dict(self):
        return {
            'id': self.id,
            'specialist_id': self.specialist_id,
            'service_id': self.service_id,
            'service_name': self.service.name,
            'patient': self.patient.to_dict(),
            'appointment_date': self.appointment_date.strftime('%Y-%m-%d'),
            'appointment_time': self.appointment_time.strftime('%H:%M'),
            'end_time': self.end_time.strftime('%H:%M'),
            'duration_minutes': self.duration_minutes,
            'status': self.status,
            'notes': self.notes,
        }


def generate_lock_id():
    return f'lock_{uuid.uuid4().hex}'


class AppointmentLock(models.Model):
    """
    Short-lived mutual-exclusion token for one (specialist, date, time) slot.
    Not a booking; the unique constraint makes the insert the arbiter.
    """
    id = models.CharField(primary_key=True, max_length=64, default=generate_lock_id, editable=False)
    specialist = models.ForeignKey('specialists.Specialist', on_delete=models.CASCADE, related_name='appointment_locks')
    appointment_date = models.DateField()
    appointment_time = models.TimeField()
    locked_by = models.CharField(max_length=128)
    locked_at = models.DateTimeField()
    expires_at = models.DateTimeField()

    class Meta:
        ordering = ['-locked_at']
        indexes = [
            models.Index(fields=['expires_at'], name='appt_lock_expires_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['specialist', 'appointment_date', 'appointment_time'],
                name='unique_lock_per_slot'
            ),
        ]

    def __str__(self):
        return f"{self.id} {self.appointment_date} {self.appointment_time.strftime('%H:%M')} by {self.locked_by}"

    def to_dict(self):
        return {
            'id': self.id,
            'specialist_id': self.specialist_id,
            'appointment_date': self.appointment_date.strftime('%Y-%m-%d'),
            'appointment_time': self.appointment_time.strftime('%H:%M'),
            'locked_by': self.locked_by,
            'locked_at': self.locked_at.isoformat(),
            'expires_at': self.expires_at.isoformat(),
        }


class PatientNotification(models.Model):
    """
    Schedule-change notice sent (or attempted) for one appointment.
    ``change_key`` fingerprints the change, so re-applying the same change
    does not mail the patient again.
    """
    appointment = models.ForeignKey(Appointment, on_delete=models.CASCADE, related_name='notifications')
    change_key = models.CharField(max_length=64)
    conflict_type = models.CharField(max_length=30)
    recipient = models.EmailField(blank=True)
    subject = models.CharField(max_length=200)
    sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['appointment', 'change_key'], name='unique_notice_per_change'),
        ]

    def __str__(self):
        return f"{self.subject} -> {self.recipient} ({'sent' if self.sent else 'failed'})"

    def to_dict(self):
        return {
            'id': self.id,
            'appointment_id': self.appointment_id,
            'change_key': self.change_key,
            'conflict_type': self.conflict_type,
            'recipient': self.recipient,
            'subject': self.subject,
            'sent': self.sent,
            'created_at': self.created_at.isoformat(),
        }
