# appointments/booking.py
"""
Appointment creation and maintenance.

Public bookings must land on a computed slot and run under the slot lock;
admin bookings only have to avoid closures and other appointments. In
every path the partial unique constraint on the appointment table is the
final arbiter and its violation surfaces as SlotUnavailable.
"""
import logging

from django.db import IntegrityError, transaction

from core.models import AuditLog
from patients.models import Patient
from services.models import Service
from specialists.models import Specialist

from .availability import (
    booked_appointments, compute_available_slots, find_next_available_slot, find_overlapping_appointments, get_service,
)
from .exceptions import (
    BookingError, BookingTimeRejected, InvalidStatusTransition, LockHeld, NotFound, SlotUnavailable,
)
from .locks import with_booking_lock
from .models import Appointment
from .notifications import send_booking_confirmation
from .scheduling import Closed, find_closure, lock_agenda, resolve_schedule
from .timeutils import parse_date, to_hhmm, to_minutes, to_time
from .utils import BookingConfig, combine_local, public_booking_bounds

logger = logging.getLogger(__name__)


def get_specialist(specialist_id, active_only=True):
    queryset = Specialist.objects.all()
    if active_only:
        queryset = queryset.filter(is_active=True)
    try:
        return queryset.get(pk=specialist_id)
    except (Specialist.DoesNotExist, ValueError, TypeError):
        raise NotFound('Specialist not found or inactive')


def get_appointment(appointment_id, for_update=False):
    queryset = Appointment.objects.select_related('patient', 'service', 'specialist')
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=appointment_id)
    except (Appointment.DoesNotExist, ValueError, TypeError):
        raise NotFound('Appointment not found')


def _suggest_slot(specialist_id, service, day, time, bounds=None):
    return find_next_available_slot(specialist_id, service, day, after_time=time, bounds=bounds)


def _closure_error(closure):
    return BookingError(
        f'El profesional no atiende del {closure.start_date:%d/%m/%Y} al {closure.end_date:%d/%m/%Y}'
        f"{': ' + closure.reason if closure.reason else ''}"
    )


def check_booking_time(specialist_id, service, day, hhmm, bounds):
    """
    Reject public bookings in the past, inside the minimum advance or past
    the maximum advance. A too-early request carries the first slot that
    satisfies the advance rules.
    """
    start = combine_local(day, to_time(hhmm))
    if day < bounds.now.date():
        raise BookingTimeRejected('No se pueden reservar turnos en fechas pasadas')
    if start <= bounds.now:
        raise BookingTimeRejected('No se pueden reservar horarios en el pasado')
    if start < bounds.earliest:
        raise BookingTimeRejected(
            f'Debe reservar con al menos {BookingConfig.get_min_advance_hours()} horas de anticipación',
            suggested_slot=find_next_available_slot(specialist_id, service, bounds.earliest.date(), bounds=bounds),
        )
    if start > bounds.latest:
        raise BookingTimeRejected(
            f'No se pueden reservar turnos con más de {BookingConfig.get_max_advance_days()} días de anticipación'
        )


def _insert_appointment(**fields):
    try:
        with transaction.atomic():
            return Appointment.objects.create(**fields)
    except IntegrityError:
        logger.warning(
            f"Uniqueness constraint rejected booking for specialist {fields['specialist'].id} "
            f"{fields['appointment_date']} {fields['appointment_time']}"
        )
        raise SlotUnavailable()


def create_public_appointment(specialist_id, service_id, date, time, patient_name, patient_email,
                              patient_phone='', notes='', now=None):
    """
    Book a slot for a patient from the public flow.

    Raises:
        NotFound / BookingError: unknown specialist or service, closed date
        BookingTimeRejected: past time or outside the advance limits
        SlotUnavailable: the time is not a free slot (carries a suggested slot)
    """
    specialist = get_specialist(specialist_id)
    service = get_service(service_id)
    day = parse_date(date)
    hhmm = to_hhmm(to_minutes(time))
    bounds = public_booking_bounds(now)

    check_booking_time(specialist.id, service, day, hhmm, bounds)

    window = resolve_schedule(specialist.id, day)
    if isinstance(window, Closed):
        raise BookingError(f'No hay atención el {day:%d/%m/%Y}: {window.reason}')

    slots = compute_available_slots(window, service, booked_appointments(specialist.id, day))
    if hhmm not in slots:
        raise SlotUnavailable(suggested_slot=_suggest_slot(specialist.id, service, day, hhmm, bounds))

    try:
        with transaction.atomic():
            # A closure committed after the window was resolved still wins
            lock_agenda(specialist.id)
            closure = find_closure(specialist.id, day)
            if closure is not None:
                raise _closure_error(closure)

            patient, created = Patient.find_or_create(patient_name, patient_email, patient_phone)
            appointment = _insert_appointment(
                specialist=specialist,
                service=service,
                patient=patient,
                appointment_date=day,
                appointment_time=to_time(hhmm),
                duration_minutes=service.duration_minutes,
                notes=notes or '',
                status='scheduled',
            )
    except SlotUnavailable as e:
        e.suggested_slot = _suggest_slot(specialist.id, service, day, hhmm, bounds)
        raise

    logger.info(
        f"Booked appointment {appointment.id}: specialist {specialist.id} {day} {hhmm} "
        f"({service.duration_minutes} min) for patient {patient.id}{' (new)' if created else ''}"
    )

    if BookingConfig.confirmation_emails_enabled():
        send_booking_confirmation(appointment)

    return appointment


def book_appointment(client_id, specialist_id, service_id, date, time, patient_name, patient_email,
                     patient_phone='', notes='', now=None):
    """
    Public booking wrapped in the slot lock.

    Raises:
        LockHeld: another client is booking the same slot
    """
    hhmm = to_hhmm(to_minutes(time))
    day = parse_date(date)

    result = with_booking_lock(
        specialist_id, day, hhmm, client_id,
        lambda: create_public_appointment(
            specialist_id, service_id, day, hhmm, patient_name, patient_email,
            patient_phone=patient_phone, notes=notes, now=now,
        ),
        now=now,
    )
    if not result.success:
        raise LockHeld(result.error, existing_lock=result.existing_lock)
    return result.result


def _resolve_patient(patient_id=None, patient=None):
    if patient_id:
        try:
            return Patient.objects.get(pk=patient_id)
        except (Patient.DoesNotExist, ValueError, TypeError):
            raise NotFound('Patient not found')
    if patient and patient.get('email') and patient.get('name'):
        found, _ = Patient.find_or_create(patient['name'], patient['email'], patient.get('phone', ''))
        return found
    raise BookingError('A patient id or patient name and e-mail are required')


def _check_admin_slot(specialist_id, day, time, duration, exclude_appointment_id=None):
    closure = find_closure(specialist_id, day)
    if closure is not None:
        raise _closure_error(closure)

    overlapping = find_overlapping_appointments(specialist_id, day, time, duration, exclude_appointment_id)
    if overlapping:
        taken = ', '.join(f'{appointment.appointment_time:%H:%M}' for appointment in overlapping)
        raise SlotUnavailable(f'El horario se superpone con otro turno ({taken})')


def create_appointment_for_admin(specialist_id, service_id, date, time, patient_id=None, patient=None,
                                 duration_minutes=None, notes='', user=None, request=None):
    """Admin booking: any time of day, as long as no closure or other appointment is in the way"""
    specialist = get_specialist(specialist_id, active_only=False)
    try:
        service = Service.objects.get(pk=service_id)
    except (Service.DoesNotExist, ValueError, TypeError):
        raise NotFound('Service not found')
    day = parse_date(date)
    at_time = to_time(time)
    duration = int(duration_minutes or service.duration_minutes)
    if duration <= 0:
        raise BookingError('Duration must be positive')

    with transaction.atomic():
        lock_agenda(specialist.id)
        _check_admin_slot(specialist.id, day, at_time, duration)
        appointment = _insert_appointment(
            specialist=specialist,
            service=service,
            patient=_resolve_patient(patient_id, patient),
            appointment_date=day,
            appointment_time=at_time,
            duration_minutes=duration,
            notes=notes or '',
            status='scheduled',
        )
        AuditLog.log_action(user=user, action='create', model_instance=appointment, request=request)

    logger.info(f"Admin created appointment {appointment.id} for {day} {at_time:%H:%M}")
    return appointment


UPDATABLE_FIELDS = ('specialist_id', 'service_id', 'patient_id', 'appointment_date',
                    'appointment_time', 'duration_minutes', 'notes')


def update_appointment_for_admin(appointment_id, changes, user=None, request=None):
    """
    Apply admin edits; moving the appointment re-checks closures and overlap
    against every other appointment.
    """
    with transaction.atomic():
        appointment = get_appointment(appointment_id, for_update=True)
        before = {field: str(getattr(appointment, field)) for field in UPDATABLE_FIELDS}

        if 'specialist_id' in changes:
            appointment.specialist = get_specialist(changes['specialist_id'], active_only=False)
        if 'service_id' in changes and str(changes['service_id']) != str(appointment.service_id):
            try:
                appointment.service = Service.objects.get(pk=changes['service_id'])
            except (Service.DoesNotExist, ValueError, TypeError):
                raise NotFound('Service not found')
            if not changes.get('duration_minutes'):
                appointment.duration_minutes = appointment.service.duration_minutes
        if 'patient_id' in changes:
            appointment.patient = _resolve_patient(patient_id=changes['patient_id'])
        if 'appointment_date' in changes:
            appointment.appointment_date = parse_date(changes['appointment_date'])
        if 'appointment_time' in changes:
            appointment.appointment_time = to_time(changes['appointment_time'])
        if changes.get('duration_minutes'):
            appointment.duration_minutes = int(changes['duration_minutes'])
            if appointment.duration_minutes <= 0:
                raise BookingError('Duration must be positive')
        if 'notes' in changes:
            appointment.notes = changes['notes'] or ''

        after = {field: str(getattr(appointment, field)) for field in UPDATABLE_FIELDS}
        diff = {field: {'old': before[field], 'new': after[field]} for field in UPDATABLE_FIELDS
                if before[field] != after[field]}

        moved = any(field in diff for field in ('specialist_id', 'service_id', 'appointment_date',
                                                'appointment_time', 'duration_minutes'))
        if moved and appointment.blocks_time_slot:
            lock_agenda(appointment.specialist_id)
            _check_admin_slot(
                appointment.specialist_id, appointment.appointment_date, appointment.appointment_time,
                appointment.duration_minutes, exclude_appointment_id=appointment.id,
            )

        try:
            with transaction.atomic():
                appointment.save()
        except IntegrityError:
            raise SlotUnavailable()

        if diff:
            AuditLog.log_action(user=user, action='update', model_instance=appointment, changes=diff, request=request)

    return appointment


def update_appointment_status(appointment_id, new_status, user=None, request=None):
    """scheduled -> completed | cancelled; every other transition is rejected"""
    with transaction.atomic():
        appointment = get_appointment(appointment_id, for_update=True)
        old_status = appointment.status

        if not appointment.can_transition_to(new_status):
            raise InvalidStatusTransition(f'Cannot change status from {old_status} to {new_status}')

        appointment.status = new_status
        appointment.save(update_fields=['status', 'updated_at'])

        AuditLog.log_action(
            user=user,
            action='status_change',
            model_instance=appointment,
            changes={'old_status': old_status, 'new_status': new_status},
            request=request
        )

    logger.info(f"Appointment {appointment.id} status {old_status} -> {new_status}")
    return appointment


def delete_appointment(appointment_id, user=None, request=None):
    with transaction.atomic():
        appointment = get_appointment(appointment_id, for_update=True)
        AuditLog.log_action(
            user=user,
            action='delete',
            model_instance=appointment,
            changes={'appointment': appointment.to_dict()},
            request=request
        )
        appointment.delete()
    logger.info(f"Deleted appointment {appointment_id}")
    return True
