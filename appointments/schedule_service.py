# appointments/schedule_service.py
"""
Admin-side writes to the agenda: weekly schedules, date exceptions and
closures. Each write is gated by the conflict validator.
"""
import hashlib
import json
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from core.models import AuditLog

from .conflicts import (
    build_patient_notice, ensure_can_proceed, validate_closure, validate_exception_change,
    validate_schedule_change,
)
from .exceptions import NotFound
from .models import Closure, PatientNotification, ScheduleException, WorkSchedule
from .notifications import send_schedule_change_notice
from .scheduling import lock_agenda
from .timeutils import parse_date, to_time

logger = logging.getLogger(__name__)


def _optional_time(value):
    return to_time(value) if value not in (None, '') else None


def _hours_fields(start_time, end_time, lunch_start, lunch_end, allowed_service_ids):
    return {
        'start_time': to_time(start_time),
        'end_time': to_time(end_time),
        'lunch_start': _optional_time(lunch_start),
        'lunch_end': _optional_time(lunch_end),
        'allowed_service_ids': list(allowed_service_ids) if allowed_service_ids is not None else None,
        'is_active': True,
    }


def _upsert(queryset, model, lookup, fields):
    """Update the newest matching active row or create one"""
    instance = queryset.filter(**lookup, is_active=True).order_by('-updated_at', '-id').first()
    created = instance is None
    if created:
        instance = model(**lookup)
    for name, value in fields.items():
        setattr(instance, name, value)
    instance.clean()
    instance.save()
    return instance, created


def change_fingerprint(kind, target, fields):
    """Stable key of one applied schedule change"""
    payload = json.dumps({'kind': kind, 'target': str(target), 'fields': fields}, sort_keys=True,
                         cls=DjangoJSONEncoder)
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()[:32]


def was_patient_notified(appointment_id, change_key=None):
    """True once a notice for the appointment (and this change, if given) went out"""
    notices = PatientNotification.objects.filter(appointment_id=appointment_id, sent=True)
    if change_key is not None:
        notices = notices.filter(change_key=change_key)
    return notices.exists()


def get_notification_history(specialist_id=None, appointment_id=None, limit=100):
    notices = PatientNotification.objects.select_related('appointment')
    if specialist_id is not None:
        notices = notices.filter(appointment__specialist_id=specialist_id)
    if appointment_id is not None:
        notices = notices.filter(appointment_id=appointment_id)
    return notices.order_by('-created_at', '-id')[:limit]


def notify_affected_patients(report, change_key):
    """
    E-mail every patient with an affected appointment once per change.
    Failed sends are recorded and retried the next time the change is applied.

    Returns:
        int: notices successfully sent
    """
    sent = skipped = 0
    handled = set()
    for conflict in report.conflicts:
        if conflict.appointment_id in handled:
            continue
        handled.add(conflict.appointment_id)
        if was_patient_notified(conflict.appointment_id, change_key):
            skipped += 1
            continue

        notice = build_patient_notice(conflict)
        delivered = send_schedule_change_notice(notice)
        PatientNotification.objects.update_or_create(
            appointment_id=conflict.appointment_id,
            change_key=change_key,
            defaults={
                'conflict_type': conflict.type,
                'recipient': notice['patient_email'] or '',
                'subject': notice['subject'][:200],
                'sent': delivered,
            },
        )
        if delivered:
            sent += 1
    logger.info(f"Schedule change notices sent: {sent}/{len(handled)} ({skipped} already notified)")
    return sent


def apply_schedule_change(specialist_id, day_of_week, start_time, end_time, lunch_start=None, lunch_end=None,
                          allowed_service_ids=None, confirmed=False, notify=False, user=None, request=None,
                          today=None):
    """
    Validate and save the weekly hours of one day.

    Returns:
        tuple: (schedule, report)

    Raises:
        ScheduleConflictBlocked: conflicts found and ``confirmed`` is false
    """
    report = validate_schedule_change(
        specialist_id, day_of_week, start_time, end_time, lunch_start, lunch_end, allowed_service_ids,
        today=today,
    )
    ensure_can_proceed(report, confirmed)

    with transaction.atomic():
        schedule, created = _upsert(
            WorkSchedule.objects, WorkSchedule,
            {'specialist_id': specialist_id, 'day_of_week': day_of_week},
            _hours_fields(start_time, end_time, lunch_start, lunch_end, allowed_service_ids),
        )
        AuditLog.log_action(
            user=user,
            action='schedule_change',
            model_instance=schedule,
            changes={
                'schedule': schedule.to_dict(),
                'created': created,
                'acknowledged_conflicts': len(report.conflicts),
            },
            request=request
        )

    if notify and report.has_conflicts:
        change_key = change_fingerprint('schedule', f'{specialist_id}:{day_of_week}', schedule.hours_dict())
        notify_affected_patients(report, change_key)
    return schedule, report


def save_schedule_exception(specialist_id, exception_date, start_time, end_time, lunch_start=None,
                            lunch_end=None, allowed_service_ids=None, reason='', confirmed=False,
                            notify=False, user=None, request=None):
    """Validate and save the replacement hours of one date"""
    day = parse_date(exception_date)
    report = validate_exception_change(
        specialist_id, day, start_time, end_time, lunch_start, lunch_end, allowed_service_ids
    )
    ensure_can_proceed(report, confirmed)

    fields = _hours_fields(start_time, end_time, lunch_start, lunch_end, allowed_service_ids)
    fields['reason'] = reason or ''
    with transaction.atomic():
        exception, created = _upsert(
            ScheduleException.objects, ScheduleException,
            {'specialist_id': specialist_id, 'exception_date': day},
            fields,
        )
        AuditLog.log_action(
            user=user,
            action='schedule_change',
            model_instance=exception,
            changes={'exception': exception.to_dict(), 'created': created},
            request=request
        )

    if notify and report.has_conflicts:
        change_key = change_fingerprint('exception', f'{specialist_id}:{day}', exception.hours_dict())
        notify_affected_patients(report, change_key)
    return exception, report


def delete_schedule_exception(exception_id, user=None, request=None):
    with transaction.atomic():
        try:
            exception = ScheduleException.objects.select_for_update().get(pk=exception_id)
        except (ScheduleException.DoesNotExist, ValueError, TypeError):
            raise NotFound('Schedule exception not found')
        AuditLog.log_action(user=user, action='delete', model_instance=exception,
                            changes={'exception': exception.to_dict()}, request=request)
        exception.delete()


def create_closure(specialist_id, start_date, end_date, closure_type='other', reason='', user=None, request=None):
    """
    Create a closure. Blocked while any appointment remains inside the range.

    Returns:
        tuple: (closure, report)
    """
    closure = Closure(
        specialist_id=specialist_id,
        closure_type=closure_type or 'other',
        start_date=parse_date(start_date),
        end_date=parse_date(end_date),
        reason=reason or '',
    )
    with transaction.atomic():
        # Validation and insert share the agenda lock taken by bookings
        lock_agenda(specialist_id)
        report = validate_closure(specialist_id, start_date, end_date)
        ensure_can_proceed(report, confirmed=False)
        closure.full_clean()
        closure.save()
        AuditLog.log_action(user=user, action='closure', model_instance=closure,
                            changes={'closure': closure.to_dict()}, request=request)

    logger.info(f"Closure {closure.id} created for specialist {specialist_id} {start_date}..{end_date}")
    return closure, report


def get_closure(closure_id):
    try:
        return Closure.objects.get(pk=closure_id)
    except (Closure.DoesNotExist, ValueError, TypeError):
        raise NotFound('Closure not found')


def update_closure(closure_id, changes, user=None, request=None):
    """Edit a closure; an active closure's new range is validated like a new one"""
    closure = get_closure(closure_id)
    before = closure.to_dict()

    if 'start_date' in changes:
        closure.start_date = parse_date(changes['start_date'])
    if 'end_date' in changes:
        closure.end_date = parse_date(changes['end_date'])
    for field in ('closure_type', 'reason', 'is_active'):
        if field in changes:
            setattr(closure, field, changes[field])

    report = None
    with transaction.atomic():
        if closure.is_active:
            lock_agenda(closure.specialist_id)
            report = validate_closure(closure.specialist_id, closure.start_date, closure.end_date)
            ensure_can_proceed(report, confirmed=False)
        closure.full_clean()
        closure.save()
        AuditLog.log_action(user=user, action='closure', model_instance=closure,
                            changes={'old': before, 'new': closure.to_dict()}, request=request)
    return closure, report


def delete_closure(closure_id, user=None, request=None):
    closure = get_closure(closure_id)
    with transaction.atomic():
        AuditLog.log_action(user=user, action='delete', model_instance=closure,
                            changes={'closure': closure.to_dict()}, request=request)
        closure.delete()
