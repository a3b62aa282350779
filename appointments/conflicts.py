# appointments/conflicts.py
"""
Conflict validator for schedule edits and closures.

Every rule an appointment breaks produces its own ConflictRecord; the
report exposes the outcome as structured fields (``has_conflicts``,
``can_proceed``) and the recommendation text is only supplementary.
"""
import logging
from collections import namedtuple

from .exceptions import InvalidWindow, ScheduleConflictBlocked
from .models import Appointment
from .scheduling import Window
from .timeutils import contains, overlaps, parse_date, to_hhmm
from .availability import appointment_interval
from .utils import local_today

logger = logging.getLogger(__name__)

OUTSIDE_HOURS = 'outside_hours'
LUNCH_CONFLICT = 'lunch_conflict'
SERVICE_NOT_ALLOWED = 'service_not_allowed'
CLOSURE_OVERLAP = 'closure_overlap'

CONFLICT_TYPES = (OUTSIDE_HOURS, LUNCH_CONFLICT, SERVICE_NOT_ALLOWED, CLOSURE_OVERLAP)

CONFLICT_MESSAGES = {
    OUTSIDE_HOURS: 'El turno queda fuera del nuevo horario de atención',
    LUNCH_CONFLICT: 'El turno se superpone con el horario de almuerzo',
    SERVICE_NOT_ALLOWED: 'El servicio del turno ya no se ofrece ese día',
    CLOSURE_OVERLAP: 'El turno cae dentro del período de cierre',
}

# Fields every conflict carries; ``detail`` holds the rule-specific bounds
_COMMON_FIELDS = [
    'type', 'appointment_id', 'appointment_date', 'appointment_time', 'end_time',
    'duration_minutes', 'service_id', 'service_name', 'patient_name', 'patient_email',
    'detail',
]


class ConflictRecord(namedtuple('ConflictRecord', _COMMON_FIELDS)):
    """One (appointment, violated rule) pair"""
    __slots__ = ()

    @classmethod
    def for_appointment(cls, conflict_type, appointment, **detail):
        if conflict_type not in CONFLICT_TYPES:
            raise ValueError(f'Unknown conflict type: {conflict_type}')
        start, end = appointment_interval(appointment)
        return cls(
            type=conflict_type,
            appointment_id=appointment.id,
            appointment_date=appointment.appointment_date.strftime('%Y-%m-%d'),
            appointment_time=to_hhmm(start),
            end_time=to_hhmm(end) if end < 24 * 60 else '24:00',
            duration_minutes=appointment.duration_minutes,
            service_id=appointment.service_id,
            service_name=appointment.service.name,
            patient_name=appointment.patient.name,
            patient_email=appointment.patient.email,
            detail=detail,
        )

    @property
    def message(self):
        return CONFLICT_MESSAGES[self.type]

    def to_dict(self):
        data = self._asdict()
        detail = data.pop('detail')
        data.update(detail)
        data['message'] = self.message
        return data


class ValidationReport:
    """Outcome of validating a schedule edit or closure"""

    def __init__(self, conflicts, allow_override=True, subject='schedule', warnings=None):
        self.conflicts = list(conflicts)
        self.allow_override = allow_override
        self.subject = subject
        self.warnings = list(warnings or [])

    @property
    def has_conflicts(self):
        return bool(self.conflicts)

    @property
    def can_proceed(self):
        return not self.has_conflicts

    @property
    def affected_appointment_ids(self):
        seen = []
        for conflict in self.conflicts:
            if conflict.appointment_id not in seen:
                seen.append(conflict.appointment_id)
        return seen

    @property
    def affected_appointments_count(self):
        return len(self.affected_appointment_ids)

    def count_by_type(self):
        counts = {}
        for conflict in self.conflicts:
            counts[conflict.type] = counts.get(conflict.type, 0) + 1
        return counts

    @property
    def recommendation(self):
        if not self.has_conflicts:
            if self.subject == 'closure':
                return 'No hay turnos en el período; el cierre no afecta ningún turno.'
            return 'El cambio no afecta ningún turno existente. Podés continuar.'

        count = self.affected_appointments_count
        if self.subject == 'closure':
            return (
                f'Hay {count} turno(s) dentro del período de cierre. '
                'Reprogramá o cancelá esos turnos antes de crear el cierre.'
            )
        return (
            f'El cambio afecta {count} turno(s) ({len(self.conflicts)} conflicto(s)). '
            'Contactá a los pacientes afectados para reprogramar antes de confirmar.'
        )

    def to_dict(self):
        return {
            'has_conflicts': self.has_conflicts,
            'conflicts': [conflict.to_dict() for conflict in self.conflicts],
            'conflict_counts': self.count_by_type(),
            'affected_appointments_count': self.affected_appointments_count,
            'can_proceed': self.can_proceed,
            'allow_override': self.allow_override,
            'recommendation': self.recommendation,
            'warnings': self.warnings,
        }


def classify_appointment(appointment, window):
    """
    Conflicts an appointment would have under a proposed window.
    An appointment may break several rules and gets one record per rule.
    """
    start, end = appointment_interval(appointment)
    conflicts = []

    if not contains(window.start, window.end, start, end):
        conflicts.append(ConflictRecord.for_appointment(
            OUTSIDE_HOURS, appointment,
            new_start_time=to_hhmm(window.start),
            new_end_time=to_hhmm(window.end),
        ))

    if window.has_lunch and overlaps(start, end, window.lunch_start, window.lunch_end):
        conflicts.append(ConflictRecord.for_appointment(
            LUNCH_CONFLICT, appointment,
            lunch_start=to_hhmm(window.lunch_start),
            lunch_end=to_hhmm(window.lunch_end),
        ))

    if not window.allows_service(appointment.service_id):
        conflicts.append(ConflictRecord.for_appointment(
            SERVICE_NOT_ALLOWED, appointment,
            allowed_service_ids=sorted(window.allowed_service_ids),
        ))

    return conflicts


EMPTY_SERVICES_WARNING = (
    'La lista de servicios permitidos está vacía: ese día no se podrá reservar ningún servicio. '
    'Para permitir todos los servicios, dejá la lista sin definir (null).'
)


def _window_warnings(window):
    if window.allowed_service_ids is not None and not window.allowed_service_ids:
        return [EMPTY_SERVICES_WARNING]
    return []


def _proposed_window(new_start, new_end, new_lunch_start, new_lunch_end, new_allowed_service_ids):
    return Window(
        new_start, new_end, new_lunch_start, new_lunch_end, new_allowed_service_ids, source='proposal'
    ).validate()


def _scheduled(specialist_id):
    return (
        Appointment.objects
        .filter(specialist_id=specialist_id, status='scheduled')
        .select_related('patient', 'service')
        .order_by('appointment_date', 'appointment_time')
    )


def _classify_all(appointments, window):
    conflicts = []
    for appointment in appointments:
        conflicts.extend(classify_appointment(appointment, window))
    return conflicts


def validate_schedule_change(specialist_id, day_of_week, new_start, new_end,
                             new_lunch_start=None, new_lunch_end=None,
                             new_allowed_service_ids=None, today=None):
    """
    Scan every future scheduled appointment falling on ``day_of_week``
    (0 = Sunday) against the proposed weekly hours.

    Raises:
        InvalidWindow: the proposed hours or lunch are malformed
    """
    if day_of_week not in range(7):
        raise InvalidWindow(f'Invalid day of week: {day_of_week}')
    window = _proposed_window(new_start, new_end, new_lunch_start, new_lunch_end, new_allowed_service_ids)
    today = today or local_today()

    # Django's week_day lookup counts 1 = Sunday
    appointments = _scheduled(specialist_id).filter(
        appointment_date__gte=today,
        appointment_date__week_day=day_of_week + 1,
    )
    report = ValidationReport(_classify_all(appointments, window), allow_override=True,
                              warnings=_window_warnings(window))
    logger.info(
        f"Schedule change check for specialist {specialist_id}, day {day_of_week}: "
        f"{len(report.conflicts)} conflicts on {report.affected_appointments_count} appointments"
    )
    return report


def validate_exception_change(specialist_id, exception_date, new_start, new_end,
                              new_lunch_start=None, new_lunch_end=None,
                              new_allowed_service_ids=None):
    """Same rules as a weekly change, scoped to the appointments of one date"""
    day = parse_date(exception_date)
    window = _proposed_window(new_start, new_end, new_lunch_start, new_lunch_end, new_allowed_service_ids)

    appointments = _scheduled(specialist_id).filter(appointment_date=day)
    report = ValidationReport(_classify_all(appointments, window), allow_override=True,
                              warnings=_window_warnings(window))
    logger.info(
        f"Exception check for specialist {specialist_id} on {day}: {len(report.conflicts)} conflicts"
    )
    return report


def validate_closure(specialist_id, start_date, end_date):
    """
    Every non-cancelled appointment inside [start_date, end_date] conflicts.
    Closures can never be forced through.
    """
    start_day = parse_date(start_date)
    end_day = parse_date(end_date)
    if end_day < start_day:
        raise InvalidWindow('Closure end date must be on or after its start date')

    appointments = (
        Appointment.objects
        .filter(specialist_id=specialist_id, appointment_date__gte=start_day, appointment_date__lte=end_day)
        .exclude(status='cancelled')
        .select_related('patient', 'service')
        .order_by('appointment_date', 'appointment_time')
    )
    conflicts = [
        ConflictRecord.for_appointment(
            CLOSURE_OVERLAP, appointment,
            closure_start_date=start_day.strftime('%Y-%m-%d'),
            closure_end_date=end_day.strftime('%Y-%m-%d'),
        )
        for appointment in appointments
    ]
    report = ValidationReport(conflicts, allow_override=False, subject='closure')
    logger.info(
        f"Closure check for specialist {specialist_id} {start_day}..{end_day}: "
        f"{report.affected_appointments_count} appointments inside"
    )
    return report


def ensure_can_proceed(report, confirmed=False):
    """
    Gate for applying a validated change.

    Raises:
        ScheduleConflictBlocked: conflicts exist and the admin did not
            confirm, or the report does not allow an override
    """
    if not report.has_conflicts:
        return report
    if confirmed and report.allow_override:
        logger.warning(
            f"Proceeding with {len(report.conflicts)} acknowledged conflicts "
            f"on {report.affected_appointments_count} appointments"
        )
        return report
    raise ScheduleConflictBlocked(report)


def get_affected_appointments(report):
    """Appointment rows referenced by a report, in report order"""
    ids = report.affected_appointment_ids
    by_id = Appointment.objects.select_related('patient', 'service', 'specialist').in_bulk(ids)
    return [by_id[appointment_id] for appointment_id in ids if appointment_id in by_id]


def build_patient_notice(conflict):
    """Subject and body telling a patient their appointment is affected"""
    when = f"{conflict.appointment_date} a las {conflict.appointment_time}"
    reasons = {
        OUTSIDE_HOURS: 'cambió el horario de atención de ese día',
        LUNCH_CONFLICT: 'el horario del turno coincide con una pausa del profesional',
        SERVICE_NOT_ALLOWED: f'el servicio "{conflict.service_name}" ya no se ofrece ese día',
        CLOSURE_OVERLAP: 'el consultorio permanecerá cerrado en esa fecha',
    }
    message = (
        f"Hola {conflict.patient_name},\n\n"
        f"Tu turno de {conflict.service_name} del {when} se ve afectado porque "
        f"{reasons[conflict.type]}.\n"
        "Nos pondremos en contacto para reprogramarlo. "
        "Si preferís, respondé este correo para coordinar una nueva fecha.\n"
    )
    return {
        'appointment_id': conflict.appointment_id,
        'patient_name': conflict.patient_name,
        'patient_email': conflict.patient_email,
        'subject': f'Cambio en tu turno del {conflict.appointment_date}',
        'message': message,
    }
