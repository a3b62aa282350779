# appointments/availability.py
"""
Availability engine.

``compute_available_slots`` is a pure function of a resolved window, a
service and the booked appointments of the day. Everything that needs
bookable times goes through it; nothing here is cached.
"""
import logging
from datetime import timedelta

from services.models import Service

from .exceptions import BookingError
from .models import Appointment
from .scheduling import Closed, resolve_schedule
from .timeutils import Interval, merge_intervals, overlaps, parse_date, to_hhmm, to_minutes, to_time
from .utils import BookingConfig, combine_local, public_booking_bounds

logger = logging.getLogger(__name__)


class _DefaultService:
    """Stand-in used when availability is requested without a service"""
    id = None

    def __init__(self, duration_minutes):
        self.duration_minutes = duration_minutes


def _field(item, name):
    if isinstance(item, dict):
        return item[name]
    return getattr(item, name)


def appointment_interval(appointment):
    """[time, time + duration) of an appointment row or dict"""
    start = to_minutes(_field(appointment, 'appointment_time'))
    return Interval(start, start + int(_field(appointment, 'duration_minutes')))


def occupied_intervals(window, existing_appointments):
    """Booked intervals plus the lunch break, merged"""
    intervals = [appointment_interval(appointment) for appointment in existing_appointments]
    if window.has_lunch:
        intervals.append(Interval(window.lunch_start, window.lunch_end))
    return merge_intervals(intervals)


def compute_available_slots(window, service, existing_appointments):
    """
    Bookable start times ("HH:MM", ascending) for ``service`` inside ``window``.

    Candidates start at the window start and step by the service duration;
    a candidate is kept when [t, t + duration) ends inside the window and
    overlaps neither lunch nor any booked interval. A closed window, an
    empty window or a service the window does not allow yields [].
    """
    if isinstance(window, Closed) or not window.is_open:
        return []

    if service.id is not None and not window.allows_service(service.id):
        return []

    duration = int(service.duration_minutes or 0)
    if duration <= 0:
        return []

    occupied = occupied_intervals(window, existing_appointments)

    slots = []
    start = window.start
    while start + duration <= window.end:
        end = start + duration
        if not any(overlaps(start, end, busy.start, busy.end) for busy in occupied):
            slots.append(to_hhmm(start))
        start += duration
    return slots


def booked_appointments(specialist_id, day, exclude_appointment_id=None):
    """Appointments occupying the agenda of a specialist on a date"""
    queryset = Appointment.objects.filter(
        specialist_id=specialist_id,
        appointment_date=day,
        status__in=Appointment.BLOCKING_STATUSES,
    )
    if exclude_appointment_id is not None:
        queryset = queryset.exclude(pk=exclude_appointment_id)
    return list(queryset.only('id', 'appointment_time', 'duration_minutes', 'service_id'))


def find_overlapping_appointments(specialist_id, day, start_time, duration_minutes, exclude_appointment_id=None):
    """Booked appointments whose interval overlaps [start_time, start_time + duration)"""
    start = to_minutes(start_time)
    end = start + duration_minutes
    return [
        appointment
        for appointment in booked_appointments(specialist_id, day, exclude_appointment_id)
        if overlaps(start, end, *appointment_interval(appointment))
    ]


def get_service(service_id):
    try:
        return Service.objects.get(pk=service_id, is_active=True)
    except (Service.DoesNotExist, ValueError, TypeError):
        raise BookingError('Service not found or inactive')


def get_available_times(specialist_id, date, service_id=None, allow_past=False, now=None):
    """
    Available times for a specialist on a date.

    Without ``service_id`` the configured default duration drives the stepping
    and the window's allowed-service list is not applied.

    Returns:
        dict: date, window, duration and ``available_times``
    """
    day = parse_date(date)

    if service_id in (None, ''):
        service = _DefaultService(BookingConfig.get_default_service_duration())
    else:
        service = get_service(service_id)

    window = resolve_schedule(specialist_id, day)
    result = {
        'date': day.strftime('%Y-%m-%d'),
        'specialist_id': specialist_id,
        'service_id': service.id,
        'duration_minutes': service.duration_minutes,
        'schedule': window.to_dict(),
        'available_times': [],
    }

    bounds = None
    if not allow_past:
        bounds = public_booking_bounds(now)
        if day < bounds.now.date():
            result['reason'] = 'past_date'
            return result
        if day > bounds.latest.date():
            result['reason'] = 'beyond_booking_horizon'
            return result

    if isinstance(window, Closed):
        result['reason'] = 'closed'
        return result

    slots = compute_available_slots(window, service, booked_appointments(specialist_id, day))
    if bounds is not None:
        slots = within_booking_bounds(day, slots, bounds)
    result['available_times'] = slots
    return result


def within_booking_bounds(day, slots, bounds):
    """Slots of ``day`` whose start lies strictly after now and inside the advance limits"""
    kept = []
    for slot in slots:
        start = combine_local(day, to_time(slot))
        if bounds.now < start and bounds.earliest <= start <= bounds.latest:
            kept.append(slot)
    return kept


def is_slot_available(specialist_id, date, time, service, exclude_appointment_id=None):
    """True if ``time`` is one of the computed slots for ``service`` on ``date``"""
    day = parse_date(date)
    window = resolve_schedule(specialist_id, day)
    existing = booked_appointments(specialist_id, day, exclude_appointment_id)
    return to_hhmm(to_minutes(time)) in compute_available_slots(window, service, existing)


def find_next_available_slot(specialist_id, service, from_date, days_ahead=None, after_time=None, bounds=None):
    """
    First bookable slot on or after ``from_date`` (strictly after ``after_time``
    on that first day), searching ``days_ahead`` days. With ``bounds`` only
    slots a public booking could take are considered.

    Returns:
        dict with ``date`` and ``time``, or None
    """
    start_day = parse_date(from_date)
    if days_ahead is None:
        days_ahead = BookingConfig.get_next_slot_search_days()
    threshold = to_minutes(after_time) if after_time is not None else None

    for offset in range(days_ahead + 1):
        day = start_day + timedelta(days=offset)
        if bounds is not None and day > bounds.latest.date():
            break
        window = resolve_schedule(specialist_id, day)
        if isinstance(window, Closed):
            continue

        slots = compute_available_slots(window, service, booked_appointments(specialist_id, day))
        if bounds is not None:
            slots = within_booking_bounds(day, slots, bounds)
        for slot in slots:
            if offset == 0 and threshold is not None and to_minutes(slot) <= threshold:
                continue
            return {'date': day.strftime('%Y-%m-%d'), 'time': slot}

    logger.info(f"No free slot for specialist {specialist_id} within {days_ahead} days of {start_day}")
    return None
