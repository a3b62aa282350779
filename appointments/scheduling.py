# appointments/scheduling.py
"""
Schedule resolution: which hours govern a specialist on a calendar date.

Precedence is strict and never merged:
    active closure > active exception for the exact date > active weekly schedule > closed
"""
import logging
from collections import namedtuple

from specialists.models import Specialist

from .exceptions import InvalidWindow
from .models import Closure, ScheduleException, WorkSchedule
from .timeutils import day_of_week, parse_date, to_hhmm, to_minutes

logger = logging.getLogger(__name__)

NO_SCHEDULE_REASON = 'no schedule configured'


def _optional_minutes(value):
    if value is None or value == '':
        return None
    return to_minutes(value)


def normalize_service_ids(service_ids):
    """None stays None (all allowed); anything else becomes a frozenset of strings"""
    if service_ids is None:
        return None
    return frozenset(str(service_id) for service_id in service_ids)


class Closed(namedtuple('Closed', ['reason', 'closure_id'])):
    """No booking possible on the date"""
    __slots__ = ()

    is_open = False

    def __new__(cls, reason=NO_SCHEDULE_REASON, closure_id=None):
        return super().__new__(cls, reason, closure_id)

    def to_dict(self):
        return {'is_open': False, 'reason': self.reason, 'closure_id': self.closure_id}


class Window(namedtuple('Window', ['start', 'end', 'lunch_start', 'lunch_end', 'allowed_service_ids', 'source'])):
    """
    Effective working window of a day, in minutes since midnight.
    ``allowed_service_ids`` is None when every service is allowed.
    """
    __slots__ = ()

    def __new__(cls, start, end, lunch_start=None, lunch_end=None, allowed_service_ids=None, source='weekly'):
        return super().__new__(
            cls,
            to_minutes(start) if not isinstance(start, int) else start,
            to_minutes(end) if not isinstance(end, int) else end,
            _optional_minutes(lunch_start) if not isinstance(lunch_start, int) else lunch_start,
            _optional_minutes(lunch_end) if not isinstance(lunch_end, int) else lunch_end,
            normalize_service_ids(allowed_service_ids),
            source,
        )

    @classmethod
    def from_row(cls, row, source='weekly'):
        """Build from a WorkSchedule or ScheduleException row"""
        return cls(
            row.start_time,
            row.end_time,
            row.lunch_start,
            row.lunch_end,
            row.allowed_service_ids,
            source,
        )

    @property
    def is_open(self):
        return self.start < self.end

    @property
    def has_lunch(self):
        return self.lunch_start is not None and self.lunch_end is not None

    def allows_service(self, service_id):
        # An empty list allows nothing
        if self.allowed_service_ids is None:
            return True
        return str(service_id) in self.allowed_service_ids

    def validate(self):
        """Raise InvalidWindow unless start < end and lunch sits inside the hours"""
        if self.start >= self.end:
            raise InvalidWindow(f'Start time {to_hhmm(self.start)} must be before end time {to_hhmm(self.end)}')
        if (self.lunch_start is None) != (self.lunch_end is None):
            raise InvalidWindow('Lunch break needs both a start and an end time')
        if self.has_lunch:
            if self.lunch_start >= self.lunch_end:
                raise InvalidWindow('Lunch start must be before lunch end')
            if self.lunch_start < self.start or self.lunch_end > self.end:
                raise InvalidWindow('Lunch break must be within working hours')
        return self

    def to_dict(self):
        return {
            'is_open': self.is_open,
            'source': self.source,
            'start_time': to_hhmm(self.start),
            'end_time': to_hhmm(self.end),
            'lunch_start': to_hhmm(self.lunch_start) if self.lunch_start is not None else None,
            'lunch_end': to_hhmm(self.lunch_end) if self.lunch_end is not None else None,
            'allowed_service_ids': sorted(self.allowed_service_ids) if self.allowed_service_ids is not None else None,
        }


def lock_agenda(specialist_id):
    """
    Row-lock the specialist so closures and bookings of the same agenda
    serialise. Must be called inside ``transaction.atomic()``.
    """
    list(Specialist.objects.select_for_update().filter(pk=specialist_id).values_list('pk', flat=True))


def find_closure(specialist_id, day):
    return (
        Closure.objects
        .filter(specialist_id=specialist_id, is_active=True, start_date__lte=day, end_date__gte=day)
        .order_by('start_date', 'id')
        .first()
    )


def resolve_schedule(specialist_id, date):
    """
    Resolve the effective schedule of a specialist for one calendar date.

    Returns:
        Closed or Window
    """
    day = parse_date(date)

    closure = find_closure(specialist_id, day)
    if closure is not None:
        return Closed(closure.reason or closure.get_closure_type_display(), closure.id)

    exception = (
        ScheduleException.objects
        .filter(specialist_id=specialist_id, exception_date=day, is_active=True)
        .order_by('-updated_at', '-id')
        .first()
    )
    if exception is not None:
        return Window.from_row(exception, source='exception')

    schedule = (
        WorkSchedule.objects
        .filter(specialist_id=specialist_id, day_of_week=day_of_week(day), is_active=True)
        .order_by('-updated_at', '-id')
        .first()
    )
    if schedule is not None:
        return Window.from_row(schedule, source='weekly')

    logger.debug(f"No schedule for specialist {specialist_id} on {day}")
    return Closed()
