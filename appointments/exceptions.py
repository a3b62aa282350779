# appointments/exceptions.py
"""
Errors raised by the scheduling core.

Views translate these into JSON responses using ``code``; every error that
the UI renders carries the structured data it needs (conflict report,
existing lock, suggested slot).
"""


class SchedulingError(Exception):
    code = 'scheduling_error'

    def __init__(self, message=''):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'code': self.code, 'error': self.message}


class InvalidTimeFormat(SchedulingError):
    code = 'invalid_time_format'


class InvalidDateFormat(SchedulingError):
    code = 'invalid_date_format'


class InvalidWindow(SchedulingError):
    code = 'invalid_window'


class BookingError(SchedulingError):
    """Booking request that cannot be honoured (inactive service, closed date, ...)"""
    code = 'booking_error'


class InvalidStatusTransition(BookingError):
    code = 'invalid_status_transition'


class BookingTimeRejected(BookingError):
    """Requested start is past, inside the minimum advance or beyond the maximum advance"""
    code = 'booking_time_rejected'

    def __init__(self, message='', suggested_slot=None):
        super().__init__(message)
        self.suggested_slot = suggested_slot

    def to_dict(self):
        data = super().to_dict()
        data['suggested_slot'] = self.suggested_slot
        return data


class LockHeld(SchedulingError):
    """Another client is booking the same slot right now; retry later."""
    code = 'lock_held'

    def __init__(self, message='', existing_lock=None):
        super().__init__(message or 'Este horario está siendo reservado por otro usuario. Intenta en unos minutos.')
        self.existing_lock = existing_lock


class SlotUnavailable(SchedulingError):
    """The slot is taken; final for this request."""
    code = 'slot_unavailable'

    def __init__(self, message='', suggested_slot=None):
        super().__init__(message or 'El horario seleccionado ya no está disponible. Por favor elige otro horario.')
        self.suggested_slot = suggested_slot

    def to_dict(self):
        data = super().to_dict()
        data['suggested_slot'] = self.suggested_slot
        return data


class ScheduleConflictBlocked(SchedulingError):
    """A schedule edit or closure would orphan booked appointments."""
    code = 'schedule_conflict'

    def __init__(self, report, message=''):
        super().__init__(message or report.recommendation)
        self.report = report

    def to_dict(self):
        data = super().to_dict()
        data['validation'] = self.report.to_dict()
        return data


class NotFound(BookingError):
    code = 'not_found'
