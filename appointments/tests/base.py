# appointments/tests/base.py
from datetime import time, timedelta

from appointments.models import Appointment, Closure, ScheduleException, WorkSchedule
from appointments.timeutils import weekday_dates
from appointments.utils import local_today
from patients.models import Patient
from services.models import Service
from specialists.models import Specialist

MONDAY = 1


def upcoming(day_of_week, weeks_ahead=1):
    """A date on ``day_of_week`` at least ``weeks_ahead`` weeks from today"""
    return weekday_dates(day_of_week, local_today() + timedelta(weeks=weeks_ahead), 1)[0]


def past(day_of_week, weeks_back=2):
    return weekday_dates(day_of_week, local_today() - timedelta(weeks=weeks_back), 1)[0]


class BookingFixtures:
    """Specialist, services and patient shared by the scheduling tests"""

    def setUp(self):
        self.specialist = Specialist.objects.create(name='Lucía Fernández', title='Cosmiatra')
        self.other_specialist = Specialist.objects.create(name='Martín Sosa', title='Dermatólogo')

        self.facial = Service.objects.create(name='Limpieza facial', duration_minutes=45, price=15000)
        self.peeling = Service.objects.create(name='Peeling', duration_minutes=30, price=12000)
        self.laser = Service.objects.create(name='Depilación láser', duration_minutes=60, price=25000)

        self.patient = Patient.objects.create(name='Ana Gómez', email='ana@example.com', phone='1155551234')

        self.monday = upcoming(MONDAY)

    def make_schedule(self, day_of_week=MONDAY, start=time(9, 0), end=time(18, 0), lunch_start=None,
                      lunch_end=None, allowed_service_ids=None, specialist=None):
        return WorkSchedule.objects.create(
            specialist=specialist or self.specialist,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
            lunch_start=lunch_start,
            lunch_end=lunch_end,
            allowed_service_ids=allowed_service_ids,
        )

    def make_exception(self, exception_date, start=time(10, 0), end=time(14, 0), lunch_start=None,
                       lunch_end=None, allowed_service_ids=None):
        return ScheduleException.objects.create(
            specialist=self.specialist,
            exception_date=exception_date,
            start_time=start,
            end_time=end,
            lunch_start=lunch_start,
            lunch_end=lunch_end,
            allowed_service_ids=allowed_service_ids,
        )

    def make_closure(self, start_date, end_date, reason='Vacaciones de invierno'):
        return Closure.objects.create(
            specialist=self.specialist,
            closure_type='vacation',
            start_date=start_date,
            end_date=end_date,
            reason=reason,
        )

    def make_appointment(self, appointment_date, appointment_time, service=None, status='scheduled',
                         duration_minutes=None, patient=None, specialist=None):
        service = service or self.facial
        return Appointment.objects.create(
            specialist=specialist or self.specialist,
            service=service,
            patient=patient or self.patient,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            duration_minutes=duration_minutes or service.duration_minutes,
            status=status,
        )
