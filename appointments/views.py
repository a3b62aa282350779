# appointments/views.py - Admin appointment API
import logging

from django.http import JsonResponse

from core.decorators import staff_required
from core.http import (
    BadRequest, error_response, form_error_response, method_not_allowed, parse_json_body, require_fields,
    scheduling_error_response,
)
from .availability import get_available_times
from .booking import (
    create_appointment_for_admin, delete_appointment, get_appointment, update_appointment_for_admin,
    update_appointment_status,
)
from .exceptions import SchedulingError
from .forms import AdminAppointmentForm
from .models import Appointment
from .timeutils import parse_date

logger = logging.getLogger(__name__)


def _filtered_appointments(params):
    queryset = Appointment.objects.select_related('patient', 'service', 'specialist')

    if params.get('specialist_id'):
        queryset = queryset.filter(specialist_id=params['specialist_id'])
    if params.get('status'):
        queryset = queryset.filter(status=params['status'])
    if params.get('date'):
        queryset = queryset.filter(appointment_date=parse_date(params['date']))
    if params.get('start_date'):
        queryset = queryset.filter(appointment_date__gte=parse_date(params['start_date']))
    if params.get('end_date'):
        queryset = queryset.filter(appointment_date__lte=parse_date(params['end_date']))
    if params.get('patient_id'):
        queryset = queryset.filter(patient_id=params['patient_id'])

    return queryset.order_by('appointment_date', 'appointment_time')


@staff_required
def appointments_api(request):
    """
    API ENDPOINT: List (GET) or create (POST) appointments from the admin dashboard
    """
    if request.method == 'GET':
        try:
            appointments = _filtered_appointments(request.GET)
        except SchedulingError as e:
            return scheduling_error_response(e)
        return JsonResponse({'appointments': [appointment.to_dict() for appointment in appointments[:500]]})

    if request.method != 'POST':
        return method_not_allowed()

    try:
        data = parse_json_body(request)
    except BadRequest as e:
        return error_response(str(e))

    form = AdminAppointmentForm(data)
    if not form.is_valid():
        return form_error_response(form)
    cleaned = form.cleaned_data

    patient = None
    if not cleaned.get('patient_id'):
        patient = {
            'name': cleaned['patient_name'],
            'email': cleaned['patient_email'],
            'phone': cleaned.get('patient_phone', ''),
        }

    try:
        appointment = create_appointment_for_admin(
            cleaned['specialist_id'],
            cleaned['service_id'],
            cleaned['appointment_date'],
            cleaned['appointment_time'],
            patient_id=cleaned.get('patient_id'),
            patient=patient,
            duration_minutes=cleaned.get('duration_minutes'),
            notes=cleaned.get('notes', ''),
            user=request.user,
            request=request,
        )
    except SchedulingError as e:
        return scheduling_error_response(e)

    return JsonResponse({'success': True, 'appointment': appointment.to_dict()}, status=201)


@staff_required
def appointment_detail_api(request, pk):
    """
    API ENDPOINT: Retrieve (GET), edit (PUT/PATCH) or delete (DELETE) one appointment
    """
    try:
        if request.method == 'GET':
            return JsonResponse({'appointment': get_appointment(pk).to_dict()})

        if request.method in ('PUT', 'PATCH'):
            try:
                data = parse_json_body(request)
            except BadRequest as e:
                return error_response(str(e))
            changes = {field: data[field] for field in data if field in (
                'specialist_id', 'service_id', 'patient_id', 'appointment_date',
                'appointment_time', 'duration_minutes', 'notes',
            )}
            appointment = update_appointment_for_admin(pk, changes, user=request.user, request=request)
            return JsonResponse({'success': True, 'appointment': appointment.to_dict()})

        if request.method == 'DELETE':
            delete_appointment(pk, user=request.user, request=request)
            return JsonResponse({'success': True})

    except SchedulingError as e:
        return scheduling_error_response(e)
    except (TypeError, ValueError) as e:
        return error_response(f"Invalid value: {e}")

    return method_not_allowed()


@staff_required
def appointment_status_api(request, pk):
    """
    API ENDPOINT: Change the status of an appointment (scheduled -> completed | cancelled)
    """
    if request.method != 'POST':
        return method_not_allowed()

    try:
        data = parse_json_body(request)
        require_fields(data, 'status')
    except BadRequest as e:
        return error_response(str(e))

    try:
        appointment = update_appointment_status(pk, data['status'], user=request.user, request=request)
    except SchedulingError as e:
        return scheduling_error_response(e)

    return JsonResponse({'success': True, 'appointment': appointment.to_dict()})


@staff_required
def admin_available_times_api(request):
    """
    API ENDPOINT: Available times for the admin booking form (past dates allowed)
    """
    if request.method != 'GET':
        return method_not_allowed()

    try:
        require_fields(request.GET, 'specialist_id', 'date')
    except BadRequest as e:
        return error_response(str(e))

    try:
        result = get_available_times(
            request.GET['specialist_id'],
            request.GET['date'],
            request.GET.get('service_id'),
            allow_past=True,
        )
    except SchedulingError as e:
        return scheduling_error_response(e)

    return JsonResponse(result)
