# core/views.py - Public booking endpoints
import logging

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from appointments.availability import get_available_times
from appointments.booking import book_appointment
from appointments.exceptions import SchedulingError
from appointments.forms import BookingRequestForm
from appointments.locks import get_client_identifier
from .http import (
    BadRequest, error_response, form_error_response, parse_json_body, require_fields, scheduling_error_response,
)

logger = logging.getLogger(__name__)


@require_http_methods(["GET"])
def available_times_api(request):
    """
    API ENDPOINT: Bookable start times of a specialist for a date and service
    Used by the booking calendar
    """
    try:
        require_fields(request.GET, 'specialist_id', 'date')
    except BadRequest as e:
        return error_response(str(e))

    try:
        result = get_available_times(
            request.GET['specialist_id'],
            request.GET['date'],
            request.GET.get('service_id'),
        )
    except SchedulingError as e:
        return scheduling_error_response(e)

    return JsonResponse(result)


@method_decorator(csrf_exempt, name='dispatch')
class BookAppointmentView(View):
    """
    PUBLIC VIEW: Book an appointment on one of the computed slots
    """
    http_method_names = ['post']

    def post(self, request, *args, **kwargs):
        try:
            data = parse_json_body(request)
        except BadRequest as e:
            return error_response(str(e))

        form = BookingRequestForm(data)
        if not form.is_valid():
            return form_error_response(form)
        cleaned = form.cleaned_data

        try:
            appointment = book_appointment(
                get_client_identifier(request),
                cleaned['specialist_id'],
                cleaned['service_id'],
                cleaned['appointment_date'],
                cleaned['appointment_time'],
                patient_name=cleaned['name'],
                patient_email=cleaned['email'],
                patient_phone=cleaned['phone'],
                notes=cleaned.get('notes', ''),
            )
        except SchedulingError as e:
            logger.info(f"Public booking rejected ({e.code}): {e.message}")
            return scheduling_error_response(e)
        except Exception as e:
            logger.error(f'Error in BookAppointmentView: {str(e)}', exc_info=True)
            return JsonResponse({
                'success': False,
                'error': 'An unexpected error occurred. Please try again.'
            }, status=500)

        return JsonResponse({
            'success': True,
            'reference_number': f'TRN-{appointment.id:06d}',
            'appointment': appointment.to_dict(),
        }, status=201)
