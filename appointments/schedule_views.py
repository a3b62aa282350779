# appointments/schedule_views.py - Admin API for weekly schedules, exceptions, closures and locks
import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse

from core.decorators import staff_required
from core.http import (
    BadRequest, error_response, form_error_response, method_not_allowed, parse_json_body,
    scheduling_error_response,
)
from .conflicts import validate_closure, validate_exception_change, validate_schedule_change
from .exceptions import SchedulingError
from .forms import ClosureForm, ScheduleExceptionForm, WeeklyScheduleForm
from .locks import get_active_locks
from .models import Closure, ScheduleException, WorkSchedule
from .schedule_service import (
    apply_schedule_change, create_closure, delete_closure, delete_schedule_exception, get_notification_history,
    save_schedule_exception, update_closure,
)
from .timeutils import parse_date

logger = logging.getLogger(__name__)


def _bound_form(request, form_class):
    """Parse the JSON body into ``form_class``; returns (form, error_response)"""
    try:
        data = parse_json_body(request)
    except BadRequest as e:
        return None, error_response(str(e))
    form = form_class(data)
    if not form.is_valid():
        return None, form_error_response(form)
    return form, None


def _hours_args(cleaned):
    return (
        cleaned['start_time'],
        cleaned['end_time'],
        cleaned.get('lunch_start'),
        cleaned.get('lunch_end'),
        cleaned.get('allowed_service_ids'),
    )


# Weekly schedules

@staff_required
def schedules_api(request):
    """
    API ENDPOINT: Weekly schedules, optionally filtered by ?specialist_id=
    """
    if request.method != 'GET':
        return method_not_allowed()

    queryset = WorkSchedule.objects.select_related('specialist')
    if request.GET.get('specialist_id'):
        queryset = queryset.filter(specialist_id=request.GET['specialist_id'])
    if request.GET.get('include_inactive') != 'true':
        queryset = queryset.filter(is_active=True)
    return JsonResponse({'schedules': [schedule.to_dict() for schedule in queryset]})


@staff_required
def validate_schedule_api(request):
    """
    API ENDPOINT: Check which future appointments a weekly schedule change would affect
    """
    if request.method != 'POST':
        return method_not_allowed()

    form, error = _bound_form(request, WeeklyScheduleForm)
    if error:
        return error
    cleaned = form.cleaned_data

    try:
        report = validate_schedule_change(cleaned['specialist_id'], cleaned['day_of_week'], *_hours_args(cleaned))
    except SchedulingError as e:
        return scheduling_error_response(e)

    return JsonResponse({'success': True, 'validation': report.to_dict()})


@staff_required
def apply_schedule_api(request):
    """
    API ENDPOINT: Save a weekly schedule change; conflicts need "confirmed": true
    """
    if request.method != 'POST':
        return method_not_allowed()

    form, error = _bound_form(request, WeeklyScheduleForm)
    if error:
        return error
    cleaned = form.cleaned_data

    try:
        schedule, report = apply_schedule_change(
            cleaned['specialist_id'], cleaned['day_of_week'], *_hours_args(cleaned),
            confirmed=cleaned.get('confirmed', False),
            notify=cleaned.get('notify', False),
            user=request.user,
            request=request,
        )
    except SchedulingError as e:
        return scheduling_error_response(e)

    return JsonResponse({'success': True, 'schedule': schedule.to_dict(), 'validation': report.to_dict()})


# Date exceptions

@staff_required
def schedule_exceptions_api(request):
    """
    API ENDPOINT: List (GET) or save (POST) date-specific schedule exceptions
    """
    if request.method == 'GET':
        queryset = ScheduleException.objects.filter(is_active=True)
        try:
            if request.GET.get('specialist_id'):
                queryset = queryset.filter(specialist_id=request.GET['specialist_id'])
            if request.GET.get('from_date'):
                queryset = queryset.filter(exception_date__gte=parse_date(request.GET['from_date']))
        except SchedulingError as e:
            return scheduling_error_response(e)
        return JsonResponse({'exceptions': [exception.to_dict() for exception in queryset]})

    if request.method != 'POST':
        return method_not_allowed()

    form, error = _bound_form(request, ScheduleExceptionForm)
    if error:
        return error
    cleaned = form.cleaned_data

    try:
        exception, report = save_schedule_exception(
            cleaned['specialist_id'], cleaned['exception_date'], *_hours_args(cleaned),
            reason=cleaned.get('reason', ''),
            confirmed=cleaned.get('confirmed', False),
            notify=cleaned.get('notify', False),
            user=request.user,
            request=request,
        )
    except SchedulingError as e:
        return scheduling_error_response(e)

    return JsonResponse({'success': True, 'exception': exception.to_dict(), 'validation': report.to_dict()})


@staff_required
def validate_schedule_exception_api(request):
    """
    API ENDPOINT: Check which appointments of the date an exception would affect
    """
    if request.method != 'POST':
        return method_not_allowed()

    form, error = _bound_form(request, ScheduleExceptionForm)
    if error:
        return error
    cleaned = form.cleaned_data

    try:
        report = validate_exception_change(cleaned['specialist_id'], cleaned['exception_date'], *_hours_args(cleaned))
    except SchedulingError as e:
        return scheduling_error_response(e)

    return JsonResponse({'success': True, 'validation': report.to_dict()})


@staff_required
def schedule_exception_detail_api(request, pk):
    if request.method != 'DELETE':
        return method_not_allowed()
    try:
        delete_schedule_exception(pk, user=request.user, request=request)
    except SchedulingError as e:
        return scheduling_error_response(e)
    return JsonResponse({'success': True})


# Closures

@staff_required
def closures_api(request):
    """
    API ENDPOINT: List (GET) or create (POST) closures.
    Creation is refused with 409 while appointments remain inside the range.
    """
    if request.method == 'GET':
        queryset = Closure.objects.all()
        if request.GET.get('specialist_id'):
            queryset = queryset.filter(specialist_id=request.GET['specialist_id'])
        if request.GET.get('include_inactive') != 'true':
            queryset = queryset.filter(is_active=True)
        return JsonResponse({'closures': [closure.to_dict() for closure in queryset]})

    if request.method != 'POST':
        return method_not_allowed()

    form, error = _bound_form(request, ClosureForm)
    if error:
        return error
    cleaned = form.cleaned_data

    try:
        closure, report = create_closure(
            cleaned['specialist_id'],
            cleaned['start_date'],
            cleaned['end_date'],
            closure_type=cleaned['closure_type'],
            reason=cleaned.get('reason', ''),
            user=request.user,
            request=request,
        )
    except SchedulingError as e:
        return scheduling_error_response(e)

    return JsonResponse({'success': True, 'closure': closure.to_dict(), 'validation': report.to_dict()}, status=201)


@staff_required
def validate_closure_api(request):
    """
    API ENDPOINT: Appointments that would fall inside a proposed closure
    """
    if request.method != 'POST':
        return method_not_allowed()

    form, error = _bound_form(request, ClosureForm)
    if error:
        return error
    cleaned = form.cleaned_data

    try:
        report = validate_closure(cleaned['specialist_id'], cleaned['start_date'], cleaned['end_date'])
    except SchedulingError as e:
        return scheduling_error_response(e)

    return JsonResponse({'success': True, 'validation': report.to_dict()})


@staff_required
def closure_detail_api(request, pk):
    """
    API ENDPOINT: Edit (PUT/PATCH) or delete (DELETE) a closure
    """
    try:
        if request.method in ('PUT', 'PATCH'):
            try:
                data = parse_json_body(request)
            except BadRequest as e:
                return error_response(str(e))
            changes = {field: data[field] for field in data if field in (
                'start_date', 'end_date', 'closure_type', 'reason', 'is_active',
            )}
            closure, report = update_closure(pk, changes, user=request.user, request=request)
            return JsonResponse({
                'success': True,
                'closure': closure.to_dict(),
                'validation': report.to_dict() if report else None,
            })

        if request.method == 'DELETE':
            delete_closure(pk, user=request.user, request=request)
            return JsonResponse({'success': True})

    except SchedulingError as e:
        return scheduling_error_response(e)
    except ValidationError as e:
        return error_response("; ".join(e.messages), code="validation_error")

    return method_not_allowed()


# Locks

@staff_required
def locks_api(request):
    """
    API ENDPOINT: Booking locks currently held
    """
    if request.method != 'GET':
        return method_not_allowed()
    locks = get_active_locks(request.GET.get('specialist_id') or None)
    return JsonResponse({'locks': [lock.to_dict() for lock in locks]})


@staff_required
def notifications_api(request):
    """
    API ENDPOINT: Schedule-change notices, newest first (?specialist_id, ?appointment_id)
    """
    if request.method != 'GET':
        return method_not_allowed()
    notices = get_notification_history(
        specialist_id=request.GET.get('specialist_id') or None,
        appointment_id=request.GET.get('appointment_id') or None,
    )
    return JsonResponse({'notifications': [notice.to_dict() for notice in notices]})
