# core/http.py - small helpers shared by the JSON endpoints
import json

from django.http import JsonResponse


class BadRequest(Exception):
    """Malformed request payload"""


def parse_json_body(request):
    """Decode a JSON object body, raising BadRequest on anything else"""
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequest('Invalid JSON data')
    if not isinstance(data, dict):
        raise BadRequest('JSON body must be an object')
    return data


def require_fields(data, *fields):
    missing = [field for field in fields if data.get(field) in (None, '')]
    if missing:
        raise BadRequest(f'Missing required parameters: {", ".join(missing)}')


def error_response(message, status=400, code=None, **extra):
    payload = {'success': False, 'error': message}
    if code:
        payload['code'] = code
    payload.update(extra)
    return JsonResponse(payload, status=status)


def method_not_allowed():
    return JsonResponse({'error': 'Method not allowed'}, status=405)


def form_error_response(form, status=400):
    errors = {field: [str(error) for error in field_errors] for field, field_errors in form.errors.items()}
    first = next(iter(errors.values()), ['Invalid data'])[0]
    return error_response(first, status=status, code='validation_error', errors=errors)


STATUS_BY_ERROR_CODE = {
    'not_found': 404,
    'lock_held': 409,
    'slot_unavailable': 409,
    'schedule_conflict': 409,
}


def scheduling_error_response(error):
    """JSON response for an appointments.exceptions.SchedulingError"""
    payload = {'success': False}
    payload.update(error.to_dict())
    return JsonResponse(payload, status=STATUS_BY_ERROR_CODE.get(error.code, 400))
