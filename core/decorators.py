# core/decorators.py
from functools import wraps

from django.http import JsonResponse


def staff_required(view_func):
    """
    JSON counterpart of login_required for the admin API:
    anonymous users get 401, authenticated non-staff users get 403
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'error': 'Authentication required'}, status=401)
        if not request.user.is_staff:
            return JsonResponse({'error': 'You do not have permission to perform this action.'}, status=403)
        return view_func(request, *args, **kwargs)
    return wrapper
