# services/views.py
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from .catalog import ServiceCatalog


@require_GET
def service_list_api(request):
    """
    API ENDPOINT: Active services with their durations
    """
    return JsonResponse({'services': ServiceCatalog().active_services()})
