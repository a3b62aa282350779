# specialists/views.py
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from .models import Specialist


@require_GET
def specialist_list_api(request):
    """
    API ENDPOINT: Active specialists for the booking flow
    """
    specialists = Specialist.objects.filter(is_active=True).order_by('name')
    return JsonResponse({'specialists': [specialist.to_dict() for specialist in specialists]})
