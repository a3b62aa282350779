# patients/views.py
from django.db.models import Q
from django.http import JsonResponse

from core.decorators import staff_required
from core.http import BadRequest, error_response, method_not_allowed, parse_json_body
from .forms import PatientInfoForm
from .models import Patient


@staff_required
def patients_api(request):
    """
    API ENDPOINT: List (GET, optional ?search=) or register (POST) patients
    """
    if request.method == 'GET':
        queryset = Patient.objects.all()
        search = request.GET.get('search')
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=search)
            )
        return JsonResponse({'patients': [patient.to_dict() for patient in queryset.order_by('name')[:200]]})

    if request.method == 'POST':
        try:
            data = parse_json_body(request)
        except BadRequest as e:
            return error_response(str(e))

        form = PatientInfoForm(data)
        if not form.is_valid():
            return error_response('Invalid patient data', errors=form.errors.get_json_data())

        patient, created = Patient.find_or_create(**form.cleaned_data)
        return JsonResponse({'success': True, 'created': created, 'patient': patient.to_dict()},
                            status=201 if created else 200)

    return method_not_allowed()
