#appointments/urls.py
from django.urls import path

from patients.views import patients_api
from . import views, schedule_views

app_name = 'appointments'

urlpatterns = [
    # Appointments
    path('appointments/', views.appointments_api, name='appointments'),
    path('appointments/<int:pk>/', views.appointment_detail_api, name='appointment_detail'),
    path('appointments/<int:pk>/status/', views.appointment_status_api, name='appointment_status'),
    path('available-times/', views.admin_available_times_api, name='available_times'),

    # Weekly schedules
    path('schedules/', schedule_views.schedules_api, name='schedules'),
    path('schedules/validate/', schedule_views.validate_schedule_api, name='validate_schedule'),
    path('schedules/apply/', schedule_views.apply_schedule_api, name='apply_schedule'),

    # Date exceptions
    path('schedule-exceptions/', schedule_views.schedule_exceptions_api, name='schedule_exceptions'),
    path('schedule-exceptions/validate/', schedule_views.validate_schedule_exception_api, name='validate_schedule_exception'),
    path('schedule-exceptions/<int:pk>/', schedule_views.schedule_exception_detail_api, name='schedule_exception_detail'),

    # Closures
    path('closures/', schedule_views.closures_api, name='closures'),
    path('closures/validate/', schedule_views.validate_closure_api, name='validate_closure'),
    path('closures/<int:pk>/', schedule_views.closure_detail_api, name='closure_detail'),

    # Locks, notices and patients
    path('locks/', schedule_views.locks_api, name='locks'),
    path('notifications/', schedule_views.notifications_api, name='notifications'),
    path('patients/', patients_api, name='patients'),
]
