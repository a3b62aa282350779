#core/urls.py
from django.urls import path

from specialists.views import specialist_list_api
from services.views import service_list_api
from . import views

app_name = 'core'

urlpatterns = [
    path('specialists/', specialist_list_api, name='specialist_list'),
    path('services/', service_list_api, name='service_list'),
    path('available-times/', views.available_times_api, name='available_times'),
    path('appointments/', views.BookAppointmentView.as_view(), name='book_appointment'),
]
