# appointments/admin.py
from django.contrib import admin
from django.utils.html import format_html

from .models import Appointment, AppointmentLock, Closure, PatientNotification, ScheduleException, WorkSchedule


@admin.register(WorkSchedule)
class WorkScheduleAdmin(admin.ModelAdmin):
    list_display = ['specialist', 'day_of_week', 'working_hours_display', 'allowed_services_display', 'is_active']
    list_filter = ['specialist', 'day_of_week', 'is_active']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Day', {
            'fields': ('specialist', 'day_of_week', 'is_active')
        }),
        ('Hours', {
            'fields': ('start_time', 'end_time', 'lunch_start', 'lunch_end', 'allowed_service_ids')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ['collapse']
        }),
    )

    def allowed_services_display(self, obj):
        if obj.allowed_service_ids is None:
            return 'All'
        return ', '.join(str(service_id) for service_id in obj.allowed_service_ids) or 'None'
    allowed_services_display.short_description = 'Allowed Services'


@admin.register(ScheduleException)
class ScheduleExceptionAdmin(admin.ModelAdmin):
    list_display = ['specialist', 'exception_date', 'working_hours_display', 'reason', 'is_active']
    list_filter = ['specialist', 'is_active']
    date_hierarchy = 'exception_date'
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Closure)
class ClosureAdmin(admin.ModelAdmin):
    list_display = ['specialist', 'closure_type', 'start_date', 'end_date', 'reason', 'is_active']
    list_filter = ['closure_type', 'specialist', 'is_active']
    search_fields = ['reason']
    date_hierarchy = 'start_date'
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['patient', 'appointment_date', 'appointment_time', 'duration_minutes', 'service',
                    'specialist', 'status_badge']
    list_filter = ['status', 'specialist', 'service']
    search_fields = ['patient__name', 'patient__email', 'notes']
    readonly_fields = ['created_at', 'updated_at']
    date_hierarchy = 'appointment_date'
    list_select_related = ['patient', 'service', 'specialist']

    def status_badge(self, obj):
        colors = {'scheduled': 'green', 'completed': 'gray', 'cancelled': 'red'}
        return format_html('<span style="color: {};">{}</span>', colors.get(obj.status, 'black'),
                           obj.get_status_display())
    status_badge.short_description = 'Status'


@admin.register(AppointmentLock)
class AppointmentLockAdmin(admin.ModelAdmin):
    list_display = ['id', 'specialist', 'appointment_date', 'appointment_time', 'locked_by', 'expires_at']
    readonly_fields = ['id', 'locked_at']


@admin.register(PatientNotification)
class PatientNotificationAdmin(admin.ModelAdmin):
    list_display = ['appointment', 'conflict_type', 'recipient', 'sent', 'created_at']
    list_filter = ['sent', 'conflict_type']
    search_fields = ['recipient', 'subject']
    readonly_fields = ['created_at', 'updated_at']
