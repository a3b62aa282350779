# core/admin.py
from django.contrib import admin

from .models import AuditLog, SystemSetting


@admin.register(SystemSetting)
class SystemSettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'is_active', 'updated_at']
    list_editable = ['value', 'is_active']
    search_fields = ['key', 'description']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Read-only; entries are written by the booking and schedule services"""
    list_display = ['timestamp', 'action', 'model_name', 'object_id', 'object_repr', 'user', 'ip_address']
    list_filter = ['action', 'model_name']
    search_fields = ['object_id', 'object_repr', 'user__username']
    date_hierarchy = 'timestamp'

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
