# services/admin.py
from django.contrib import admin
from .catalog import ServiceCatalog
from .forms import ServiceForm
from .models import Service


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    form = ServiceForm
    list_display = ['name', 'price', 'duration_minutes', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'description']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'description')
        }),
        ('Pricing & Duration', {
            'fields': ('price', 'duration_minutes')
        }),
        ('Status', {
            'fields': ('is_active',)
        }),
        ('System Information', {
            'fields': ('created_at', 'updated_at'),
            'classes': ['collapse']
        }),
    )

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        ServiceCatalog().invalidate()

    def delete_model(self, request, obj):
        super().delete_model(request, obj)
        ServiceCatalog().invalidate()
