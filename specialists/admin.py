# specialists/admin.py
from django.contrib import admin
from .models import Specialist


@admin.register(Specialist)
class SpecialistAdmin(admin.ModelAdmin):
    list_display = ['name', 'title', 'email', 'phone', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'email']
    readonly_fields = ['created_at', 'updated_at']
