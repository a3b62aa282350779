# core/models.py - Settings table and audit trail for the booking studio
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

TRUE_VALUES = ('true', '1', 'yes', 'on')


def get_client_ip(request):
    """First hop of X-Forwarded-For, else REMOTE_ADDR"""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return request.META.get('REMOTE_ADDR') or None


class SystemSetting(models.Model):
    """
    Booking knobs editable from the admin without a deploy.
    Inactive rows are ignored and the caller's default applies.
    """
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Booking Setting'
        verbose_name_plural = 'Booking Settings'
        ordering = ['key']

    def __str__(self):
        return f"{self.key}={self.value}"

    @classmethod
    def get_setting(cls, key, default=None):
        value = cls.objects.filter(key=key, is_active=True).values_list('value', flat=True).first()
        return default if value is None else value

    @classmethod
    def get_int_setting(cls, key, default=0):
        try:
            return int(cls.get_setting(key, default))
        except (TypeError, ValueError):
            return default

    @classmethod
    def get_bool_setting(cls, key, default=False):
        value = cls.get_setting(key)
        if value is None:
            return default
        return value.strip().lower() in TRUE_VALUES

    @classmethod
    def set_setting(cls, key, value, description=''):
        defaults = {'value': str(value), 'is_active': True}
        if description:
            defaults['description'] = description
        setting, _ = cls.objects.update_or_create(key=key, defaults=defaults)
        return setting


class AuditLog(models.Model):
    """Who changed which appointment, schedule or closure, and how"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Change'),
        ('schedule_change', 'Schedule Change'),
        ('closure', 'Closure'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=50)
    object_id = models.CharField(max_length=64, blank=True)
    object_repr = models.CharField(max_length=200, blank=True)
    changes = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['model_name', 'object_id'], name='audit_object_idx'),
            models.Index(fields=['action', 'timestamp'], name='audit_action_ts_idx'),
        ]

    def __str__(self):
        who = self.user or 'system'
        return f"[{self.timestamp:%Y-%m-%d %H:%M}] {who}: {self.action} {self.model_name}#{self.object_id}"

    @classmethod
    def log_action(cls, user, action, model_instance, changes=None, request=None):
        """Record one admin action; anonymous or missing users are stored as system"""
        if user is not None and not user.is_authenticated:
            user = None

        return cls.objects.create(
            user=user,
            action=action,
            model_name=model_instance._meta.model_name,
            object_id=str(model_instance.pk or ''),
            object_repr=str(model_instance)[:200],
            changes=changes or {},
            ip_address=get_client_ip(request) if request is not None else None,
        )
