# services/catalog.py
from django.conf import settings
from django.core.cache import caches

from .models import Service


class ServiceCatalog:
    """
    Cached listing of the active services.
    The cache backend and TTL are handed in by the caller; nothing in the
    scheduling core reads through this cache.
    """
    CACHE_KEY = 'services:active-catalog'

    def __init__(self, cache=None, timeout=None):
        self.cache = cache if cache is not None else caches['default']
        self.timeout = timeout if timeout is not None else settings.SERVICES_CACHE_SECONDS

    def active_services(self):
        services = self.cache.get(self.CACHE_KEY)
        if services is None:
            services = [service.to_dict() for service in Service.objects.filter(is_active=True).order_by('name')]
            self.cache.set(self.CACHE_KEY, services, self.timeout)
        return services

    def invalidate(self):
        self.cache.delete(self.CACHE_KEY)
