# services/tests.py
from django.core.cache.backends.locmem import LocMemCache
from django.test import TestCase

from .catalog import ServiceCatalog
from .forms import ServiceForm
from .models import Service


class ServiceCatalogTests(TestCase):
    """The catalogue is served from the injected cache until invalidated"""

    def setUp(self):
        self.cache = LocMemCache('service-catalog-tests', {})
        self.cache.clear()
        self.addCleanup(self.cache.clear)
        self.catalog = ServiceCatalog(cache=self.cache, timeout=60)
        Service.objects.create(name='Peeling', duration_minutes=30, price=12000)
        Service.objects.create(name='Retirado', duration_minutes=30, price=1000, is_active=False)

    def test_lists_active_services(self):
        self.assertEqual([s['name'] for s in self.catalog.active_services()], ['Peeling'])

    def test_cached_until_invalidated(self):
        self.catalog.active_services()
        Service.objects.create(name='Limpieza facial', duration_minutes=45, price=15000)

        self.assertEqual(len(self.catalog.active_services()), 1)
        self.catalog.invalidate()
        self.assertEqual(len(self.catalog.active_services()), 2)


class ServiceFormTests(TestCase):

    def form(self, **overrides):
        data = {'name': 'Peeling', 'description': '', 'duration_minutes': 30, 'price': '12000', 'is_active': True}
        data.update(overrides)
        return ServiceForm(data)

    def test_valid(self):
        self.assertTrue(self.form().is_valid())

    def test_duration_rules(self):
        self.assertFalse(self.form(duration_minutes=10).is_valid())
        self.assertFalse(self.form(duration_minutes=32).is_valid())

    def test_negative_price(self):
        self.assertFalse(self.form(price='-1').is_valid())
