# services/models.py
from django.db import models


class Service(models.Model):
    """Bookable treatment. Its duration drives slot stepping and occupied time."""
    name = models.CharField(max_length=150)
    description = models.TextField(blank=True)
    duration_minutes = models.PositiveIntegerField(default=45, help_text="Expected duration in minutes")
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(duration_minutes__gt=0),
                name='service_positive_duration'
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.duration_minutes} min)"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'duration_minutes': self.duration_minutes,
            'price': str(self.price),
        }
