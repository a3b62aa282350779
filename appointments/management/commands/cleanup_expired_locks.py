# appointments/management/commands/cleanup_expired_locks.py
from django.core.management.base import BaseCommand

from appointments.locks import cleanup_expired_locks, get_active_locks


class Command(BaseCommand):
    help = 'Delete booking locks whose expiry has passed (run periodically, e.g. from cron)'

    def handle(self, *args, **options):
        deleted = cleanup_expired_locks()
        remaining = get_active_locks().count()
        self.stdout.write(
            self.style.SUCCESS(f'Removed {deleted} expired locks; {remaining} still active')
        )
