# core/management/commands/setup_booking_settings.py
from django.core.management.base import BaseCommand
from core.models import SystemSetting
from appointments.utils import BookingConfig


class Command(BaseCommand):
    help = 'Setup default system settings for online booking'

    def add_arguments(self, parser):
        parser.add_argument(
            '--reset',
            action='store_true',
            help='Overwrite existing values with the defaults'
        )

    def handle(self, *args, **options):
        reset = options['reset']
        created_count = 0
        updated_count = 0

        for key, value, description in BookingConfig.SETTING_DEFINITIONS:
            setting, created = SystemSetting.objects.get_or_create(
                key=key,
                defaults={
                    'value': value,
                    'description': description
                }
            )

            if created:
                created_count += 1
                self.stdout.write(
                    self.style.SUCCESS(f'Created setting: {setting.key} = {setting.value}')
                )
            elif reset or setting.description != description:
                if reset:
                    setting.value = value
                setting.description = description
                setting.is_active = True
                setting.save()
                updated_count += 1
                self.stdout.write(f'Updated setting: {setting.key} = {setting.value}')
            else:
                self.stdout.write(f'Setting exists: {setting.key} = {setting.value}')

        self.stdout.write(
            self.style.SUCCESS(
                f'\nCompleted: {created_count} settings created, {updated_count} updated'
            )
        )
