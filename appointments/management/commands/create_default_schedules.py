# appointments/management/commands/create_default_schedules.py
from datetime import time

from django.core.management.base import BaseCommand
from django.db import transaction

from appointments.models import WorkSchedule
from specialists.models import Specialist


class Command(BaseCommand):
    help = 'Create default weekly schedules (Monday to Friday) for active specialists'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Overwrite the hours of existing active schedules',
        )
        parser.add_argument(
            '--specialist',
            type=int,
            help='Create the schedule for this specialist ID only',
        )

    def handle(self, *args, **options):
        force_update = options.get('force', False)
        specialist_id = options.get('specialist')

        specialists = Specialist.objects.filter(is_active=True)
        if specialist_id:
            specialists = specialists.filter(id=specialist_id)
            if not specialists.exists():
                self.stdout.write(self.style.ERROR(f'No active specialist found with ID {specialist_id}'))
                return

        if not specialists.exists():
            self.stdout.write(self.style.ERROR('No active specialists found!'))
            return

        defaults = {
            'start_time': time(9, 0),
            'end_time': time(18, 0),
            'lunch_start': time(13, 0),
            'lunch_end': time(14, 0),
            'allowed_service_ids': None,
        }

        created_count = 0
        updated_count = 0

        with transaction.atomic():
            for specialist in specialists:
                self.stdout.write(f'Processing {specialist.name}...')

                for day in range(1, 6):  # 1 = Monday ... 5 = Friday
                    schedule = WorkSchedule.objects.filter(
                        specialist=specialist, day_of_week=day, is_active=True
                    ).first()

                    if schedule is None:
                        schedule = WorkSchedule.objects.create(specialist=specialist, day_of_week=day, **defaults)
                        created_count += 1
                        self.stdout.write(f'  Created {schedule.get_day_of_week_display()}: {schedule.working_hours_display}')
                    elif force_update:
                        for field, value in defaults.items():
                            setattr(schedule, field, value)
                        schedule.save()
                        updated_count += 1
                        self.stdout.write(f'  Updated {schedule.get_day_of_week_display()}: {schedule.working_hours_display}')

        self.stdout.write(
            self.style.SUCCESS(f'\nCompleted: {created_count} schedules created, {updated_count} updated')
        )
