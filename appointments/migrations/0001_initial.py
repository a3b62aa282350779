import appointments.models
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('patients', '0001_initial'),
        ('services', '0001_initial'),
        ('specialists', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='WorkSchedule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
                ('lunch_start', models.TimeField(blank=True, null=True)),
                ('lunch_end', models.TimeField(blank=True, null=True)),
                ('allowed_service_ids', models.JSONField(blank=True, default=None, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('day_of_week', models.PositiveSmallIntegerField(choices=[(0, 'Domingo'), (1, 'Lunes'), (2, 'Martes'), (3, 'Miércoles'), (4, 'Jueves'), (5, 'Viernes'), (6, 'Sábado')], help_text='0 = Sunday ... 6 = Saturday')),
                ('specialist', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='work_schedules', to='specialists.specialist')),
            ],
            options={
                'ordering': ['specialist', 'day_of_week'],
                'indexes': [
                    models.Index(fields=['specialist', 'day_of_week'], name='work_sched_spec_day_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('end_time__gt', models.F('start_time'))), name='workschedule_end_after_start'),
                    models.CheckConstraint(condition=models.Q(('day_of_week__lte', 6)), name='workschedule_valid_day_of_week'),
                    models.UniqueConstraint(condition=models.Q(('is_active', True)), fields=('specialist', 'day_of_week'), name='unique_active_schedule_per_day'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ScheduleException',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
                ('lunch_start', models.TimeField(blank=True, null=True)),
                ('lunch_end', models.TimeField(blank=True, null=True)),
                ('allowed_service_ids', models.JSONField(blank=True, default=None, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('exception_date', models.DateField()),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('specialist', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedule_exceptions', to='specialists.specialist')),
            ],
            options={
                'ordering': ['exception_date'],
                'indexes': [
                    models.Index(fields=['specialist', 'exception_date'], name='sched_exc_spec_date_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('end_time__gt', models.F('start_time'))), name='scheduleexception_end_after_start'),
                    models.UniqueConstraint(condition=models.Q(('is_active', True)), fields=('specialist', 'exception_date'), name='unique_active_exception_per_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Closure',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('closure_type', models.CharField(choices=[('vacation', 'Vacaciones'), ('holiday', 'Feriado'), ('personal', 'Personal'), ('other', 'Otro')], default='other', max_length=20)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField(help_text='Inclusive')),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('specialist', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='closures', to='specialists.specialist')),
            ],
            options={
                'ordering': ['-start_date'],
                'indexes': [
                    models.Index(fields=['specialist', 'start_date', 'end_date'], name='closure_spec_range_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('end_date__gte', models.F('start_date'))), name='closure_end_not_before_start'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('appointment_date', models.DateField()),
                ('appointment_time', models.TimeField()),
                ('duration_minutes', models.PositiveIntegerField()),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='scheduled', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='appointments', to='patients.patient')),
                ('service', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='appointments', to='services.service')),
                ('specialist', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='appointments', to='specialists.specialist')),
            ],
            options={
                'ordering': ['appointment_date', 'appointment_time'],
                'indexes': [
                    models.Index(fields=['status'], name='appt_status_idx'),
                    models.Index(fields=['specialist', 'appointment_date'], name='appt_spec_date_idx'),
                    models.Index(fields=['specialist', 'status'], name='appt_spec_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'cancelled'), _negated=True), fields=('specialist', 'appointment_date', 'appointment_time'), name='unique_active_appointment_per_slot'),
                    models.CheckConstraint(condition=models.Q(('duration_minutes__gt', 0)), name='appointment_positive_duration'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AppointmentLock',
            fields=[
                ('id', models.CharField(default=appointments.models.generate_lock_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ('appointment_date', models.DateField()),
                ('appointment_time', models.TimeField()),
                ('locked_by', models.CharField(max_length=128)),
                ('locked_at', models.DateTimeField()),
                ('expires_at', models.DateTimeField()),
                ('specialist', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='appointment_locks', to='specialists.specialist')),
            ],
            options={
                'ordering': ['-locked_at'],
                'indexes': [
                    models.Index(fields=['expires_at'], name='appt_lock_expires_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('specialist', 'appointment_date', 'appointment_time'), name='unique_lock_per_slot'),
                ],
            },
        ),
    ]
