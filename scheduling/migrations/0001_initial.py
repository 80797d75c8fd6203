import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


HHMM_VALIDATOR = django.core.validators.RegexValidator(
    message='Time must be in HH:MM format (24h).',
    regex='^([01]\\d|2[0-3]):([0-5]\\d)$',
)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='TimeSlot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('day_of_week', models.IntegerField(choices=[(0, 'Sunday'), (1, 'Monday'), (2, 'Tuesday'), (3, 'Wednesday'), (4, 'Thursday'), (5, 'Friday'), (6, 'Saturday')], help_text='Day of week (0=Sunday, 6=Saturday)')),
                ('specific_date', models.DateField(blank=True, help_text='Date of a one-time slot (null = weekly recurring)', null=True)),
                ('start_time', models.CharField(max_length=5, validators=[HHMM_VALIDATOR])),
                ('end_time', models.CharField(max_length=5, validators=[HHMM_VALIDATOR])),
                ('duration', models.PositiveIntegerField(default=60, help_text='Default session duration in minutes', validators=[django.core.validators.MinValueValidator(15), django.core.validators.MaxValueValidator(180)])),
                ('medium', models.CharField(choices=[('online', 'Online'), ('in-person', 'In person'), ('both', 'Both')], default='online', max_length=20)),
                ('is_available', models.BooleanField(default=True, help_text='Whether clients can currently book this slot')),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('coach', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='time_slots', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['day_of_week', 'specific_date', 'start_time'],
                'indexes': [
                    models.Index(fields=['coach', 'day_of_week'], name='slot_coach_weekday_idx'),
                    models.Index(fields=['coach', 'specific_date'], name='slot_coach_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Session',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('scheduled_date', models.DateField()),
                ('start_time', models.CharField(max_length=5, validators=[HHMM_VALIDATOR])),
                ('end_time', models.CharField(max_length=5, validators=[HHMM_VALIDATOR])),
                ('duration', models.PositiveIntegerField(default=60)),
                ('medium', models.CharField(choices=[('online', 'Online'), ('in-person', 'In person')], default='online', max_length=20)),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('confirmed', 'Confirmed'), ('in-progress', 'In progress'), ('completed', 'Completed'), ('canceled', 'Canceled'), ('no-show', 'No-show')], default='scheduled', max_length=20)),
                ('title', models.CharField(blank=True, default='', max_length=200)),
                ('notes', models.TextField(blank=True, default='')),
                ('coach_notes', models.TextField(blank=True, default='')),
                ('client_notes', models.TextField(blank=True, default='')),
                ('meeting_link', models.CharField(blank=True, default='', max_length=500)),
                ('location', models.CharField(blank=True, default='', max_length=255)),
                ('canceled_at', models.DateTimeField(blank=True, null=True)),
                ('canceled_by', models.CharField(blank=True, choices=[('coach', 'Coach'), ('client', 'Client')], default='', max_length=10)),
                ('cancel_reason', models.TextField(blank=True, default='')),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('reminder_60_sent', models.BooleanField(default=False)),
                ('reminder_30_sent', models.BooleanField(default=False)),
                ('starting_now_sent', models.BooleanField(default=False)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('coach', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='coached_sessions', to=settings.AUTH_USER_MODEL)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='booked_sessions', to=settings.AUTH_USER_MODEL)),
                ('time_slot', models.ForeignKey(blank=True, help_text='Availability window this session was booked from', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sessions', to='scheduling.timeslot')),
            ],
            options={
                'ordering': ['scheduled_date', 'start_time'],
                'indexes': [
                    models.Index(fields=['coach', 'scheduled_date'], name='session_coach_date_idx'),
                    models.Index(fields=['client', 'scheduled_date'], name='session_client_date_idx'),
                    models.Index(fields=['coach', 'status'], name='session_coach_status_idx'),
                    models.Index(fields=['scheduled_date', 'status'], name='session_date_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ('scheduled', 'confirmed', 'in-progress'))), fields=('coach', 'scheduled_date', 'start_time'), name='unique_active_session_per_coach_start'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('session_booked', 'Session booked'), ('session_confirmed', 'Session confirmed'), ('session_canceled', 'Session canceled'), ('session_reminder', 'Session reminder'), ('session_starting', 'Session starting')], max_length=30)),
                ('title', models.CharField(max_length=200)),
                ('body', models.TextField()),
                ('data', models.JSONField(blank=True, default=dict)),
                ('read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scheduling_notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['recipient', 'read'], name='notification_unread_idx'),
                ],
            },
        ),
    ]
