# apps/reservations/migrations/0001_initial.py

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ('quotes', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(
                    choices=[
                        ('confirmed', 'Confirmed'),
                        ('modified', 'Modified'),
                        ('completed', 'Completed'),
                        ('cancelled', 'Cancelled'),
                    ],
                    default='confirmed',
                    max_length=20,
                )),
                ('selected_vehicles', models.JSONField(blank=True, default=list)),
                ('assigned_driver_id', models.CharField(blank=True, max_length=64, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('quote', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='reservation', to='quotes.quote')),
            ],
            options={
                'verbose_name': 'Reservation',
                'verbose_name_plural': 'Reservations',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='reservation',
            index=models.Index(fields=['status'], name='reservation_status_7d3e2f_idx'),
        ),
        migrations.AddIndex(
            model_name='reservation',
            index=models.Index(fields=['assigned_driver_id'], name='reservation_assigne_1b8c40_idx'),
        ),
        migrations.CreateModel(
            name='ReservationItineraryStop',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('trip_leg', models.CharField(choices=[('outbound', 'Outbound'), ('return', 'Return')], default='outbound', max_length=10)),
                ('stop_order', models.PositiveIntegerField()),
                ('location_name', models.CharField(blank=True, max_length=255)),
                ('arrival_time', models.DateTimeField()),
                ('departure_time', models.DateTimeField(blank=True, null=True)),
                ('is_resource_staying', models.BooleanField(default=False, help_text='Vehicle and driver wait at this stop.')),
                ('staying_duration', models.PositiveIntegerField(blank=True, null=True, help_text='Minutes the vehicle and driver stay at the stop.')),
                ('reservation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='itinerary_stops', to='reservations.reservation')),
            ],
            options={
                'verbose_name': 'Reservation itinerary stop',
                'verbose_name_plural': 'Reservation itinerary stops',
                'ordering': ['reservation', 'trip_leg', 'stop_order'],
            },
        ),
        migrations.AddConstraint(
            model_name='reservationitinerarystop',
            constraint=models.UniqueConstraint(fields=('reservation', 'trip_leg', 'stop_order'), name='reservation_stop_unique_order'),
        ),
    ]
