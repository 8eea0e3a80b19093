# apps/quotes/migrations/0001_initial.py

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


STATUS_CHOICES = [
    ('draft', 'Draft'),
    ('submitted', 'Submitted'),
    ('quoted', 'Quoted'),
    ('negotiating', 'Negotiating'),
    ('accepted', 'Accepted'),
    ('paid', 'Paid'),
    ('cancelled', 'Cancelled'),
    ('rejected', 'Rejected'),
    ('expired', 'Expired'),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Quote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=STATUS_CHOICES, default='draft', max_length=20)),
                ('selected_vehicles', models.JSONField(blank=True, default=list, help_text='List of {vehicle_id, quantity} objects.')),
                ('assigned_driver_id', models.CharField(blank=True, max_length=64, null=True)),
                ('quoted_at', models.DateTimeField(blank=True, null=True, help_text='First time the quote entered QUOTED; anchors the 24h payment window.')),
                ('is_deleted', models.BooleanField(default=False)),
                ('version', models.PositiveIntegerField(default=0, editable=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Quote',
                'verbose_name_plural': 'Quotes',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='quote',
            index=models.Index(fields=['status', 'is_deleted'], name='quotes_quot_status_3c1f0a_idx'),
        ),
        migrations.AddIndex(
            model_name='quote',
            index=models.Index(fields=['status', 'created_at'], name='quotes_quot_status_8e2b4d_idx'),
        ),
        migrations.AddIndex(
            model_name='quote',
            index=models.Index(fields=['assigned_driver_id'], name='quotes_quot_assigne_5a9c71_idx'),
        ),
        migrations.CreateModel(
            name='QuoteItineraryStop',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('trip_leg', models.CharField(choices=[('outbound', 'Outbound'), ('return', 'Return')], default='outbound', max_length=10)),
                ('stop_order', models.PositiveIntegerField()),
                ('location_name', models.CharField(blank=True, max_length=255)),
                ('arrival_time', models.DateTimeField()),
                ('departure_time', models.DateTimeField(blank=True, null=True)),
                ('is_resource_staying', models.BooleanField(default=False, help_text='Vehicle and driver wait at this stop.')),
                ('staying_duration', models.PositiveIntegerField(blank=True, null=True, help_text='Minutes the vehicle and driver stay at the stop.')),
                ('quote', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='itinerary_stops', to='quotes.quote')),
            ],
            options={
                'verbose_name': 'Quote itinerary stop',
                'verbose_name_plural': 'Quote itinerary stops',
                'ordering': ['quote', 'trip_leg', 'stop_order'],
            },
        ),
        migrations.AddConstraint(
            model_name='quoteitinerarystop',
            constraint=models.UniqueConstraint(fields=('quote', 'trip_leg', 'stop_order'), name='quote_stop_unique_order'),
        ),
    ]
