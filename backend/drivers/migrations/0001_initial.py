import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Driver',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_available', models.BooleanField(default=False)),
                ('is_verified', models.BooleanField(default=False)),
                ('is_actively_driving', models.BooleanField(default=False)),
                ('current_latitude', models.FloatField(blank=True, null=True)),
                ('current_longitude', models.FloatField(blank=True, null=True)),
                ('geohash', models.CharField(blank=True, editable=False, max_length=12, null=True)),
                ('last_location_update', models.DateTimeField(blank=True, null=True)),
                ('service_radius_km', models.FloatField(default=16.0)),
                ('vehicle_make', models.CharField(default='Unknown', max_length=50)),
                ('vehicle_model', models.CharField(default='Unknown', max_length=50)),
                ('vehicle_year', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('license_plate', models.CharField(blank=True, max_length=20)),
                ('towing_capacity', models.CharField(blank=True, max_length=50)),
                ('total_trips', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='driver_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'drivers',
                'indexes': [models.Index(fields=['is_available', 'geohash'], name='driver_available_geohash')],
            },
        ),
    ]
