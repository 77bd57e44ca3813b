import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('drivers', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AssistanceRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pickup_latitude', models.FloatField()),
                ('pickup_longitude', models.FloatField()),
                ('pickup_address', models.TextField(blank=True)),
                ('dropoff_latitude', models.FloatField()),
                ('dropoff_longitude', models.FloatField()),
                ('dropoff_address', models.TextField(blank=True)),
                ('service_type', models.CharField(choices=[('tow', 'Tow'), ('jump_start', 'Jump Start'), ('fuel_delivery', 'Fuel Delivery'), ('tire_change', 'Tire Change'), ('lockout', 'Lockout'), ('winch_out', 'Winch Out')], default='tow', max_length=20)),
                ('customer_notes', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('searching', 'Searching'), ('claimed', 'Claimed'), ('accepted', 'Accepted'), ('cancelled', 'Cancelled')], default='searching', max_length=20)),
                ('claim_expires_at', models.DateTimeField(blank=True, null=True)),
                ('notified_driver_ids', models.JSONField(blank=True, default=list)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('expires_at', models.DateTimeField()),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True)),
                ('claimed_by_driver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='claimed_requests', to='drivers.driver')),
                ('matched_driver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='matched_requests', to='drivers.driver')),
                ('requester', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assistance_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'assistance_requests',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'claim_expires_at'], name='request_status_claim_expiry'),
                    models.Index(fields=['claimed_by_driver', 'status'], name='request_claimant_status'),
                    models.Index(fields=['status', 'expires_at'], name='request_status_ttl'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=(
                            models.Q(('claimed_by_driver__isnull', True), ('claim_expires_at__isnull', True))
                            | models.Q(('claimed_by_driver__isnull', False), ('claim_expires_at__isnull', False))
                        ),
                        name='request_claim_fields_together',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Trip',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('en_route', 'En Route'), ('arrived', 'Arrived'), ('in_progress', 'In Progress'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='en_route', max_length=20)),
                ('pickup_latitude', models.FloatField()),
                ('pickup_longitude', models.FloatField()),
                ('pickup_address', models.TextField(blank=True)),
                ('dropoff_latitude', models.FloatField()),
                ('dropoff_longitude', models.FloatField()),
                ('dropoff_address', models.TextField(blank=True)),
                ('start_time', models.DateTimeField(auto_now_add=True)),
                ('arrival_time', models.DateTimeField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completion_time', models.DateTimeField(blank=True, null=True)),
                ('distance_km', models.FloatField(default=0)),
                ('estimated_price', models.DecimalField(decimal_places=2, max_digits=8)),
                ('final_price', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('driver_path', models.JSONField(blank=True, default=list)),
                ('commuter', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trips', to=settings.AUTH_USER_MODEL)),
                ('driver', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='trips', to='drivers.driver')),
                ('request', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='trip', to='assistance.assistancerequest')),
            ],
            options={
                'db_table': 'trips',
                'ordering': ['-start_time'],
            },
        ),
    ]
