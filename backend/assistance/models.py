from django.conf import settings
from django.db import models
from django.db.models import Q

from common.utils.geo import Location


class AssistanceRequest(models.Model):
    """One commuter's request for roadside assistance, matched to one driver at a time"""

    class Status(models.TextChoices):
        SEARCHING = 'searching', 'Searching'
        CLAIMED = 'claimed', 'Claimed'
        ACCEPTED = 'accepted', 'Accepted'
        CANCELLED = 'cancelled', 'Cancelled'

    class ServiceType(models.TextChoices):
        TOW = 'tow', 'Tow'
        JUMP_START = 'jump_start', 'Jump Start'
        FUEL_DELIVERY = 'fuel_delivery', 'Fuel Delivery'
        TIRE_CHANGE = 'tire_change', 'Tire Change'
        LOCKOUT = 'lockout', 'Lockout'
        WINCH_OUT = 'winch_out', 'Winch Out'

    # Reserved service types stay disabled until drivers can fulfil them
    ENABLED_SERVICE_TYPES = frozenset({'tow'})
    ACTIVE_STATUSES = (Status.SEARCHING, Status.CLAIMED)
    TERMINAL_STATUSES = (Status.ACCEPTED, Status.CANCELLED)

    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='assistance_requests'
    )

    # Pickup / dropoff
    pickup_latitude = models.FloatField()
    pickup_longitude = models.FloatField()
    pickup_address = models.TextField(blank=True)
    dropoff_latitude = models.FloatField()
    dropoff_longitude = models.FloatField()
    dropoff_address = models.TextField(blank=True)

    service_type = models.CharField(max_length=20, choices=ServiceType.choices, default=ServiceType.TOW)
    customer_notes = models.TextField(blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.SEARCHING)

    # Claim fields, written only by services.claims
    claimed_by_driver = models.ForeignKey(
        'drivers.Driver',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='claimed_requests'
    )
    claim_expires_at = models.DateTimeField(null=True, blank=True)
    notified_driver_ids = models.JSONField(default=list, blank=True)
    matched_driver = models.ForeignKey(
        'drivers.Driver',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='matched_requests'
    )

    # Bumped by every transactional write; guards read-modify-write commits
    version = models.PositiveIntegerField(default=0)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    expires_at = models.DateTimeField()
    accepted_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    cancellation_reason = models.TextField(blank=True)

    class Meta:
        db_table = 'assistance_requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'claim_expires_at'], name='request_status_claim_expiry'),
            models.Index(fields=['claimed_by_driver', 'status'], name='request_claimant_status'),
            models.Index(fields=['status', 'expires_at'], name='request_status_ttl'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(claimed_by_driver__isnull=True, claim_expires_at__isnull=True)
                    | Q(claimed_by_driver__isnull=False, claim_expires_at__isnull=False)
                ),
                name='request_claim_fields_together',
            ),
        ]

    def __str__(self):
        return f"Request #{self.id} - {self.requester_id} - {self.status}"

    @property
    def pickup_location(self) -> Location:
        return Location(self.pickup_latitude, self.pickup_longitude)

    @property
    def dropoff_location(self) -> Location:
        return Location(self.dropoff_latitude, self.dropoff_longitude)


class Trip(models.Model):
    """Work in progress after a claim is accepted; never reconciled back into the request"""

    class Status(models.TextChoices):
        EN_ROUTE = 'en_route', 'En Route'
        ARRIVED = 'arrived', 'Arrived'
        IN_PROGRESS = 'in_progress', 'In Progress'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'

    # Forward-only status machine
    ALLOWED_TRANSITIONS = {
        'en_route': {'arrived', 'cancelled'},
        'arrived': {'in_progress', 'cancelled'},
        'in_progress': {'completed', 'cancelled'},
        'completed': set(),
        'cancelled': set(),
    }

    request = models.OneToOneField(AssistanceRequest, on_delete=models.CASCADE, related_name='trip')
    commuter = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='trips')
    driver = models.ForeignKey('drivers.Driver', on_delete=models.PROTECT, related_name='trips')

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.EN_ROUTE)

    pickup_latitude = models.FloatField()
    pickup_longitude = models.FloatField()
    pickup_address = models.TextField(blank=True)
    dropoff_latitude = models.FloatField()
    dropoff_longitude = models.FloatField()
    dropoff_address = models.TextField(blank=True)

    # Timestamps
    start_time = models.DateTimeField(auto_now_add=True)
    arrival_time = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completion_time = models.DateTimeField(null=True, blank=True)

    distance_km = models.FloatField(default=0)
    estimated_price = models.DecimalField(max_digits=8, decimal_places=2)
    final_price = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)

    # Append-only list of {"latitude", "longitude", "recorded_at"}
    driver_path = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = 'trips'
        ordering = ['-start_time']

    def __str__(self):
        return f"Trip #{self.id} - Request {self.request_id} - {self.status}"

    def can_transition_to(self, new_status: str) -> bool:
        return str(new_status) in self.ALLOWED_TRANSITIONS.get(str(self.status), set())
