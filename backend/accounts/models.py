from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Extended user model with role selection"""

    class Role(models.TextChoices):
        COMMUTER = 'commuter', 'Commuter'
        DRIVER = 'driver', 'Tow Driver'
        BOTH = 'both', 'Commuter and Driver'

    role = models.CharField(max_length=10, choices=Role.choices, default=Role.COMMUTER)
    phone_number = models.CharField(max_length=20, blank=True)

    class Meta:
        db_table = 'users'

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def is_commuter(self) -> bool:
        return self.role in (self.Role.COMMUTER, self.Role.BOTH)

    @property
    def is_driver(self) -> bool:
        return self.role in (self.Role.DRIVER, self.Role.BOTH)
