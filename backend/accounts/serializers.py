from rest_framework import serializers

from .models import User


class UserBasicSerializer(serializers.ModelSerializer):
    """Contact details shared between a commuter and their driver."""

    class Meta:
        model = User
        fields = ["id", "username", "first_name", "role", "phone_number"]
        read_only_fields = fields
