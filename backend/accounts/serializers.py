from rest_framework import serializers

from providers.models import ProviderProfile
from providers.serializers import ProviderProfileSerializer
from .models import User


class UserSerializer(serializers.ModelSerializer):
    provider_profile = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "role",
            "phone_number",
            "provider_profile",
        ]
        read_only_fields = fields

    def get_provider_profile(self, obj):
        """Provider details with offered categories; None for customers."""
        if not obj.is_provider:
            return None
        try:
            profile = obj.provider_profile
        except ProviderProfile.DoesNotExist:
            return None
        return ProviderProfileSerializer(profile).data
