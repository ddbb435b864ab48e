from rest_framework import serializers
from providers.models import Category, ProviderProfile


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "description", "is_active"]


class ProviderBasicSerializer(serializers.ModelSerializer):
    """
    Lite version of provider info for job and bid details
    (sent to customers when a provider bids or is bound).
    """
    user_id = serializers.IntegerField(source="user.id", read_only=True)
    username = serializers.CharField(source="user.username", read_only=True)
    phone_number = serializers.CharField(source="user.phone_number", read_only=True)

    class Meta:
        model = ProviderProfile
        fields = [
            "user_id",
            "username",
            "phone_number",
            "tier",
            "average_rating",
            "completed_jobs",
        ]


class CategoryListSerializer(CategorySerializer):
    """Category with the number of providers offering it (annotated queryset)."""
    provider_count = serializers.IntegerField(read_only=True)

    class Meta(CategorySerializer.Meta):
        fields = CategorySerializer.Meta.fields + ["provider_count", "created_at", "updated_at"]


class CategoryStatsSerializer(serializers.ModelSerializer):
    job_count = serializers.IntegerField(read_only=True)
    provider_count = serializers.IntegerField(read_only=True)
    price_history_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Category
        fields = ["id", "name", "job_count", "provider_count", "price_history_count"]


class ProviderProfileSerializer(serializers.ModelSerializer):
    """Full provider profile, shown to the provider themselves."""
    categories = CategorySerializer(many=True, read_only=True)

    class Meta:
        model = ProviderProfile
        fields = [
            "is_available",
            "latitude",
            "longitude",
            "tier",
            "average_rating",
            "total_ratings",
            "completed_jobs",
            "reliability_score",
            "categories",
        ]
        read_only_fields = fields
