from decimal import Decimal

from rest_framework import serializers

from jobs.models import Job, Bid, Escrow
from providers.serializers import CategorySerializer, ProviderBasicSerializer


def provider_summary(user):
    """Basic provider info, or None when no provider (or profile) is attached."""
    profile = getattr(user, "provider_profile", None) if user is not None else None
    return ProviderBasicSerializer(profile).data if profile is not None else None


class JobSerializer(serializers.ModelSerializer):
    """Serializer for jobs (API responses and event payloads)"""
    category = CategorySerializer(read_only=True)
    customer_id = serializers.IntegerField(read_only=True)
    provider = serializers.SerializerMethodField()

    class Meta:
        model = Job
        fields = ['id', 'job_type', 'status', 'title', 'description', 'category',
                  'customer_id', 'provider', 'latitude', 'longitude', 'address',
                  'estimated_price', 'accept_price', 'final_price', 'arrival_window',
                  'scheduled_at', 'quick_book_deadline', 'bidding_ends_at',
                  'broadcast_stage', 'booked_at', 'started_at', 'completed_at',
                  'cancelled_at', 'cancellation_reason', 'created_at']
        read_only_fields = fields

    def get_provider(self, obj):
        return provider_summary(obj.provider)


class _JobCreateSerializer(serializers.Serializer):
    category_id = serializers.IntegerField()
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6,
                                        min_value=Decimal("-90"), max_value=Decimal("90"))
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6,
                                         min_value=Decimal("-180"), max_value=Decimal("180"))
    address = serializers.CharField()


class QuickBookJobCreateSerializer(_JobCreateSerializer):
    """Serializer for creating quick-book jobs"""
    # Hours within which a provider must accept and arrive
    arrival_window = serializers.IntegerField(min_value=1, max_value=24)


class PostQuoteJobCreateSerializer(_JobCreateSerializer):
    """Serializer for creating post & quote jobs"""
    accept_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False,
                                            allow_null=True, min_value=Decimal("0.01"))
    scheduled_at = serializers.DateTimeField(required=False, allow_null=True)


class BidSerializer(serializers.ModelSerializer):
    """Serializer for bids"""
    job_id = serializers.IntegerField(read_only=True)
    provider = serializers.SerializerMethodField()

    class Meta:
        model = Bid
        fields = ['id', 'job_id', 'provider', 'price', 'estimated_eta', 'note',
                  'status', 'created_at', 'responded_at']
        read_only_fields = fields

    def get_provider(self, obj):
        return provider_summary(obj.provider)


class RankedBidSerializer(BidSerializer):
    rank = serializers.IntegerField(read_only=True)
    provider_rating = serializers.FloatField(read_only=True)

    class Meta(BidSerializer.Meta):
        fields = BidSerializer.Meta.fields + ['rank', 'provider_rating']
        read_only_fields = fields


class BidCreateSerializer(serializers.Serializer):
    """Serializer for submitting a bid; ranges are enforced by the bidding service"""
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    estimated_eta = serializers.IntegerField()
    note = serializers.CharField(required=False, allow_blank=True, default="")


class EscrowSerializer(serializers.ModelSerializer):
    job_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Escrow
        fields = ['id', 'job_id', 'amount', 'status', 'held_at', 'released_at', 'refunded_at']
        read_only_fields = fields


class JobCancelSerializer(serializers.Serializer):
    """Serializer for job cancellation"""
    reason = serializers.CharField(required=False, allow_blank=True)


class PriceGuidanceSerializer(serializers.Serializer):
    p10 = serializers.FloatField()
    p50 = serializers.FloatField()
    p90 = serializers.FloatField()
    data_points = serializers.IntegerField()
