from django.db import models
from django.conf import settings

User = settings.AUTH_USER_MODEL


class Category(models.Model):
    """A kind of service customers can book (plumbing, cleaning, ...)"""
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'categories'
        ordering = ['name']
        verbose_name_plural = 'categories'

    def __str__(self):
        return self.name


class ProviderQuerySet(models.QuerySet):

    def available(self):
        return self.filter(
            is_available=True,
            latitude__isnull=False,
            longitude__isnull=False,
        )

    def in_category(self, category_id):
        return self.filter(categories__id=category_id)


class ProviderProfile(models.Model):
    """Provider-specific details: location, availability, quality signals"""
    TIER_A = 'tier_a'
    TIER_B = 'tier_b'

    TIER_CHOICES = [
        (TIER_A, 'Tier A'),
        (TIER_B, 'Tier B'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='provider_profile')

    is_available = models.BooleanField(default=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    tier = models.CharField(max_length=10, choices=TIER_CHOICES, default=TIER_B)
    average_rating = models.FloatField(default=0.0)
    total_ratings = models.PositiveIntegerField(default=0)
    completed_jobs = models.PositiveIntegerField(default=0)
    reliability_score = models.FloatField(default=100.0)

    categories = models.ManyToManyField(Category, related_name='providers', blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProviderQuerySet.as_manager()

    class Meta:
        db_table = 'provider_profiles'

    def __str__(self):
        return f"{self.user.username} ({self.get_tier_display()})"
