from django.contrib import admin
from providers.models import Category, ProviderProfile


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["name"]


@admin.register(ProviderProfile)
class ProviderProfileAdmin(admin.ModelAdmin):
    """Admin panel for managing Provider Profiles"""

    list_display = [
        "user",
        "tier",
        "is_available",
        "average_rating",
        "completed_jobs",
        "latitude",
        "longitude",
    ]

    list_filter = [
        "tier",
        "is_available",
        "categories",
    ]

    search_fields = [
        "user__username",
    ]

    filter_horizontal = ["categories"]

    ordering = ("user__username",)
