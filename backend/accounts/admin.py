from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from accounts.models import User
from providers.models import ProviderProfile


class ProviderProfileInline(admin.StackedInline):
    model = ProviderProfile
    can_delete = False
    fk_name = "user"
    filter_horizontal = ["categories"]
    readonly_fields = ["average_rating", "total_ratings", "completed_jobs"]


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Customers, providers and admins in one list; providers carry their profile inline."""

    list_display = ["username", "role", "phone_number", "is_active", "date_joined"]
    list_filter = ["role", "is_active"]
    search_fields = ["username", "email", "phone_number"]
    ordering = ("-date_joined",)

    fieldsets = BaseUserAdmin.fieldsets + (("Role", {"fields": ("role", "phone_number")}),)
    add_fieldsets = BaseUserAdmin.add_fieldsets + (("Role", {"fields": ("role", "phone_number")}),)

    def get_inlines(self, request, obj):
        if obj is not None and obj.is_provider:
            return [ProviderProfileInline]
        return []
