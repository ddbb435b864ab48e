"""Tells what to show in the Django admin interface for jobs app"""

from django.contrib import admin
from .models import Job, Bid, Escrow, JobBroadcast, PriceHistory


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    """Job admin"""
    list_display = ['id', 'title', 'job_type', 'status', 'customer', 'provider', 'broadcast_stage', 'created_at']
    list_filter = ['job_type', 'status', 'category', 'created_at']
    search_fields = ['title', 'customer__username', 'provider__username', 'address']
    readonly_fields = ['version', 'created_at', 'updated_at', 'booked_at', 'started_at', 'completed_at', 'cancelled_at']
    date_hierarchy = 'created_at'


@admin.register(Bid)
class BidAdmin(admin.ModelAdmin):
    list_display = ("job", "provider", "price", "estimated_eta", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("job__id", "provider__username")


@admin.register(Escrow)
class EscrowAdmin(admin.ModelAdmin):
    list_display = ("job", "amount", "status", "held_at", "released_at", "refunded_at")
    list_filter = ("status",)


@admin.register(JobBroadcast)
class JobBroadcastAdmin(admin.ModelAdmin):
    list_display = ("job", "provider", "stage", "distance_km", "sent_at")
    list_filter = ("stage",)


@admin.register(PriceHistory)
class PriceHistoryAdmin(admin.ModelAdmin):
    list_display = ("category", "price", "completed_at")
    list_filter = ("category",)
