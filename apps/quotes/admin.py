"""Admin registrations for quotes."""

from __future__ import annotations

from django.contrib import admin

from .models import Quote, QuoteItineraryStop


class QuoteItineraryStopInline(admin.TabularInline):
    model = QuoteItineraryStop
    extra = 0
    fields = (
        "trip_leg",
        "stop_order",
        "location_name",
        "arrival_time",
        "departure_time",
        "is_resource_staying",
        "staying_duration",
    )


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "status",
        "assigned_driver_id",
        "quoted_at",
        "is_deleted",
        "version",
        "created_at",
    )
    list_filter = ("status", "is_deleted")
    search_fields = ("id", "assigned_driver_id")
    readonly_fields = ("version", "quoted_at", "created_at", "updated_at")
    inlines = (QuoteItineraryStopInline,)
