"""Admin registrations for reservations."""

from __future__ import annotations

from django.contrib import admin

from .models import Reservation, ReservationItineraryStop


class ReservationItineraryStopInline(admin.TabularInline):
    model = ReservationItineraryStop
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


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ("id", "quote", "status", "assigned_driver_id", "created_at")
    list_filter = ("status",)
    search_fields = ("id", "quote__id", "assigned_driver_id")
    readonly_fields = ("quote", "created_at", "updated_at")
    inlines = (ReservationItineraryStopInline,)
