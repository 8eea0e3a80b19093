"""Abstract Django models shared by the quote and reservation apps."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.availability.domain.itinerary import ItineraryStop, TripLeg as DomainTripLeg


class ItineraryStopRecord(models.Model):
    """Persistent form of an ItineraryStop; each owner app adds its foreign key."""

    class TripLeg(models.TextChoices):
        OUTBOUND = DomainTripLeg.OUTBOUND.value, _("Outbound")
        RETURN = DomainTripLeg.RETURN.value, _("Return")

    trip_leg = models.CharField(max_length=10, choices=TripLeg.choices, default=TripLeg.OUTBOUND)
    stop_order = models.PositiveIntegerField()
    location_name = models.CharField(max_length=255, blank=True)
    arrival_time = models.DateTimeField()
    departure_time = models.DateTimeField(null=True, blank=True)
    is_resource_staying = models.BooleanField(
        default=False,
        help_text=_("Vehicle and driver wait at this stop."),
    )
    staying_duration = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Minutes the vehicle and driver stay at the stop."),
    )

    class Meta:
        abstract = True

    def to_entity(self) -> ItineraryStop:
        return ItineraryStop(
            trip_leg=self.trip_leg,
            order=self.stop_order,
            arrival_time=self.arrival_time,
            departure_time=self.departure_time,
            is_resource_staying=self.is_resource_staying,
            staying_duration=self.staying_duration,
            location_name=self.location_name,
        )

    @staticmethod
    def fields_from_entity(stop: ItineraryStop) -> dict:
        return {
            "trip_leg": stop.trip_leg.value,
            "stop_order": stop.order,
            "location_name": stop.location_name,
            "arrival_time": stop.arrival_time,
            "departure_time": stop.departure_time,
            "is_resource_staying": stop.is_resource_staying,
            "staying_duration": stop.staying_duration,
        }
