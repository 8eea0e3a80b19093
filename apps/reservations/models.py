"""Reservation persistence models."""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.reservations.domain.entities import ReservationStatus
from shared.infrastructure.models import ItineraryStopRecord


class Reservation(models.Model):
    """Confirmed booking created when a quote is paid."""

    class Status(models.TextChoices):
        CONFIRMED = ReservationStatus.CONFIRMED.value, _("Confirmed")
        MODIFIED = ReservationStatus.MODIFIED.value, _("Modified")
        COMPLETED = ReservationStatus.COMPLETED.value, _("Completed")
        CANCELLED = ReservationStatus.CANCELLED.value, _("Cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    quote = models.OneToOneField(
        "quotes.Quote",
        on_delete=models.PROTECT,
        related_name="reservation",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.CONFIRMED,
    )
    selected_vehicles = models.JSONField(default=list, blank=True)
    assigned_driver_id = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Reservation")
        verbose_name_plural = _("Reservations")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="reservation_status_7d3e2f_idx"),
            models.Index(fields=["assigned_driver_id"], name="reservation_assigne_1b8c40_idx"),
        ]

    def __str__(self) -> str:
        return f"Reservation {self.id} ({self.status})"


class ReservationItineraryStop(ItineraryStopRecord):
    """Independent copy of a quote stop; edits to the quote never reach it."""

    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name="itinerary_stops",
    )

    class Meta:
        verbose_name = _("Reservation itinerary stop")
        verbose_name_plural = _("Reservation itinerary stops")
        ordering = ["reservation", "trip_leg", "stop_order"]
        constraints = [
            models.UniqueConstraint(
                fields=["reservation", "trip_leg", "stop_order"],
                name="reservation_stop_unique_order",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.trip_leg} #{self.stop_order} of reservation {self.reservation_id}"
