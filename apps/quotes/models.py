"""Quote persistence models."""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.quotes.domain.entities import QuoteStatus
from shared.infrastructure.models import ItineraryStopRecord


class Quote(models.Model):
    """Prospective trip priced for a shopper; claims vehicles and a driver while active."""

    class Status(models.TextChoices):
        DRAFT = QuoteStatus.DRAFT.value, _("Draft")
        SUBMITTED = QuoteStatus.SUBMITTED.value, _("Submitted")
        QUOTED = QuoteStatus.QUOTED.value, _("Quoted")
        NEGOTIATING = QuoteStatus.NEGOTIATING.value, _("Negotiating")
        ACCEPTED = QuoteStatus.ACCEPTED.value, _("Accepted")
        PAID = QuoteStatus.PAID.value, _("Paid")
        CANCELLED = QuoteStatus.CANCELLED.value, _("Cancelled")
        REJECTED = QuoteStatus.REJECTED.value, _("Rejected")
        EXPIRED = QuoteStatus.EXPIRED.value, _("Expired")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
    )
    selected_vehicles = models.JSONField(
        default=list,
        blank=True,
        help_text=_("List of {vehicle_id, quantity} objects."),
    )
    assigned_driver_id = models.CharField(max_length=64, null=True, blank=True)
    quoted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("First time the quote entered QUOTED; anchors the 24h payment window."),
    )
    is_deleted = models.BooleanField(default=False)
    version = models.PositiveIntegerField(default=0, editable=False)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Quote")
        verbose_name_plural = _("Quotes")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "is_deleted"], name="quotes_quot_status_3c1f0a_idx"),
            models.Index(fields=["status", "created_at"], name="quotes_quot_status_8e2b4d_idx"),
            models.Index(fields=["assigned_driver_id"], name="quotes_quot_assigne_5a9c71_idx"),
        ]

    def __str__(self) -> str:
        return f"Quote {self.id} ({self.status})"


class QuoteItineraryStop(ItineraryStopRecord):
    quote = models.ForeignKey(
        Quote,
        on_delete=models.CASCADE,
        related_name="itinerary_stops",
    )

    class Meta:
        verbose_name = _("Quote itinerary stop")
        verbose_name_plural = _("Quote itinerary stops")
        ordering = ["quote", "trip_leg", "stop_order"]
        constraints = [
            models.UniqueConstraint(
                fields=["quote", "trip_leg", "stop_order"],
                name="quote_stop_unique_order",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.trip_leg} #{self.stop_order} of quote {self.quote_id}"
