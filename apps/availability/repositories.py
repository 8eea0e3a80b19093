"""Django-backed claim store over the quote and reservation tables."""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Collection, Iterable, List, Optional

from django.db.models import Max, Min, Q  # type: ignore

from apps.availability.domain.claims import OwnerKind, ResourceClaim, SelectedVehicle
from apps.availability.domain.itinerary import ItineraryStop
from apps.quotes.domain.entities import QuoteStatus
from apps.quotes.models import Quote, QuoteItineraryStop
from apps.reservations.domain.entities import ReservationStatus
from apps.reservations.models import Reservation, ReservationItineraryStop
from shared.domain.exceptions import OwnerNotFoundError
from shared.domain.value_objects import TimeRange

logger = logging.getLogger(__name__)

_STOP_FIELDS = (
    "trip_leg",
    "stop_order",
    "location_name",
    "arrival_time",
    "departure_time",
    "is_resource_staying",
    "staying_duration",
)


def _vehicle_ids(selected_vehicles) -> frozenset:
    return frozenset(
        SelectedVehicle.from_dict(item).vehicle_id for item in (selected_vehicles or [])
    )


def _meeting_window(queryset, window: TimeRange):
    """
    Keep owners whose arrival span or departure span meets the window

    Same closed-bound test overlaps() applies to the attached stops,
    evaluated on MIN/MAX of the stop rows. Owners without stops drop out.
    """
    queryset = queryset.annotate(
        first_arrival=Min("itinerary_stops__arrival_time"),
        last_arrival=Max("itinerary_stops__arrival_time"),
        first_departure=Min("itinerary_stops__departure_time"),
        last_departure=Max("itinerary_stops__departure_time"),
    )
    return queryset.filter(
        Q(first_arrival__lte=window.end, last_arrival__gte=window.start)
        | Q(first_departure__lte=window.end, last_departure__gte=window.start)
    )


def _stop_from_row(row: dict) -> ItineraryStop:
    return ItineraryStop(
        trip_leg=row["trip_leg"],
        order=row["stop_order"],
        arrival_time=row["arrival_time"],
        departure_time=row["departure_time"],
        is_resource_staying=row["is_resource_staying"],
        staying_duration=row["staying_duration"],
        location_name=row["location_name"],
    )


class DjangoClaimStore:
    """
    Reads claims in two round trips per owner kind.

    fetch_claims selects only the columns a claim needs, narrowed to owners
    whose stops meet the scan window when one is given; attach_stops loads
    the stop rows of the surviving candidates in one query and groups them
    in memory. Nothing is locked; promotions rely on the version check of
    the quote row.
    """

    def fetch_claims(
        self,
        owner_kind: OwnerKind,
        statuses: Collection,
        created_since: Optional[datetime] = None,
        window: Optional[TimeRange] = None,
    ) -> List[ResourceClaim]:
        status_values = [status.value for status in statuses]

        if owner_kind is OwnerKind.QUOTE:
            queryset = Quote.objects.filter(status__in=status_values, is_deleted=False)
            if created_since is not None:
                queryset = queryset.filter(created_at__gte=created_since)
            if window is not None:
                queryset = _meeting_window(queryset, window)
            rows = queryset.order_by().values(
                "id",
                "status",
                "selected_vehicles",
                "assigned_driver_id",
                "created_at",
                "quoted_at",
            )
            return [
                ResourceClaim(
                    owner_id=str(row["id"]),
                    owner_kind=OwnerKind.QUOTE,
                    status=QuoteStatus(row["status"]),
                    vehicle_ids=_vehicle_ids(row["selected_vehicles"]),
                    assigned_driver_id=row["assigned_driver_id"] or None,
                    created_at=row["created_at"],
                    quoted_at=row["quoted_at"],
                )
                for row in rows
            ]

        queryset = Reservation.objects.filter(status__in=status_values)
        if created_since is not None:
            queryset = queryset.filter(created_at__gte=created_since)
        if window is not None:
            queryset = _meeting_window(queryset, window)
        rows = queryset.order_by().values(
            "id",
            "quote_id",
            "status",
            "selected_vehicles",
            "assigned_driver_id",
            "created_at",
        )
        return [
            ResourceClaim(
                owner_id=str(row["id"]),
                owner_kind=OwnerKind.RESERVATION,
                status=ReservationStatus(row["status"]),
                vehicle_ids=_vehicle_ids(row["selected_vehicles"]),
                assigned_driver_id=row["assigned_driver_id"] or None,
                created_at=row["created_at"],
                source_owner_id=str(row["quote_id"]),
            )
            for row in rows
        ]

    def attach_stops(self, claims: Iterable[ResourceClaim]) -> List[ResourceClaim]:
        claims = list(claims)
        quote_ids = [c.owner_id for c in claims if c.owner_kind is OwnerKind.QUOTE]
        reservation_ids = [c.owner_id for c in claims if c.owner_kind is OwnerKind.RESERVATION]

        stops_by_owner = defaultdict(list)
        if quote_ids:
            for row in QuoteItineraryStop.objects.filter(quote_id__in=quote_ids).values("quote_id", *_STOP_FIELDS):
                stops_by_owner[str(row["quote_id"])].append(_stop_from_row(row))
        if reservation_ids:
            rows = ReservationItineraryStop.objects.filter(reservation_id__in=reservation_ids).values(
                "reservation_id", *_STOP_FIELDS
            )
            for row in rows:
                stops_by_owner[str(row["reservation_id"])].append(_stop_from_row(row))

        return [claim.with_stops(stops_by_owner.get(claim.owner_id, ())) for claim in claims]

    def get_owner_kind(self, owner_id: str) -> OwnerKind:
        try:
            pk = uuid.UUID(str(owner_id))
        except ValueError:
            raise OwnerNotFoundError(f"No quote or reservation with id {owner_id}") from None

        if Quote.objects.filter(pk=pk).exists():
            return OwnerKind.QUOTE
        if Reservation.objects.filter(pk=pk).exists():
            return OwnerKind.RESERVATION

        logger.debug(f"Owner lookup missed for {owner_id}")
        raise OwnerNotFoundError(f"No quote or reservation with id {owner_id}")
