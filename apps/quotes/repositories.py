"""
Quote Repository

Maps the Quote aggregate to the quotes tables. Writes are guarded by the
version column: save() only updates the row whose version still matches
the one the aggregate was loaded with.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List
from uuid import UUID

from django.core.exceptions import ValidationError  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import F  # type: ignore

from apps.availability.domain.claims import SelectedVehicle
from apps.quotes.domain.entities import Quote, QuoteStatus
from apps.quotes.models import Quote as QuoteModel
from apps.quotes.models import QuoteItineraryStop
from shared.domain.exceptions import ConcurrentModificationError, QuoteNotFoundError

logger = logging.getLogger(__name__)


class DjangoQuoteRepository:

    def get(self, quote_id) -> Quote:
        try:
            record = QuoteModel.objects.prefetch_related("itinerary_stops").get(pk=quote_id)
        except (QuoteModel.DoesNotExist, ValidationError):
            raise QuoteNotFoundError(f"Quote {quote_id} not found") from None
        return self._to_entity(record)

    @transaction.atomic
    def add(self, quote: Quote) -> Quote:
        QuoteModel.objects.create(
            id=quote.id,
            status=quote.status.value,
            selected_vehicles=[vehicle.to_dict() for vehicle in quote.selected_vehicles],
            assigned_driver_id=quote.assigned_driver_id,
            quoted_at=quote.quoted_at,
            is_deleted=quote.is_deleted,
            version=quote.version,
            created_at=quote.created_at,
            updated_at=quote.updated_at,
        )
        self._write_stops(quote)
        logger.debug(f"Inserted quote {quote.id} with {len(quote.itinerary)} stops")
        return quote

    @transaction.atomic
    def save(self, quote: Quote, include_itinerary: bool = False) -> Quote:
        """
        Persist quote fields and bump the version

        Raises:
            ConcurrentModificationError: the row changed since it was loaded
        """
        updated = QuoteModel.objects.filter(pk=quote.id, version=quote.version).update(
            status=quote.status.value,
            selected_vehicles=[vehicle.to_dict() for vehicle in quote.selected_vehicles],
            assigned_driver_id=quote.assigned_driver_id,
            quoted_at=quote.quoted_at,
            is_deleted=quote.is_deleted,
            updated_at=quote.updated_at,
            version=F("version") + 1,
        )
        if not updated:
            raise ConcurrentModificationError(
                f"Quote {quote.id} was modified concurrently (expected version {quote.version})"
            )
        quote.version += 1

        if include_itinerary:
            QuoteItineraryStop.objects.filter(quote_id=quote.id).delete()
            self._write_stops(quote)
        return quote

    def find_stale_quoted_ids(self, cutoff: datetime) -> List[UUID]:
        """Quotes still QUOTED whose payment window started before cutoff"""
        return list(
            QuoteModel.objects.filter(
                status=QuoteStatus.QUOTED.value,
                is_deleted=False,
                quoted_at__lt=cutoff,
            )
            .order_by("quoted_at")
            .values_list("id", flat=True)
        )

    # ----- mapping -----

    @staticmethod
    def _write_stops(quote: Quote):
        QuoteItineraryStop.objects.bulk_create([
            QuoteItineraryStop(quote_id=quote.id, **QuoteItineraryStop.fields_from_entity(stop))
            for stop in quote.itinerary
        ])

    @staticmethod
    def _to_entity(record: QuoteModel) -> Quote:
        return Quote(
            id=record.id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            status=QuoteStatus(record.status),
            selected_vehicles=[SelectedVehicle.from_dict(item) for item in record.selected_vehicles or []],
            assigned_driver_id=record.assigned_driver_id or None,
            quoted_at=record.quoted_at,
            itinerary=[stop.to_entity() for stop in record.itinerary_stops.all()],
            is_deleted=record.is_deleted,
            version=record.version,
        )

