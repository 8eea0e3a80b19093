"""Reservation repository over the reservations tables."""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError  # type: ignore
from django.db import transaction  # type: ignore

from apps.availability.domain.claims import SelectedVehicle
from apps.reservations.domain.entities import Reservation, ReservationStatus
from apps.reservations.models import Reservation as ReservationModel
from apps.reservations.models import ReservationItineraryStop
from shared.domain.exceptions import ReservationNotFoundError

logger = logging.getLogger(__name__)


class DjangoReservationRepository:

    def get(self, reservation_id) -> Reservation:
        return self._get_by(pk=reservation_id)

    def get_by_quote_id(self, quote_id) -> Reservation:
        return self._get_by(quote_id=quote_id)

    @transaction.atomic
    def add(self, reservation: Reservation) -> Reservation:
        """Insert the reservation together with its own copy of the stops"""
        ReservationModel.objects.create(
            id=reservation.id,
            quote_id=reservation.quote_id,
            status=reservation.status.value,
            selected_vehicles=[vehicle.to_dict() for vehicle in reservation.selected_vehicles],
            assigned_driver_id=reservation.assigned_driver_id,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )
        self._write_stops(reservation)
        logger.info(f"Reservation {reservation.id} created from quote {reservation.quote_id}")
        return reservation

    @transaction.atomic
    def save(self, reservation: Reservation) -> Reservation:
        updated = ReservationModel.objects.filter(pk=reservation.id).update(
            status=reservation.status.value,
            selected_vehicles=[vehicle.to_dict() for vehicle in reservation.selected_vehicles],
            assigned_driver_id=reservation.assigned_driver_id,
            updated_at=reservation.updated_at,
        )
        if not updated:
            raise ReservationNotFoundError(f"Reservation {reservation.id} not found")
        ReservationItineraryStop.objects.filter(reservation_id=reservation.id).delete()
        self._write_stops(reservation)
        return reservation

    def _get_by(self, **lookup) -> Reservation:
        try:
            record = ReservationModel.objects.prefetch_related("itinerary_stops").get(**lookup)
        except (ReservationModel.DoesNotExist, ValidationError):
            raise ReservationNotFoundError(f"Reservation matching {lookup} not found") from None
        return Reservation(
            id=record.id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            quote_id=record.quote_id,
            status=ReservationStatus(record.status),
            selected_vehicles=[SelectedVehicle.from_dict(item) for item in record.selected_vehicles or []],
            assigned_driver_id=record.assigned_driver_id or None,
            itinerary=[stop.to_entity() for stop in record.itinerary_stops.all()],
        )

    @staticmethod
    def _write_stops(reservation: Reservation):
        ReservationItineraryStop.objects.bulk_create([
            ReservationItineraryStop(
                reservation_id=reservation.id,
                **ReservationItineraryStop.fields_from_entity(stop),
            )
            for stop in reservation.itinerary
        ])
