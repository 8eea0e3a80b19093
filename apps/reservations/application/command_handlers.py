"""
Reservation Command Handlers

Admin changes to a confirmed reservation. Each change re-runs the
availability scan over the reservation's window before it is written.

The scan excludes the quote the reservation was paid from: that PAID quote
and the reservation itself both claim the same vehicles and driver, and
excluding the quote id drops both.

Commands:
- ChangeReservationDriverCommand: swap the assigned driver
- AdjustReservationVehiclesCommand: replace the selected vehicles
- UpdateReservationItineraryCommand: replace the stops
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional
from uuid import UUID
import logging

from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import utcnow
from apps.availability.application.services import (
    AvailabilityService,
    build_availability_service,
    window_for_stops,
)
from apps.availability.domain.claims import SelectedVehicle
from apps.availability.domain.itinerary import ItineraryStop
from apps.reservations.domain.entities import Reservation

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class ChangeReservationDriverCommand:
    reservation_id: UUID
    driver_id: str


@dataclass
class AdjustReservationVehiclesCommand:
    reservation_id: UUID
    selected_vehicles: List[SelectedVehicle]


@dataclass
class UpdateReservationItineraryCommand:
    """Command to move a reservation to new stops (vehicles and driver are re-checked)"""
    reservation_id: UUID
    itinerary: List[ItineraryStop]


# ===== Command Handlers =====

class _ReservationHandler:

    def __init__(
        self,
        reservation_repo,
        availability: Optional[AvailabilityService] = None,
        clock: Callable[[], datetime] = utcnow,
        bus=None,
    ):
        self.reservation_repo = reservation_repo
        self._availability = availability
        self.clock = clock
        self.bus = bus

    @property
    def availability(self) -> AvailabilityService:
        if self._availability is None:
            self._availability = build_availability_service()
        return self._availability

    def _ensure_available(
        self,
        reservation: Reservation,
        stops: Iterable[ItineraryStop],
        vehicle_ids: Iterable[str],
        driver_id: Optional[str],
        now: datetime,
    ):
        self.availability.ensure_available(
            window_for_stops(stops),
            vehicle_ids,
            driver_id,
            exclude_owner_id=str(reservation.quote_id),
            now=now,
        )


class ChangeReservationDriverHandler(_ReservationHandler):

    def handle(self, command: ChangeReservationDriverCommand) -> Reservation:
        if not command.driver_id:
            raise ValueError("Driver id is required")
        now = self.clock()
        logger.info(f"Changing driver of reservation {command.reservation_id} to {command.driver_id}")

        with DjangoUnitOfWork(self.bus) as uow:
            reservation = self.reservation_repo.get(command.reservation_id)

            self._ensure_available(reservation, reservation.itinerary, (), command.driver_id, now)
            reservation.change_driver(command.driver_id, now)

            self.reservation_repo.save(reservation)
            uow.collect_events(reservation)

        return reservation


class AdjustReservationVehiclesHandler(_ReservationHandler):

    def handle(self, command: AdjustReservationVehiclesCommand) -> Reservation:
        if not command.selected_vehicles:
            raise ValueError("At least one vehicle is required")
        now = self.clock()

        with DjangoUnitOfWork(self.bus) as uow:
            reservation = self.reservation_repo.get(command.reservation_id)

            vehicle_ids = {vehicle.vehicle_id for vehicle in command.selected_vehicles}
            self._ensure_available(reservation, reservation.itinerary, vehicle_ids, None, now)
            reservation.adjust_vehicles(command.selected_vehicles, now)

            self.reservation_repo.save(reservation)
            uow.collect_events(reservation)

        logger.info(f"Reservation {reservation.id} now uses vehicles {sorted(reservation.vehicle_ids)}")
        return reservation


class UpdateReservationItineraryHandler(_ReservationHandler):
    """
    Handler for UpdateReservationItinerary command

    The current vehicles and driver must be free over the new stops.
    """

    def handle(self, command: UpdateReservationItineraryCommand) -> Reservation:
        now = self.clock()

        with DjangoUnitOfWork(self.bus) as uow:
            reservation = self.reservation_repo.get(command.reservation_id)

            self._ensure_available(
                reservation,
                command.itinerary,
                reservation.vehicle_ids,
                reservation.assigned_driver_id,
                now,
            )
            reservation.update_itinerary(command.itinerary, now)

            self.reservation_repo.save(reservation)
            uow.collect_events(reservation)

        logger.info(f"Reservation {reservation.id} itinerary replaced ({len(reservation.itinerary)} stops)")
        return reservation
