"""
Reservation Domain Entities

- ReservationStatus: FSM states for a confirmed booking
- Reservation: aggregate created from a paid quote
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional
from uuid import UUID, uuid4

from shared.domain.base import Aggregate, utcnow
from shared.domain.exceptions import LifecycleViolation
from apps.availability.domain.claims import OwnerKind, ResourceClaim, SelectedVehicle
from apps.availability.domain.itinerary import ItineraryStop, sort_stops
from apps.reservations.domain.events import ReservationCreated, ReservationStatusChanged


class ReservationStatus(Enum):
    """
    Reservation Status Finite State Machine

    State transitions:
    - CONFIRMED -> MODIFIED (itinerary, vehicles or driver changed)
    - CONFIRMED/MODIFIED -> COMPLETED (trip finished)
    - CONFIRMED/MODIFIED -> CANCELLED
    """
    CONFIRMED = 'confirmed'
    MODIFIED = 'modified'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


RESERVATION_TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.MODIFIED,
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.MODIFIED: frozenset({
        ReservationStatus.MODIFIED,
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


@dataclass(kw_only=True, eq=False)
class Reservation(Aggregate):
    """
    Reservation Aggregate Root

    Key invariants:
    - only created from a PAID quote
    - owns its own copy of the itinerary; later edits to the quote's stops
      never reach it
    """

    quote_id: UUID
    status: ReservationStatus = ReservationStatus.CONFIRMED
    selected_vehicles: List[SelectedVehicle] = field(default_factory=list)
    assigned_driver_id: Optional[str] = None
    itinerary: List[ItineraryStop] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.status, ReservationStatus):
            self.status = ReservationStatus(self.status)
        self.itinerary = sort_stops(self.itinerary)

    @classmethod
    def from_paid_quote(cls, quote, now: Optional[datetime] = None) -> 'Reservation':
        """
        Create the reservation for a quote that just reached PAID

        Events: ReservationCreated
        """
        from apps.quotes.domain.entities import QuoteStatus

        if quote.status is not QuoteStatus.PAID:
            raise LifecycleViolation(
                f"Reservation requires a paid quote; quote {quote.id} is {quote.status.value}"
            )

        now = now or utcnow()
        reservation = cls(
            id=uuid4(),
            created_at=now,
            updated_at=now,
            quote_id=quote.id,
            selected_vehicles=list(quote.selected_vehicles),
            assigned_driver_id=quote.assigned_driver_id,
            # ItineraryStop is immutable; a new list is an independent copy
            itinerary=list(quote.itinerary),
        )
        reservation.add_event(ReservationCreated(
            aggregate_id=reservation.id,
            reservation_id=reservation.id,
            quote_id=quote.id,
        ))
        return reservation

    @property
    def vehicle_ids(self) -> FrozenSet[str]:
        return frozenset(vehicle.vehicle_id for vehicle in self.selected_vehicles)

    def to_claim(self) -> ResourceClaim:
        return ResourceClaim(
            owner_id=str(self.id),
            owner_kind=OwnerKind.RESERVATION,
            status=self.status,
            vehicle_ids=self.vehicle_ids,
            assigned_driver_id=self.assigned_driver_id,
            created_at=self.created_at,
            source_owner_id=str(self.quote_id),
        )

    def _transition(self, target: ReservationStatus, now: Optional[datetime] = None):
        if target not in RESERVATION_TRANSITIONS[self.status]:
            raise LifecycleViolation(
                f"Cannot move reservation {self.id} from {self.status.value} to {target.value}"
            )
        old_status = self.status
        self.status = target
        self.updated_at = now or utcnow()
        self.add_event(ReservationStatusChanged(
            aggregate_id=self.id,
            reservation_id=self.id,
            old_status=old_status.value,
            new_status=target.value,
        ))

    def change_driver(self, driver_id: Optional[str], now: Optional[datetime] = None):
        self._transition(ReservationStatus.MODIFIED, now)
        self.assigned_driver_id = driver_id

    def adjust_vehicles(self, vehicles: List[SelectedVehicle], now: Optional[datetime] = None):
        self._transition(ReservationStatus.MODIFIED, now)
        self.selected_vehicles = list(vehicles)

    def update_itinerary(self, stops: List[ItineraryStop], now: Optional[datetime] = None):
        self._transition(ReservationStatus.MODIFIED, now)
        self.itinerary = sort_stops(stops)

    def complete(self, now: Optional[datetime] = None):
        self._transition(ReservationStatus.COMPLETED, now)

    def cancel(self, now: Optional[datetime] = None):
        self._transition(ReservationStatus.CANCELLED, now)
