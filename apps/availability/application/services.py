"""
Availability Service

Entry point for booking use cases: given a window and the resources a
caller wants, say which of them are free. Vehicles are checked against
hard claims and draft holds; drivers against hard claims only.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import FrozenSet, Iterable, Optional, Set
import logging

from django.conf import settings

from shared.domain.exceptions import InvalidWindowError, ResourceConflictError
from shared.domain.value_objects import TimeRange
from apps.availability.domain.claims import ResourceKind
from apps.availability.domain.itinerary import ItineraryStop, TripWindow
from apps.availability.domain.scanner import (
    DEFAULT_DRAFT_HOLD,
    DEFAULT_DRIVER_HOLD,
    ConflictScanner,
)
from apps.availability.domain.store import ClaimStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityResult:
    """Outcome of one availability check"""
    available_vehicles: FrozenSet[str]
    unavailable_vehicles: FrozenSet[str]
    driver_available: bool
    requested_driver_id: Optional[str] = None

    @property
    def all_available(self) -> bool:
        return not self.unavailable_vehicles and self.driver_available


def window_for_stops(stops: Iterable[ItineraryStop]) -> TimeRange:
    """Scan window covering every arrival and departure of an itinerary"""
    trip_window = TripWindow.from_stops(stops)
    if trip_window is None:
        raise InvalidWindowError("Cannot derive a window from an empty itinerary")
    return trip_window.span


class AvailabilityService:
    """
    Orchestrates the conflict scans for a booking attempt

    blocked vehicles = hard vehicle claims ∪ draft holds
    blocked drivers  = hard driver claims
    """

    def __init__(self, scanner: ConflictScanner):
        self.scanner = scanner

    def blocked_vehicle_ids(
        self,
        window: TimeRange,
        exclude_owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Set[str]:
        booked = self.scanner.find_blocked_resource_ids(
            ResourceKind.VEHICLE, window, exclude_owner_id, now
        )
        held = self.scanner.find_held_vehicle_ids(window, exclude_owner_id, now)
        return booked | held

    def blocked_driver_ids(
        self,
        window: TimeRange,
        exclude_owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Set[str]:
        return self.scanner.find_blocked_resource_ids(
            ResourceKind.DRIVER, window, exclude_owner_id, now
        )

    def check_availability(
        self,
        window: TimeRange,
        requested_vehicle_ids: Iterable[str],
        requested_driver_id: Optional[str] = None,
        exclude_owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AvailabilityResult:
        """
        Check requested vehicles and driver against the window

        Without a requested driver, driver_available is True. The driver
        scan is skipped in that case.
        """
        if not isinstance(window, TimeRange):
            raise InvalidWindowError(f"Availability window must be a TimeRange, got {window!r}")

        requested = frozenset(str(vehicle_id) for vehicle_id in requested_vehicle_ids)

        if requested:
            blocked_vehicles = self.blocked_vehicle_ids(window, exclude_owner_id, now)
        else:
            blocked_vehicles = set()

        driver_available = True
        if requested_driver_id:
            blocked_drivers = self.blocked_driver_ids(window, exclude_owner_id, now)
            driver_available = requested_driver_id not in blocked_drivers

        result = AvailabilityResult(
            available_vehicles=requested - blocked_vehicles,
            unavailable_vehicles=requested & blocked_vehicles,
            driver_available=driver_available,
            requested_driver_id=requested_driver_id,
        )

        logger.info(
            f"Availability for {window}: {len(result.available_vehicles)}/{len(requested)} vehicles free, "
            f"driver {requested_driver_id or '-'} {'free' if driver_available else 'busy'}"
        )
        return result

    def ensure_available(
        self,
        window: TimeRange,
        requested_vehicle_ids: Iterable[str],
        requested_driver_id: Optional[str] = None,
        exclude_owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AvailabilityResult:
        """
        Same as check_availability, but raise when anything is taken

        Raises:
            ResourceConflictError: naming the unavailable vehicles and driver
        """
        result = self.check_availability(
            window,
            requested_vehicle_ids,
            requested_driver_id,
            exclude_owner_id,
            now,
        )
        if result.all_available:
            return result

        busy_driver = None if result.driver_available else requested_driver_id
        parts = []
        if result.unavailable_vehicles:
            parts.append(f"vehicles {', '.join(sorted(result.unavailable_vehicles))}")
        if busy_driver:
            parts.append(f"driver {busy_driver}")

        raise ResourceConflictError(
            f"Not available for {window}: {' and '.join(parts)}",
            vehicle_ids=result.unavailable_vehicles,
            driver_id=busy_driver,
        )


def build_availability_service(store: Optional[ClaimStore] = None) -> AvailabilityService:
    """
    Wire the service from settings

    Settings:
        AVAILABILITY_DRIVER_HOLD_HOURS: payment window of a QUOTED driver claim
        AVAILABILITY_DRAFT_HOLD_MINUTES: lifetime of a draft's vehicle hold
    """
    if store is None:
        from apps.availability.repositories import DjangoClaimStore

        store = DjangoClaimStore()

    driver_hold_hours = getattr(settings, 'AVAILABILITY_DRIVER_HOLD_HOURS', None)
    draft_hold_minutes = getattr(settings, 'AVAILABILITY_DRAFT_HOLD_MINUTES', None)

    scanner = ConflictScanner(
        store,
        driver_hold=timedelta(hours=driver_hold_hours) if driver_hold_hours else DEFAULT_DRIVER_HOLD,
        draft_hold=timedelta(minutes=draft_hold_minutes) if draft_hold_minutes else DEFAULT_DRAFT_HOLD,
    )
    return AvailabilityService(scanner)
