"""
Itinerary value objects

A quote or reservation owns an ordered sequence of stops. The stops are
the only source of timing for a claim: the trip window is always derived
from them and never stored.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from shared.domain.base import ValueObject
from shared.domain.value_objects import TimeRange


class TripLeg(Enum):
    """Direction of travel a stop belongs to"""
    OUTBOUND = 'outbound'
    RETURN = 'return'


# Outbound stops come before return stops regardless of their order numbers.
_LEG_RANK = {TripLeg.OUTBOUND: 0, TripLeg.RETURN: 1}


@dataclass(frozen=True)
class ItineraryStop(ValueObject):
    """
    One stop of a trip

    staying_duration is in minutes and only meaningful when the vehicle and
    driver wait at the stop (is_resource_staying).
    """
    trip_leg: TripLeg
    order: int
    arrival_time: datetime
    departure_time: Optional[datetime] = None
    is_resource_staying: bool = False
    staying_duration: Optional[int] = None
    location_name: str = ''

    def __post_init__(self):
        if not isinstance(self.trip_leg, TripLeg):
            object.__setattr__(self, 'trip_leg', TripLeg(self.trip_leg))
        if self.order < 0:
            raise ValueError(f"Stop order must be non-negative, got {self.order}")
        if self.arrival_time is None:
            raise ValueError("Stop requires an arrival time")
        if self.staying_duration is not None and self.staying_duration < 0:
            raise ValueError("Staying duration cannot be negative")

    @property
    def sort_key(self):
        return (_LEG_RANK[self.trip_leg], self.order)

    @property
    def has_departure(self) -> bool:
        return self.departure_time is not None


def sort_stops(stops: Iterable[ItineraryStop]) -> List[ItineraryStop]:
    """Order stops by (trip leg, order), outbound first"""
    return sorted(stops, key=lambda stop: stop.sort_key)


@dataclass(frozen=True)
class TripWindow(ValueObject):
    """
    Time envelope of a stop sequence

    Derived per query. The departure bounds are absent when no stop in the
    sequence carries a departure time.
    """
    earliest_arrival: datetime
    latest_arrival: datetime
    earliest_departure: Optional[datetime] = None
    latest_departure: Optional[datetime] = None

    @classmethod
    def from_stops(cls, stops: Iterable[ItineraryStop]) -> Optional['TripWindow']:
        """Build the window for a stop sequence, or None for an empty one"""
        stops = list(stops)
        if not stops:
            return None

        arrivals = [stop.arrival_time for stop in stops]
        departures = [stop.departure_time for stop in stops if stop.has_departure]

        return cls(
            earliest_arrival=min(arrivals),
            latest_arrival=max(arrivals),
            earliest_departure=min(departures) if departures else None,
            latest_departure=max(departures) if departures else None,
        )

    @property
    def arrival_range(self) -> TimeRange:
        return TimeRange(self.earliest_arrival, self.latest_arrival)

    @property
    def departure_range(self) -> Optional[TimeRange]:
        if self.earliest_departure is None:
            return None
        return TimeRange(self.earliest_departure, self.latest_departure)

    @property
    def span(self) -> TimeRange:
        """Everything from the first timestamp to the last, arrivals and departures alike"""
        return TimeRange.spanning([
            self.earliest_arrival,
            self.latest_arrival,
            self.earliest_departure,
            self.latest_departure,
        ])
