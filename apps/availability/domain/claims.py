"""
Resource claims

A claim is the read model the conflict scanner works on: one quote or
reservation reduced to who owns it, what status it is in, which vehicles
and driver it names and when it travels.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple

from shared.domain.base import ValueObject

from .itinerary import ItineraryStop, sort_stops


class ResourceKind(Enum):
    VEHICLE = 'vehicle'
    DRIVER = 'driver'


class OwnerKind(Enum):
    QUOTE = 'quote'
    RESERVATION = 'reservation'


@dataclass(frozen=True)
class SelectedVehicle(ValueObject):
    """A vehicle picked for a trip and how many units of its type are wanted"""
    vehicle_id: str
    quantity: int = 1

    def __post_init__(self):
        if not self.vehicle_id:
            raise ValueError("Selected vehicle requires a vehicle id")
        if self.quantity < 1:
            raise ValueError("Selected vehicle quantity must be at least 1")

    @classmethod
    def from_dict(cls, data: dict) -> 'SelectedVehicle':
        return cls(vehicle_id=str(data['vehicle_id']), quantity=int(data.get('quantity', 1)))

    def to_dict(self) -> dict:
        return {'vehicle_id': self.vehicle_id, 'quantity': self.quantity}


@dataclass(frozen=True)
class ResourceClaim:
    """
    Normalised view of a quote or reservation

    Stores fetch claims first and attach stops in a second step, so a claim
    straight out of fetch_claims has an empty stops tuple.
    """
    owner_id: str
    owner_kind: OwnerKind
    status: Enum
    vehicle_ids: FrozenSet[str] = frozenset()
    assigned_driver_id: Optional[str] = None
    created_at: Optional[datetime] = None
    quoted_at: Optional[datetime] = None
    is_deleted: bool = False
    source_owner_id: Optional[str] = None
    stops: Tuple[ItineraryStop, ...] = field(default=(), compare=False)

    def resource_ids(self, kind: ResourceKind) -> FrozenSet[str]:
        """Ids of the resources of the given kind this claim names"""
        if kind is ResourceKind.VEHICLE:
            return self.vehicle_ids
        if self.assigned_driver_id:
            return frozenset({self.assigned_driver_id})
        return frozenset()

    def names_resource(self, kind: ResourceKind) -> bool:
        return bool(self.resource_ids(kind))

    def is_owned_by(self, owner_id: str) -> bool:
        """True for the owner itself and for a reservation created from it"""
        return owner_id in (self.owner_id, self.source_owner_id)

    def with_stops(self, stops: Iterable[ItineraryStop]) -> 'ResourceClaim':
        return replace(self, stops=tuple(sort_stops(stops)))
