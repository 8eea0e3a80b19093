"""Reservation Domain Events"""

from dataclasses import dataclass
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class ReservationCreated(DomainEvent):
    """
    Event: A paid quote became a reservation

    Triggers:
    - Invoice email
    - Driver notification
    """
    reservation_id: UUID
    quote_id: UUID


@dataclass(kw_only=True)
class ReservationStatusChanged(DomainEvent):
    """Event: Reservation was modified, completed or cancelled"""
    reservation_id: UUID
    old_status: str
    new_status: str
