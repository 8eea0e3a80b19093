"""
Quote Domain Events

Events recorded by the Quote aggregate. They are published after the
surrounding transaction commits.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class QuoteCreated(DomainEvent):
    """A shopper started a quote draft (and with it a temporary vehicle hold)"""
    quote_id: UUID
    vehicle_ids: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(kw_only=True)
class QuoteStatusChanged(DomainEvent):
    """
    Event: Quote moved from one lifecycle state to another

    Triggers:
    - Audit log entry
    - Payment window timer when new_status is 'quoted'
    """
    quote_id: UUID
    old_status: str
    new_status: str

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'quote_id': str(self.quote_id),
            'old_status': self.old_status,
            'new_status': self.new_status,
        })
        return data


@dataclass(kw_only=True)
class DriverAssigned(DomainEvent):
    """A driver was attached to the quote"""
    quote_id: UUID
    driver_id: str
    previous_driver_id: Optional[str] = None


@dataclass(kw_only=True)
class QuotePaid(DomainEvent):
    """
    Event: Quote reached PAID

    The reservation is created in the same transaction; this event is for
    downstream consumers (invoices, notifications).
    """
    quote_id: UUID
    vehicle_ids: FrozenSet[str] = field(default_factory=frozenset)
    driver_id: Optional[str] = None


@dataclass(kw_only=True)
class QuoteDeleted(DomainEvent):
    """A draft was discarded by its owner"""
    quote_id: UUID
