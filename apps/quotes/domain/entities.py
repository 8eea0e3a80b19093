"""
Quote Domain Entities

Core business entities for the quote domain:
- QuoteStatus: closed set of lifecycle states
- QUOTE_TRANSITIONS: explicit table of allowed next states
- Quote: aggregate root enforcing the lifecycle
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from shared.domain.base import Aggregate, utcnow
from shared.domain.exceptions import LifecycleViolation
from apps.availability.domain.claims import OwnerKind, ResourceClaim, SelectedVehicle
from apps.availability.domain.itinerary import ItineraryStop, sort_stops
from apps.quotes.domain.events import (
    DriverAssigned,
    QuoteCreated,
    QuoteDeleted,
    QuotePaid,
    QuoteStatusChanged,
)


class QuoteStatus(Enum):
    """
    Quote Status Finite State Machine

    State transitions:
    - DRAFT -> SUBMITTED (shopper finished the itinerary)
    - SUBMITTED -> QUOTED (admin priced it with a driver)
    - QUOTED <-> NEGOTIATING (shopper pushes back, admin re-quotes)
    - QUOTED/NEGOTIATING -> ACCEPTED -> PAID (PAID creates the reservation)
    - QUOTED -> PAID (direct checkout within the payment window)
    - QUOTED -> EXPIRED (cleanup after the 24h payment window)
    - any non-terminal -> CANCELLED / REJECTED
    """
    DRAFT = 'draft'                # Being built; holds its vehicles for 30 min
    SUBMITTED = 'submitted'        # Complete, waiting for admin pricing
    QUOTED = 'quoted'              # Priced with a driver; 24h payment window
    NEGOTIATING = 'negotiating'    # Under negotiation
    ACCEPTED = 'accepted'          # Accepted, awaiting payment
    PAID = 'paid'                  # Paid, became a reservation
    CANCELLED = 'cancelled'        # Withdrawn by the shopper
    REJECTED = 'rejected'          # Declined by an admin
    EXPIRED = 'expired'            # Payment window lapsed


_WITHDRAWALS = frozenset({QuoteStatus.CANCELLED, QuoteStatus.REJECTED})

QUOTE_TRANSITIONS: Dict[QuoteStatus, FrozenSet[QuoteStatus]] = {
    QuoteStatus.DRAFT: frozenset({QuoteStatus.SUBMITTED}) | _WITHDRAWALS,
    QuoteStatus.SUBMITTED: frozenset({QuoteStatus.QUOTED}) | _WITHDRAWALS,
    QuoteStatus.QUOTED: frozenset({
        QuoteStatus.NEGOTIATING,
        QuoteStatus.ACCEPTED,
        QuoteStatus.PAID,
        QuoteStatus.EXPIRED,
    }) | _WITHDRAWALS,
    QuoteStatus.NEGOTIATING: frozenset({QuoteStatus.QUOTED, QuoteStatus.ACCEPTED}) | _WITHDRAWALS,
    QuoteStatus.ACCEPTED: frozenset({QuoteStatus.PAID}) | _WITHDRAWALS,
    QuoteStatus.PAID: frozenset(),
    QuoteStatus.CANCELLED: frozenset(),
    QuoteStatus.REJECTED: frozenset(),
    QuoteStatus.EXPIRED: frozenset(),
}

TERMINAL_QUOTE_STATUSES = frozenset(
    status for status, allowed in QUOTE_TRANSITIONS.items() if not allowed
)

# Statuses in which the shopper may still change vehicles and stops
EDITABLE_QUOTE_STATUSES = frozenset({QuoteStatus.DRAFT, QuoteStatus.SUBMITTED})

# Statuses in which an admin may (re)assign the driver
DRIVER_ASSIGNABLE_STATUSES = frozenset({QuoteStatus.SUBMITTED, QuoteStatus.QUOTED})

PAYMENT_WINDOW = timedelta(hours=24)


@dataclass(kw_only=True, eq=False)
class Quote(Aggregate):
    """
    Quote Aggregate Root

    Key invariants:
    - status only changes along QUOTE_TRANSITIONS
    - quoted_at is stamped on the first entry into QUOTED and never cleared
    - deleted and terminal quotes reject every transition
    - version is the optimistic-concurrency counter the repository checks
    """

    status: QuoteStatus = QuoteStatus.DRAFT
    selected_vehicles: List[SelectedVehicle] = field(default_factory=list)
    assigned_driver_id: Optional[str] = None
    quoted_at: Optional[datetime] = None
    itinerary: List[ItineraryStop] = field(default_factory=list)
    is_deleted: bool = False
    version: int = 0

    def __post_init__(self):
        if not isinstance(self.status, QuoteStatus):
            self.status = QuoteStatus(self.status)
        self.itinerary = sort_stops(self.itinerary)

    @classmethod
    def create_draft(
        cls,
        selected_vehicles: List[SelectedVehicle],
        itinerary: List[ItineraryStop],
        now: Optional[datetime] = None,
    ) -> 'Quote':
        """
        Start a new draft; its vehicles are held from created_at on

        Events: QuoteCreated
        """
        now = now or utcnow()
        quote = cls(
            created_at=now,
            updated_at=now,
            selected_vehicles=list(selected_vehicles),
            itinerary=list(itinerary),
        )
        quote.add_event(QuoteCreated(
            aggregate_id=quote.id,
            quote_id=quote.id,
            vehicle_ids=quote.vehicle_ids,
        ))
        return quote

    # ----- queries -----

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_QUOTE_STATUSES

    @property
    def vehicle_ids(self) -> FrozenSet[str]:
        return frozenset(vehicle.vehicle_id for vehicle in self.selected_vehicles)

    def can_transition_to(self, target: QuoteStatus) -> bool:
        if self.is_deleted:
            return False
        return target in QUOTE_TRANSITIONS[self.status]

    def is_payment_window_expired(
        self,
        now: Optional[datetime] = None,
        window: timedelta = PAYMENT_WINDOW,
    ) -> bool:
        """A quote without quoted_at has no running payment window"""
        if self.quoted_at is None:
            return False
        return (now or utcnow()) - self.quoted_at > window

    def to_claim(self) -> ResourceClaim:
        return ResourceClaim(
            owner_id=str(self.id),
            owner_kind=OwnerKind.QUOTE,
            status=self.status,
            vehicle_ids=self.vehicle_ids,
            assigned_driver_id=self.assigned_driver_id,
            created_at=self.created_at,
            quoted_at=self.quoted_at,
            is_deleted=self.is_deleted,
        )

    # ----- lifecycle -----

    def ensure_can_transition(self, target: QuoteStatus):
        """Raise LifecycleViolation unless target is reachable from the current state"""
        if self.is_deleted:
            raise LifecycleViolation(
                f"Quote {self.id} is deleted and cannot move to {target.value}"
            )
        if self.is_terminal:
            raise LifecycleViolation(
                f"Quote {self.id} is {self.status.value}, a terminal state"
            )
        if target not in QUOTE_TRANSITIONS[self.status]:
            raise LifecycleViolation(
                f"Cannot move quote {self.id} from {self.status.value} to {target.value}"
            )

    def transition_to(self, target: QuoteStatus, now: Optional[datetime] = None):
        """
        Move to target status

        Events: QuoteStatusChanged, plus QuotePaid on entering PAID
        """
        self.ensure_can_transition(target)
        now = now or utcnow()

        old_status = self.status
        self.status = target
        self.updated_at = now

        if target is QuoteStatus.QUOTED and self.quoted_at is None:
            self.quoted_at = now

        if target is QuoteStatus.EXPIRED:
            # quoted_at stays for the audit trail
            self.assigned_driver_id = None

        self.add_event(QuoteStatusChanged(
            aggregate_id=self.id,
            quote_id=self.id,
            old_status=old_status.value,
            new_status=target.value,
        ))

        if target is QuoteStatus.PAID:
            self.add_event(QuotePaid(
                aggregate_id=self.id,
                quote_id=self.id,
                vehicle_ids=self.vehicle_ids,
                driver_id=self.assigned_driver_id,
            ))

    def submit(self, now: Optional[datetime] = None):
        if not self.itinerary:
            raise LifecycleViolation(f"Quote {self.id} needs an itinerary before it can be submitted")
        if not self.selected_vehicles:
            raise LifecycleViolation(f"Quote {self.id} needs at least one vehicle before it can be submitted")
        self.transition_to(QuoteStatus.SUBMITTED, now)

    def mark_quoted(self, now: Optional[datetime] = None):
        self.transition_to(QuoteStatus.QUOTED, now)

    def negotiate(self, now: Optional[datetime] = None):
        self.transition_to(QuoteStatus.NEGOTIATING, now)

    def accept(self, now: Optional[datetime] = None):
        self.transition_to(QuoteStatus.ACCEPTED, now)

    def mark_paid(self, now: Optional[datetime] = None):
        self.transition_to(QuoteStatus.PAID, now)

    def cancel(self, now: Optional[datetime] = None):
        self.transition_to(QuoteStatus.CANCELLED, now)

    def reject(self, now: Optional[datetime] = None):
        self.transition_to(QuoteStatus.REJECTED, now)

    def expire(self, now: Optional[datetime] = None):
        self.transition_to(QuoteStatus.EXPIRED, now)

    # ----- edits -----

    def assign_driver(self, driver_id: str, now: Optional[datetime] = None):
        """Attach a driver; only while SUBMITTED or QUOTED"""
        if not driver_id:
            raise ValueError("Driver id is required")
        if self.is_deleted or self.status not in DRIVER_ASSIGNABLE_STATUSES:
            raise LifecycleViolation(
                f"Cannot assign a driver to quote {self.id} in status {self.status.value}"
            )

        previous = self.assigned_driver_id
        self.assigned_driver_id = driver_id
        self.updated_at = now or utcnow()

        self.add_event(DriverAssigned(
            aggregate_id=self.id,
            quote_id=self.id,
            driver_id=driver_id,
            previous_driver_id=previous,
        ))

    def _ensure_editable(self):
        if self.is_deleted or self.status not in EDITABLE_QUOTE_STATUSES:
            raise LifecycleViolation(
                f"Quote {self.id} cannot be edited in status {self.status.value}"
            )

    def select_vehicles(self, vehicles: List[SelectedVehicle], now: Optional[datetime] = None):
        self._ensure_editable()
        self.selected_vehicles = list(vehicles)
        self.updated_at = now or utcnow()

    def replace_itinerary(self, stops: List[ItineraryStop], now: Optional[datetime] = None):
        self._ensure_editable()
        self.itinerary = sort_stops(stops)
        self.updated_at = now or utcnow()

    def delete(self, now: Optional[datetime] = None):
        """Soft delete; only drafts can be discarded"""
        if self.is_deleted:
            raise LifecycleViolation(f"Quote {self.id} is already deleted")
        if self.status is not QuoteStatus.DRAFT:
            raise LifecycleViolation(
                f"Only draft quotes can be deleted; quote {self.id} is {self.status.value}"
            )
        self.is_deleted = True
        self.updated_at = now or utcnow()
        self.add_event(QuoteDeleted(aggregate_id=self.id, quote_id=self.id))

    def __str__(self):
        return f"Quote({self.id}, {self.status.value})"
