"""
Conflict Scanner

Decides, for a requested window, which vehicles and drivers are already
claimed. Two scans are offered:

- find_blocked_resource_ids: hard claims from quotes in a blocking status
  and from live reservations
- find_held_vehicle_ids: soft holds from recent DRAFT quotes

A caller needs the union of both to get the full set of blocked vehicles.

Policy:
1. Quote claims block in PAID, ACCEPTED, QUOTED and NEGOTIATING;
   reservation claims block in CONFIRMED and MODIFIED.
2. A QUOTED quote stops blocking its driver once the payment window
   (24h from quoted_at) has passed, even though the record still reads
   QUOTED until the cleanup task expires it. Vehicles have no such expiry.
3. A DRAFT quote holds its vehicles for 30 minutes from created_at.
   Drafts never hold drivers.
4. The excluded owner, and any reservation created from it, never
   contributes to the result.

Scans are read-only and all-or-nothing: a store failure propagates to the
caller instead of returning a partial (understated) set.
"""

from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Set
import logging

from shared.domain.base import utcnow
from shared.domain.exceptions import InvalidWindowError, OwnerNotFoundError
from shared.domain.value_objects import TimeRange
from apps.quotes.domain.entities import PAYMENT_WINDOW, QuoteStatus
from apps.reservations.domain.entities import ReservationStatus

from .claims import OwnerKind, ResourceClaim, ResourceKind
from .overlap import overlaps
from .store import ClaimStore

logger = logging.getLogger(__name__)


BLOCKING_QUOTE_STATUSES = frozenset({
    QuoteStatus.PAID,
    QuoteStatus.ACCEPTED,
    QuoteStatus.QUOTED,
    QuoteStatus.NEGOTIATING,
})

BLOCKING_RESERVATION_STATUSES = frozenset({
    ReservationStatus.CONFIRMED,
    ReservationStatus.MODIFIED,
})

HOLDING_QUOTE_STATUSES = frozenset({QuoteStatus.DRAFT})

DEFAULT_DRIVER_HOLD = PAYMENT_WINDOW
DEFAULT_DRAFT_HOLD = timedelta(minutes=30)


def _require_window(window):
    if not isinstance(window, TimeRange):
        raise InvalidWindowError(f"Scan window must be a TimeRange, got {window!r}")


class ConflictScanner:
    """
    Computes blocked resource ids over a claim store

    Usage:
        scanner = ConflictScanner(DjangoClaimStore())
        busy_drivers = scanner.find_blocked_resource_ids(
            ResourceKind.DRIVER, TimeRange(start, end), exclude_owner_id=quote_id
        )
    """

    def __init__(
        self,
        store: ClaimStore,
        driver_hold: timedelta = DEFAULT_DRIVER_HOLD,
        draft_hold: timedelta = DEFAULT_DRAFT_HOLD,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.driver_hold = driver_hold
        self.draft_hold = draft_hold
        self.clock = clock

    def find_blocked_resource_ids(
        self,
        kind: ResourceKind,
        window: TimeRange,
        exclude_owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Set[str]:
        """Ids of resources of one kind hard-claimed anywhere in the window"""
        _require_window(window)
        now = now or self.clock()
        exclude_owner_id = self._resolve_exclusion(exclude_owner_id)

        candidates = [
            claim
            for claim in self._fetch_blocking_claims(window)
            if self._is_hard_claim(claim, kind, exclude_owner_id, now)
        ]
        blocked = self._collect(kind, window, candidates)

        logger.debug(
            f"Blocked {kind.value} ids for {window}: {len(blocked)} "
            f"(from {len(candidates)} candidate claims)"
        )
        return blocked

    def find_held_vehicle_ids(
        self,
        window: TimeRange,
        exclude_owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Set[str]:
        """Ids of vehicles soft-held by recent drafts anywhere in the window"""
        _require_window(window)
        now = now or self.clock()
        exclude_owner_id = self._resolve_exclusion(exclude_owner_id)
        hold_start = now - self.draft_hold

        drafts = self.store.fetch_claims(
            OwnerKind.QUOTE,
            HOLDING_QUOTE_STATUSES,
            created_since=hold_start,
            window=window,
        )
        candidates = [
            claim
            for claim in drafts
            if self._is_hold(claim, exclude_owner_id, now)
        ]
        held = self._collect(ResourceKind.VEHICLE, window, candidates)

        logger.debug(
            f"Held vehicle ids for {window}: {len(held)} "
            f"(from {len(candidates)} live drafts)"
        )
        return held

    # ----- helpers -----

    def _resolve_exclusion(self, exclude_owner_id: Optional[str]) -> Optional[str]:
        """
        Check the excluded owner exists

        Exclusion only saves a caller from colliding with itself, so an
        unknown id is logged and the scan runs without exclusion.
        """
        if not exclude_owner_id:
            return None
        exclude_owner_id = str(exclude_owner_id)
        try:
            self.store.get_owner_kind(exclude_owner_id)
        except OwnerNotFoundError:
            logger.warning(f"Owner {exclude_owner_id} not found, scanning without exclusion")
            return None
        return exclude_owner_id

    def _fetch_blocking_claims(self, window: TimeRange) -> List[ResourceClaim]:
        claims = list(self.store.fetch_claims(OwnerKind.QUOTE, BLOCKING_QUOTE_STATUSES, window=window))
        claims.extend(
            self.store.fetch_claims(OwnerKind.RESERVATION, BLOCKING_RESERVATION_STATUSES, window=window)
        )
        return claims

    def _is_hard_claim(
        self,
        claim: ResourceClaim,
        kind: ResourceKind,
        exclude_owner_id: Optional[str],
        now: datetime,
    ) -> bool:
        if claim.is_deleted or not claim.names_resource(kind):
            return False
        if exclude_owner_id and claim.is_owned_by(exclude_owner_id):
            return False

        if claim.owner_kind is OwnerKind.RESERVATION:
            return claim.status in BLOCKING_RESERVATION_STATUSES

        if claim.status not in BLOCKING_QUOTE_STATUSES:
            return False
        if kind is ResourceKind.DRIVER and claim.status is QuoteStatus.QUOTED:
            return not self._driver_hold_expired(claim, now)
        return True

    def _driver_hold_expired(self, claim: ResourceClaim, now: datetime) -> bool:
        # A QUOTED claim without quoted_at keeps blocking.
        if claim.quoted_at is None:
            return False
        return now - claim.quoted_at > self.driver_hold

    def _is_hold(self, claim: ResourceClaim, exclude_owner_id: Optional[str], now: datetime) -> bool:
        if claim.is_deleted or claim.owner_kind is not OwnerKind.QUOTE:
            return False
        if claim.status not in HOLDING_QUOTE_STATUSES:
            return False
        if not claim.names_resource(ResourceKind.VEHICLE):
            return False
        if exclude_owner_id and claim.is_owned_by(exclude_owner_id):
            return False
        return claim.created_at is not None and now - claim.created_at <= self.draft_hold

    def _collect(self, kind: ResourceKind, window: TimeRange, candidates: Iterable[ResourceClaim]) -> Set[str]:
        """Attach stops to the surviving candidates and union the ids of the overlapping ones"""
        candidates = list(candidates)
        if not candidates:
            return set()

        ids: Set[str] = set()
        for claim in self.store.attach_stops(candidates):
            if overlaps(window, claim.stops):
                ids.update(claim.resource_ids(kind))
        return ids
