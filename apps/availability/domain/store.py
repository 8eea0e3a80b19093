"""
Claim store

The persistence surface the conflict scanner reads from. Claims are read
in two steps: fetch the candidate owners, then attach their stops. The
Django implementation lives in apps.availability.repositories.
"""

from datetime import datetime
from typing import Collection, Iterable, List, Optional, Protocol

from shared.domain.exceptions import OwnerNotFoundError
from shared.domain.value_objects import TimeRange

from .claims import OwnerKind, ResourceClaim
from .overlap import overlaps


class ClaimStore(Protocol):

    def fetch_claims(
        self,
        owner_kind: OwnerKind,
        statuses: Collection,
        created_since: Optional[datetime] = None,
        window: Optional[TimeRange] = None,
    ) -> List[ResourceClaim]:
        """
        Non-deleted owners of one kind in the given statuses, without stops

        With a window, owners whose stops cannot overlap it may be left out.
        """
        ...

    def attach_stops(self, claims: Iterable[ResourceClaim]) -> List[ResourceClaim]:
        """Return the same claims with their stop sequences filled in"""
        ...

    def get_owner_kind(self, owner_id: str) -> OwnerKind:
        """Kind of the owner with this id; OwnerNotFoundError when there is none"""
        ...


class InMemoryClaimStore:
    """
    ClaimStore over aggregates held in memory

    Accepts anything with to_claim() and an itinerary, i.e. Quote and
    Reservation aggregates. Used by domain tests and by callers that
    already hold the aggregates.
    """

    def __init__(self, owners: Iterable = ()):
        self._owners = {}
        for owner in owners:
            self.add(owner)

    def add(self, owner):
        self._owners[str(owner.id)] = owner

    def fetch_claims(self, owner_kind, statuses, created_since=None, window=None):
        statuses = set(statuses)
        claims = []
        for owner in self._owners.values():
            claim = owner.to_claim()
            if claim.owner_kind is not owner_kind or claim.is_deleted:
                continue
            if claim.status not in statuses:
                continue
            if created_since is not None and claim.created_at < created_since:
                continue
            if window is not None and not overlaps(window, owner.itinerary):
                continue
            claims.append(claim)
        return claims

    def attach_stops(self, claims):
        return [
            claim.with_stops(self._owners[claim.owner_id].itinerary)
            for claim in claims
        ]

    def get_owner_kind(self, owner_id):
        owner = self._owners.get(str(owner_id))
        if owner is None:
            raise OwnerNotFoundError(f"No quote or reservation with id {owner_id}")
        return owner.to_claim().owner_kind
