"""
Quote Command Handlers

Use cases for the quote lifecycle. Every handler runs inside a
DjangoUnitOfWork, so domain events are only published once the status
write has committed.

Commands:
- CreateQuoteDraftCommand: start a draft holding its vehicles
- TransitionQuoteCommand: move a quote to another status
- EditQuoteCommand: change the vehicles or stops of an open quote
- AssignDriverCommand: attach a driver to a submitted or quoted quote
- AutoAssignDriverCommand: pick the first free driver for a submitted quote
- AcceptQuoteCommand: shopper accepts the price
- PayQuoteCommand: payment succeeded, create the reservation
- DeleteQuoteDraftCommand: discard a draft
- ExpireQuoteCommand: payment window lapsed (cleanup task)

Promotions into a blocking status re-run the availability scan with the
quote itself excluded, then save with the optimistic version check. A
resource taken in the meantime raises ResourceConflictError; a concurrent
write to the same quote raises ConcurrentModificationError. Either way
the transaction rolls back and nothing is published.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import UUID
import logging

from django.conf import settings

from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import utcnow
from shared.domain.exceptions import LifecycleViolation
from apps.availability.application.services import (
    AvailabilityService,
    build_availability_service,
    window_for_stops,
)
from apps.availability.domain.claims import SelectedVehicle
from apps.availability.domain.itinerary import ItineraryStop
from apps.availability.domain.scanner import BLOCKING_QUOTE_STATUSES
from apps.quotes.domain.entities import PAYMENT_WINDOW, Quote, QuoteStatus
from apps.reservations.domain.entities import Reservation

logger = logging.getLogger(__name__)


def payment_window() -> timedelta:
    hours = getattr(settings, 'AVAILABILITY_DRIVER_HOLD_HOURS', None)
    return timedelta(hours=hours) if hours else PAYMENT_WINDOW


# ===== Commands =====

@dataclass
class CreateQuoteDraftCommand:
    """Command to start a quote draft"""
    selected_vehicles: List[SelectedVehicle]
    itinerary: List[ItineraryStop] = field(default_factory=list)


@dataclass
class TransitionQuoteCommand:
    """Command to move a quote to target_status"""
    quote_id: UUID
    target_status: QuoteStatus


@dataclass
class EditQuoteCommand:
    """Command to replace the vehicles and/or stops of a DRAFT or SUBMITTED quote"""
    quote_id: UUID
    selected_vehicles: Optional[List[SelectedVehicle]] = None
    itinerary: Optional[List[ItineraryStop]] = None


@dataclass
class AssignDriverCommand:
    """Command to attach a driver (admin action)"""
    quote_id: UUID
    driver_id: str


@dataclass
class AutoAssignDriverCommand:
    """Command to assign the first candidate driver that is free"""
    quote_id: UUID
    candidate_driver_ids: List[str]


@dataclass
class AcceptQuoteCommand:
    quote_id: UUID


@dataclass
class PayQuoteCommand:
    """Command sent when the payment provider confirms the charge"""
    quote_id: UUID


@dataclass
class DeleteQuoteDraftCommand:
    quote_id: UUID


@dataclass
class ExpireQuoteCommand:
    quote_id: UUID


# ===== Command Handlers =====

class _QuoteHandler:
    """Shared wiring: repositories, availability service and clock"""

    def __init__(
        self,
        quote_repo,
        reservation_repo=None,
        availability: Optional[AvailabilityService] = None,
        clock: Callable[[], datetime] = utcnow,
        bus=None,
    ):
        self.quote_repo = quote_repo
        self.reservation_repo = reservation_repo
        self._availability = availability
        self.clock = clock
        self.bus = bus

    @property
    def availability(self) -> AvailabilityService:
        if self._availability is None:
            self._availability = build_availability_service()
        return self._availability

    def _revalidate(self, quote: Quote, now: datetime, driver_id: Optional[str] = None):
        """Re-run the scan for the quote's own window, excluding the quote"""
        self.availability.ensure_available(
            window_for_stops(quote.itinerary),
            quote.vehicle_ids,
            driver_id or quote.assigned_driver_id,
            exclude_owner_id=str(quote.id),
            now=now,
        )


class CreateQuoteDraftHandler(_QuoteHandler):
    """
    Handler for CreateQuoteDraft command

    The requested vehicles must be free (hard claims and other drafts'
    holds) over the itinerary window before the draft starts holding them.
    """

    def handle(self, command: CreateQuoteDraftCommand) -> Quote:
        now = self.clock()
        quote = Quote.create_draft(command.selected_vehicles, command.itinerary, now)

        with DjangoUnitOfWork(self.bus) as uow:
            if quote.itinerary and quote.selected_vehicles:
                self.availability.ensure_available(
                    window_for_stops(quote.itinerary),
                    quote.vehicle_ids,
                    now=now,
                )
            self.quote_repo.add(quote)
            uow.collect_events(quote)

        logger.info(f"Draft quote {quote.id} created holding {len(quote.vehicle_ids)} vehicles")
        return quote


class TransitionQuoteHandler(_QuoteHandler):
    """
    Handler for TransitionQuote command

    Strategy:
    1. Load the quote and check the transition table
    2. For targets that claim resources (QUOTED, NEGOTIATING, ACCEPTED,
       PAID) re-run availability excluding the quote itself
    3. Apply the transition, save with the version check
    4. On PAID create the reservation with its own copy of the stops
    5. Collect events; they publish after commit
    """

    def handle(self, command: TransitionQuoteCommand) -> Quote:
        target = QuoteStatus(command.target_status)
        now = self.clock()
        logger.info(f"Moving quote {command.quote_id} to {target.value}")

        with DjangoUnitOfWork(self.bus) as uow:
            quote = self.quote_repo.get(command.quote_id)
            quote.ensure_can_transition(target)

            # Direct checkout from QUOTED only; an ACCEPTED quote stays payable
            if (
                target is QuoteStatus.PAID
                and quote.status is QuoteStatus.QUOTED
                and quote.is_payment_window_expired(now, payment_window())
            ):
                raise LifecycleViolation(
                    f"Payment window of quote {quote.id} has expired"
                )

            if target in BLOCKING_QUOTE_STATUSES:
                self._revalidate(quote, now)

            if target is QuoteStatus.SUBMITTED:
                quote.submit(now)
            else:
                quote.transition_to(target, now)

            self.quote_repo.save(quote)
            uow.collect_events(quote)

            if target is QuoteStatus.PAID:
                reservation = self._create_reservation(quote, now)
                uow.collect_events(reservation)

        logger.info(f"Quote {quote.id} is now {quote.status.value} (version {quote.version})")
        return quote

    def _create_reservation(self, quote: Quote, now: datetime) -> Reservation:
        if self.reservation_repo is None:
            from apps.reservations.repositories import DjangoReservationRepository

            self.reservation_repo = DjangoReservationRepository()

        reservation = Reservation.from_paid_quote(quote, now)
        self.reservation_repo.add(reservation)
        return reservation


class AcceptQuoteHandler(TransitionQuoteHandler):

    def handle(self, command: AcceptQuoteCommand) -> Quote:
        return super().handle(TransitionQuoteCommand(command.quote_id, QuoteStatus.ACCEPTED))


class PayQuoteHandler(TransitionQuoteHandler):
    """Payment confirmed: promote to PAID and create the reservation"""

    def handle(self, command: PayQuoteCommand) -> Quote:
        return super().handle(TransitionQuoteCommand(command.quote_id, QuoteStatus.PAID))


class AssignDriverHandler(_QuoteHandler):
    """
    Handler for AssignDriver command

    The quote must be SUBMITTED or QUOTED and still inside its payment
    window. The driver is checked over the quote's own window with the
    quote excluded, so re-assigning the same driver never collides with
    itself. A SUBMITTED quote moves to QUOTED once it has a driver.
    """

    def handle(self, command: AssignDriverCommand) -> Quote:
        now = self.clock()
        logger.info(f"Assigning driver {command.driver_id} to quote {command.quote_id}")

        with DjangoUnitOfWork(self.bus) as uow:
            quote = self.quote_repo.get(command.quote_id)

            if quote.is_payment_window_expired(now, payment_window()):
                raise LifecycleViolation(
                    f"Payment window of quote {quote.id} has expired; driver cannot be assigned"
                )

            self._revalidate(quote, now, driver_id=command.driver_id)
            quote.assign_driver(command.driver_id, now)
            if quote.status is QuoteStatus.SUBMITTED:
                quote.mark_quoted(now)

            self.quote_repo.save(quote)
            uow.collect_events(quote)

        return quote


class AutoAssignDriverHandler(_QuoteHandler):
    """
    Handler for AutoAssignDriver command

    Only a SUBMITTED quote without a driver is considered. The candidates
    are tried in the order given; the first one not blocked over the
    quote's window gets assigned and the quote moves to QUOTED.

    Returns None when the quote is skipped or no candidate is free.
    """

    def handle(self, command: AutoAssignDriverCommand) -> Optional[Quote]:
        now = self.clock()

        with DjangoUnitOfWork(self.bus) as uow:
            quote = self.quote_repo.get(command.quote_id)

            if quote.status is not QuoteStatus.SUBMITTED or quote.assigned_driver_id:
                logger.info(f"Quote {quote.id} is {quote.status.value}, skipping auto-assignment")
                return None
            if not quote.itinerary:
                logger.warning(f"Quote {quote.id} has no itinerary, cannot assign a driver")
                return None

            booked = self.availability.blocked_driver_ids(
                window_for_stops(quote.itinerary),
                exclude_owner_id=str(quote.id),
                now=now,
            )
            free = [driver_id for driver_id in command.candidate_driver_ids if driver_id not in booked]
            if not free:
                logger.info(f"No free driver among {len(command.candidate_driver_ids)} candidates for quote {quote.id}")
                return None

            driver_id = free[0]
            self._revalidate(quote, now, driver_id=driver_id)
            quote.assign_driver(driver_id, now)
            quote.mark_quoted(now)

            self.quote_repo.save(quote)
            uow.collect_events(quote)

        logger.info(f"Auto-assigned driver {driver_id} to quote {quote.id}")
        return quote


class EditQuoteHandler(_QuoteHandler):
    """
    Handler for EditQuote command

    The new vehicles must be free over the new itinerary window, with the
    quote itself excluded. Stops are rewritten only when they changed.
    """

    def handle(self, command: EditQuoteCommand) -> Quote:
        now = self.clock()

        with DjangoUnitOfWork(self.bus) as uow:
            quote = self.quote_repo.get(command.quote_id)

            if command.selected_vehicles is not None:
                quote.select_vehicles(command.selected_vehicles, now)
            if command.itinerary is not None:
                quote.replace_itinerary(command.itinerary, now)

            if quote.itinerary and quote.selected_vehicles:
                self.availability.ensure_available(
                    window_for_stops(quote.itinerary),
                    quote.vehicle_ids,
                    exclude_owner_id=str(quote.id),
                    now=now,
                )

            self.quote_repo.save(quote, include_itinerary=command.itinerary is not None)
            uow.collect_events(quote)

        logger.info(f"Quote {quote.id} edited (version {quote.version})")
        return quote


class DeleteQuoteDraftHandler(_QuoteHandler):

    def handle(self, command: DeleteQuoteDraftCommand) -> Quote:
        with DjangoUnitOfWork(self.bus) as uow:
            quote = self.quote_repo.get(command.quote_id)
            quote.delete(self.clock())
            self.quote_repo.save(quote)
            uow.collect_events(quote)

        logger.info(f"Draft quote {quote.id} deleted")
        return quote


class ExpireQuoteHandler(_QuoteHandler):
    """
    Handler for ExpireQuote command

    Idempotent: a quote that is no longer QUOTED, or whose payment window
    is still open, is left alone and None is returned.
    """

    def handle(self, command: ExpireQuoteCommand) -> Optional[Quote]:
        now = self.clock()

        with DjangoUnitOfWork(self.bus) as uow:
            quote = self.quote_repo.get(command.quote_id)

            if quote.is_deleted or quote.status is not QuoteStatus.QUOTED:
                logger.debug(f"Quote {quote.id} is {quote.status.value}, nothing to expire")
                return None
            if not quote.is_payment_window_expired(now, payment_window()):
                logger.debug(f"Quote {quote.id} is still inside its payment window")
                return None

            quote.expire(now)
            self.quote_repo.save(quote)
            uow.collect_events(quote)

        logger.info(f"Quote {quote.id} expired after its payment window")
        return quote
