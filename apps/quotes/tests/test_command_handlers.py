"""Database tests for the quote use cases and the expiry tasks."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

from django.test import TestCase
from django.utils import timezone

from apps.availability.tests.factories import (
    MONDAY,
    NOW,
    TUESDAY,
    at,
    make_quote,
    stops_between,
    vehicles,
)
from apps.quotes.application.bootstrap import register_handlers
from apps.quotes.application.command_handlers import (
    AcceptQuoteCommand,
    AcceptQuoteHandler,
    AssignDriverCommand,
    AssignDriverHandler,
    AutoAssignDriverCommand,
    AutoAssignDriverHandler,
    CreateQuoteDraftCommand,
    CreateQuoteDraftHandler,
    DeleteQuoteDraftCommand,
    DeleteQuoteDraftHandler,
    EditQuoteCommand,
    EditQuoteHandler,
    PayQuoteCommand,
    PayQuoteHandler,
    TransitionQuoteCommand,
    TransitionQuoteHandler,
)
from apps.quotes.domain.entities import QuoteStatus
from apps.quotes.domain.events import QuoteStatusChanged
from apps.quotes.models import Quote as QuoteModel
from apps.quotes.models import QuoteItineraryStop
from apps.quotes.repositories import DjangoQuoteRepository
from apps.quotes.tasks import expire_quote, expire_stale_quotes
from apps.reservations.domain.events import ReservationCreated
from apps.reservations.models import ReservationItineraryStop
from apps.reservations.repositories import DjangoReservationRepository
from shared.application.message_bus import MessageBus
from shared.domain.exceptions import (
    ConcurrentModificationError,
    LifecycleViolation,
    QuoteNotFoundError,
    ResourceConflictError,
)


class QuoteHandlerTestCase(TestCase):

    def setUp(self) -> None:
        self.quotes = DjangoQuoteRepository()
        self.reservations = DjangoReservationRepository()
        self.bus = MessageBus()

    def handler(self, handler_class):
        return handler_class(self.quotes, self.reservations, clock=lambda: NOW, bus=self.bus)

    def stored(self, quote_id) -> QuoteModel:
        return QuoteModel.objects.get(pk=quote_id)


class CreateDraftTests(QuoteHandlerTestCase):

    def test_draft_is_stored_with_its_stops(self) -> None:
        command = CreateQuoteDraftCommand(
            selected_vehicles=vehicles("V1"),
            itinerary=stops_between(at(TUESDAY, 9), at(TUESDAY, 12)),
        )
        quote = self.handler(CreateQuoteDraftHandler).handle(command)

        record = self.stored(quote.id)
        self.assertEqual(record.status, QuoteModel.Status.DRAFT)
        self.assertEqual(record.selected_vehicles, [{"vehicle_id": "V1", "quantity": 1}])
        self.assertEqual(record.itinerary_stops.count(), 2)
        self.assertEqual(record.created_at, NOW)

    def test_second_draft_on_held_vehicle_conflicts(self) -> None:
        command = CreateQuoteDraftCommand(
            selected_vehicles=vehicles("V2"),
            itinerary=stops_between(at(TUESDAY, 9), at(TUESDAY, 12)),
        )
        handler = self.handler(CreateQuoteDraftHandler)
        handler.handle(command)

        with self.assertRaises(ResourceConflictError) as ctx:
            handler.handle(CreateQuoteDraftCommand(
                selected_vehicles=vehicles("V2"),
                itinerary=stops_between(at(TUESDAY, 10), at(TUESDAY, 11)),
            ))

        self.assertEqual(ctx.exception.vehicle_ids, {"V2"})
        self.assertEqual(QuoteModel.objects.count(), 1)

    def test_delete_draft(self) -> None:
        draft = self.quotes.add(make_quote(QuoteStatus.DRAFT))
        self.handler(DeleteQuoteDraftHandler).handle(DeleteQuoteDraftCommand(draft.id))
        self.assertTrue(self.stored(draft.id).is_deleted)


class EditQuoteTests(QuoteHandlerTestCase):

    def test_new_itinerary_replaces_stored_stops(self) -> None:
        draft = self.quotes.add(make_quote(QuoteStatus.DRAFT, ["V1"]))

        quote = self.handler(EditQuoteHandler).handle(EditQuoteCommand(
            draft.id,
            itinerary=stops_between(at(TUESDAY, 7), at(TUESDAY, 21)),
        ))

        self.assertEqual(quote.version, 1)
        stored_stops = QuoteItineraryStop.objects.filter(quote_id=draft.id).order_by("stop_order")
        self.assertEqual(
            list(stored_stops.values_list("arrival_time", flat=True)),
            [at(TUESDAY, 7), at(TUESDAY, 21)],
        )

    def test_vehicle_change_only_keeps_stops(self) -> None:
        draft = self.quotes.add(make_quote(QuoteStatus.SUBMITTED, ["V1"]))

        self.handler(EditQuoteHandler).handle(EditQuoteCommand(draft.id, selected_vehicles=vehicles("V5", "V6")))

        record = self.stored(draft.id)
        self.assertEqual([item["vehicle_id"] for item in record.selected_vehicles], ["V5", "V6"])
        self.assertEqual(record.itinerary_stops.count(), 2)

    def test_switching_to_held_vehicle_conflicts(self) -> None:
        self.quotes.add(make_quote(
            QuoteStatus.DRAFT,
            ["V2"],
            itinerary=stops_between(at(TUESDAY, 9), at(TUESDAY, 12)),
            created_at=NOW - timedelta(minutes=5),
        ))
        draft = self.quotes.add(make_quote(
            QuoteStatus.DRAFT,
            ["V1"],
            itinerary=stops_between(at(TUESDAY, 10), at(TUESDAY, 11)),
        ))

        with self.assertRaises(ResourceConflictError) as ctx:
            self.handler(EditQuoteHandler).handle(EditQuoteCommand(draft.id, selected_vehicles=vehicles("V2")))

        self.assertEqual(ctx.exception.vehicle_ids, {"V2"})
        self.assertEqual(self.stored(draft.id).selected_vehicles, [{"vehicle_id": "V1", "quantity": 1}])

    def test_quoted_quote_is_not_editable(self) -> None:
        quoted = self.quotes.add(make_quote(QuoteStatus.QUOTED, ["V1"], "D1", quoted_at=NOW))
        with self.assertRaises(LifecycleViolation):
            self.handler(EditQuoteHandler).handle(EditQuoteCommand(quoted.id, selected_vehicles=vehicles("V2")))


class TransitionTests(QuoteHandlerTestCase):

    def test_quoting_conflicts_with_paid_quote(self) -> None:
        self.quotes.add(make_quote(QuoteStatus.PAID, ["V1"], "D9"))
        submitted = self.quotes.add(make_quote(QuoteStatus.SUBMITTED, ["V1"], "D1"))

        with self.assertRaises(ResourceConflictError):
            self.handler(TransitionQuoteHandler).handle(
                TransitionQuoteCommand(submitted.id, QuoteStatus.QUOTED)
            )

        record = self.stored(submitted.id)
        self.assertEqual(record.status, QuoteModel.Status.SUBMITTED)
        self.assertIsNone(record.quoted_at)
        self.assertEqual(record.version, 0)

    def test_quoting_stamps_quoted_at_and_bumps_version(self) -> None:
        submitted = self.quotes.add(make_quote(QuoteStatus.SUBMITTED, ["V1"], "D1"))

        quote = self.handler(TransitionQuoteHandler).handle(
            TransitionQuoteCommand(submitted.id, QuoteStatus.QUOTED)
        )

        self.assertEqual(quote.version, 1)
        record = self.stored(submitted.id)
        self.assertEqual(record.status, QuoteModel.Status.QUOTED)
        self.assertEqual(record.quoted_at, NOW)
        self.assertEqual(record.version, 1)

    def test_quote_does_not_conflict_with_itself(self) -> None:
        quoted = self.quotes.add(make_quote(QuoteStatus.QUOTED, ["V1"], "D1", quoted_at=NOW))

        quote = self.handler(AcceptQuoteHandler).handle(AcceptQuoteCommand(quoted.id))

        self.assertEqual(quote.status, QuoteStatus.ACCEPTED)

    def test_illegal_transition_is_reported(self) -> None:
        draft = self.quotes.add(make_quote(QuoteStatus.DRAFT))
        with self.assertRaises(LifecycleViolation):
            self.handler(TransitionQuoteHandler).handle(TransitionQuoteCommand(draft.id, QuoteStatus.PAID))

    def test_missing_quote(self) -> None:
        with self.assertRaises(QuoteNotFoundError):
            self.handler(TransitionQuoteHandler).handle(TransitionQuoteCommand(uuid4(), QuoteStatus.QUOTED))

    def test_stale_version_is_rejected(self) -> None:
        stored = self.quotes.add(make_quote(QuoteStatus.QUOTED, ["V1"], "D1", quoted_at=NOW))
        first = self.quotes.get(stored.id)
        second = self.quotes.get(stored.id)

        first.accept(NOW)
        self.quotes.save(first)

        second.cancel(NOW)
        with self.assertRaises(ConcurrentModificationError):
            self.quotes.save(second)
        self.assertEqual(self.stored(stored.id).status, QuoteModel.Status.ACCEPTED)


class PaymentTests(QuoteHandlerTestCase):

    def test_payment_creates_reservation_with_copied_stops(self) -> None:
        accepted = self.quotes.add(make_quote(
            QuoteStatus.ACCEPTED,
            ["V1"],
            "D1",
            quoted_at=NOW - timedelta(hours=2),
            itinerary=stops_between(at(MONDAY, 9), at(MONDAY, 18)),
        ))

        self.handler(PayQuoteHandler).handle(PayQuoteCommand(accepted.id))

        reservation = self.reservations.get_by_quote_id(accepted.id)
        self.assertEqual(reservation.vehicle_ids, {"V1"})
        self.assertEqual(reservation.assigned_driver_id, "D1")
        self.assertEqual(self.stored(accepted.id).status, QuoteModel.Status.PAID)

        QuoteItineraryStop.objects.filter(quote_id=accepted.id).delete()
        copied = ReservationItineraryStop.objects.filter(reservation_id=reservation.id)
        self.assertEqual(
            sorted(copied.values_list("arrival_time", flat=True)),
            [at(MONDAY, 9), at(MONDAY, 18)],
        )

    def test_payment_after_window_is_rejected(self) -> None:
        quoted = self.quotes.add(make_quote(QuoteStatus.QUOTED, ["V1"], "D1", quoted_at=NOW - timedelta(hours=25)))

        with self.assertRaises(LifecycleViolation):
            self.handler(PayQuoteHandler).handle(PayQuoteCommand(quoted.id))

        self.assertEqual(self.stored(quoted.id).status, QuoteModel.Status.QUOTED)

    def test_accepted_quote_stays_payable_after_window(self) -> None:
        negotiating = self.quotes.add(make_quote(
            QuoteStatus.NEGOTIATING, ["V1"], "D1", quoted_at=NOW - timedelta(hours=30)
        ))

        self.handler(AcceptQuoteHandler).handle(AcceptQuoteCommand(negotiating.id))
        quote = self.handler(PayQuoteHandler).handle(PayQuoteCommand(negotiating.id))

        self.assertEqual(quote.status, QuoteStatus.PAID)
        self.assertEqual(self.stored(negotiating.id).status, QuoteModel.Status.PAID)
        self.assertEqual(self.reservations.get_by_quote_id(negotiating.id).assigned_driver_id, "D1")

    def test_payment_loses_to_conflicting_reservation(self) -> None:
        winner = self.quotes.add(make_quote(QuoteStatus.ACCEPTED, ["V1"], "D1", quoted_at=NOW))
        loser = self.quotes.add(make_quote(QuoteStatus.QUOTED, ["V2"], "D1", quoted_at=NOW - timedelta(hours=30)))

        self.handler(PayQuoteHandler).handle(PayQuoteCommand(winner.id))

        with self.assertRaises(ResourceConflictError) as ctx:
            self.handler(TransitionQuoteHandler).handle(
                TransitionQuoteCommand(loser.id, QuoteStatus.NEGOTIATING)
            )
        self.assertEqual(ctx.exception.driver_id, "D1")

    def test_events_publish_after_commit(self) -> None:
        received = []
        self.bus.register_event_handler(QuoteStatusChanged, received.append)
        self.bus.register_event_handler(ReservationCreated, received.append)
        accepted = self.quotes.add(make_quote(QuoteStatus.ACCEPTED, ["V1"], "D1", quoted_at=NOW))

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            self.handler(PayQuoteHandler).handle(PayQuoteCommand(accepted.id))

        self.assertEqual(len(callbacks), 1)
        self.assertEqual([type(event) for event in received], [QuoteStatusChanged, ReservationCreated])

    def test_failed_promotion_publishes_nothing(self) -> None:
        received = []
        self.bus.register_event_handler(QuoteStatusChanged, received.append)
        self.quotes.add(make_quote(QuoteStatus.PAID, ["V1"]))
        submitted = self.quotes.add(make_quote(QuoteStatus.SUBMITTED, ["V1"]))

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(ResourceConflictError):
                self.handler(TransitionQuoteHandler).handle(
                    TransitionQuoteCommand(submitted.id, QuoteStatus.QUOTED)
                )

        self.assertEqual(received, [])


class AssignDriverTests(QuoteHandlerTestCase):

    def test_assigning_submitted_quote_quotes_it(self) -> None:
        submitted = self.quotes.add(make_quote(QuoteStatus.SUBMITTED, ["V1"]))

        quote = self.handler(AssignDriverHandler).handle(AssignDriverCommand(submitted.id, "D1"))

        self.assertEqual(quote.status, QuoteStatus.QUOTED)
        record = self.stored(submitted.id)
        self.assertEqual(record.assigned_driver_id, "D1")
        self.assertEqual(record.quoted_at, NOW)

    def test_busy_driver_cannot_be_assigned(self) -> None:
        self.quotes.add(make_quote(QuoteStatus.PAID, ["V9"], "D1"))
        submitted = self.quotes.add(make_quote(QuoteStatus.SUBMITTED, ["V1"]))

        with self.assertRaises(ResourceConflictError) as ctx:
            self.handler(AssignDriverHandler).handle(AssignDriverCommand(submitted.id, "D1"))

        self.assertEqual(ctx.exception.driver_id, "D1")
        self.assertIsNone(self.stored(submitted.id).assigned_driver_id)

    def test_reassigning_own_driver_is_allowed(self) -> None:
        quoted = self.quotes.add(make_quote(QuoteStatus.QUOTED, ["V1"], "D1", quoted_at=NOW))
        quote = self.handler(AssignDriverHandler).handle(AssignDriverCommand(quoted.id, "D1"))
        self.assertEqual(quote.assigned_driver_id, "D1")

    def test_expired_payment_window_blocks_assignment(self) -> None:
        quoted = self.quotes.add(make_quote(QuoteStatus.QUOTED, ["V1"], "D1", quoted_at=NOW - timedelta(hours=25)))
        with self.assertRaises(LifecycleViolation):
            self.handler(AssignDriverHandler).handle(AssignDriverCommand(quoted.id, "D2"))


class AutoAssignDriverTests(QuoteHandlerTestCase):

    def test_first_free_candidate_is_assigned(self) -> None:
        self.quotes.add(make_quote(QuoteStatus.PAID, ["V9"], "D1"))
        submitted = self.quotes.add(make_quote(QuoteStatus.SUBMITTED, ["V1"]))

        quote = self.handler(AutoAssignDriverHandler).handle(
            AutoAssignDriverCommand(submitted.id, ["D1", "D2", "D3"])
        )

        self.assertEqual(quote.assigned_driver_id, "D2")
        record = self.stored(submitted.id)
        self.assertEqual(record.status, QuoteModel.Status.QUOTED)
        self.assertEqual(record.assigned_driver_id, "D2")
        self.assertEqual(record.quoted_at, NOW)

    def test_no_free_candidate_leaves_quote_submitted(self) -> None:
        self.quotes.add(make_quote(QuoteStatus.PAID, ["V8"], "D1"))
        self.quotes.add(make_quote(QuoteStatus.ACCEPTED, ["V9"], "D2", quoted_at=NOW))
        submitted = self.quotes.add(make_quote(QuoteStatus.SUBMITTED, ["V1"]))

        result = self.handler(AutoAssignDriverHandler).handle(
            AutoAssignDriverCommand(submitted.id, ["D1", "D2"])
        )

        self.assertIsNone(result)
        record = self.stored(submitted.id)
        self.assertEqual(record.status, QuoteModel.Status.SUBMITTED)
        self.assertIsNone(record.assigned_driver_id)
        self.assertEqual(record.version, 0)

    def test_driver_busy_on_another_day_is_free(self) -> None:
        self.quotes.add(make_quote(
            QuoteStatus.PAID, ["V9"], "D1", itinerary=stops_between(at(TUESDAY, 9), at(TUESDAY, 18))
        ))
        submitted = self.quotes.add(make_quote(QuoteStatus.SUBMITTED, ["V1"]))

        quote = self.handler(AutoAssignDriverHandler).handle(AutoAssignDriverCommand(submitted.id, ["D1"]))

        self.assertEqual(quote.assigned_driver_id, "D1")

    def test_only_unassigned_submitted_quotes_are_considered(self) -> None:
        quoted = self.quotes.add(make_quote(QuoteStatus.QUOTED, ["V1"], "D1", quoted_at=NOW))

        result = self.handler(AutoAssignDriverHandler).handle(AutoAssignDriverCommand(quoted.id, ["D2"]))

        self.assertIsNone(result)
        self.assertEqual(self.stored(quoted.id).assigned_driver_id, "D1")


class ExpiryTaskTests(TestCase):

    def setUp(self) -> None:
        self.quotes = DjangoQuoteRepository()
        now = timezone.now()
        self.stale = self.quotes.add(make_quote(QuoteStatus.QUOTED, ["V1"], "D1", quoted_at=now - timedelta(hours=25)))
        self.fresh = self.quotes.add(make_quote(QuoteStatus.QUOTED, ["V2"], "D2", quoted_at=now - timedelta(hours=1)))

    def test_sweep_expires_only_stale_quotes(self) -> None:
        result = expire_stale_quotes()

        self.assertEqual(result, {"expired": 1, "failed": 0})
        stale = QuoteModel.objects.get(pk=self.stale.id)
        self.assertEqual(stale.status, QuoteModel.Status.EXPIRED)
        self.assertIsNone(stale.assigned_driver_id)
        self.assertEqual(QuoteModel.objects.get(pk=self.fresh.id).status, QuoteModel.Status.QUOTED)

    def test_single_expiry_is_idempotent(self) -> None:
        self.assertTrue(expire_quote(str(self.stale.id)))
        self.assertFalse(expire_quote(str(self.stale.id)))
        self.assertFalse(expire_quote(str(self.fresh.id)))

    def test_unknown_quote_is_skipped(self) -> None:
        self.assertFalse(expire_quote(str(uuid4())))


class MessageBusWiringTests(QuoteHandlerTestCase):

    def test_commands_dispatch_through_the_bus(self) -> None:
        register_handlers(self.bus, self.quotes, self.reservations)
        submitted = self.quotes.add(make_quote(QuoteStatus.SUBMITTED, ["V1"]))

        quote = self.bus.handle_command(AssignDriverCommand(submitted.id, "D1"))

        self.assertEqual(quote.status, QuoteStatus.QUOTED)
        self.assertEqual(self.stored(submitted.id).assigned_driver_id, "D1")
