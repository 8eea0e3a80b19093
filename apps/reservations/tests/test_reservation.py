"""Tests for the reservation aggregate and its repository."""

from __future__ import annotations

from django.test import SimpleTestCase, TestCase

from apps.availability.domain.claims import OwnerKind
from apps.availability.tests.factories import (
    MONDAY,
    NOW,
    TUESDAY,
    at,
    make_quote,
    make_reservation,
    stops_between,
    vehicles,
)
from apps.quotes.domain.entities import QuoteStatus
from apps.quotes.repositories import DjangoQuoteRepository
from apps.reservations.domain.entities import Reservation, ReservationStatus
from apps.reservations.domain.events import ReservationCreated, ReservationStatusChanged
from apps.reservations.repositories import DjangoReservationRepository
from shared.domain.exceptions import LifecycleViolation, ReservationNotFoundError


class ReservationAggregateTests(SimpleTestCase):

    def test_only_paid_quotes_become_reservations(self) -> None:
        for status in QuoteStatus:
            if status is QuoteStatus.PAID:
                continue
            with self.subTest(status=status), self.assertRaises(LifecycleViolation):
                Reservation.from_paid_quote(make_quote(status), NOW)

    def test_reservation_copies_quote(self) -> None:
        quote = make_quote(QuoteStatus.PAID, ["V1", "V2"], "D1", quoted_at=NOW)

        reservation = Reservation.from_paid_quote(quote, NOW)

        self.assertEqual(reservation.status, ReservationStatus.CONFIRMED)
        self.assertEqual(reservation.quote_id, quote.id)
        self.assertEqual(reservation.vehicle_ids, {"V1", "V2"})
        self.assertEqual(reservation.assigned_driver_id, "D1")
        self.assertEqual(reservation.itinerary, quote.itinerary)
        self.assertIsNot(reservation.itinerary, quote.itinerary)
        self.assertIsInstance(reservation.events[0], ReservationCreated)

    def test_quote_edits_do_not_reach_reservation(self) -> None:
        quote = make_quote(QuoteStatus.PAID, quoted_at=NOW)
        reservation = Reservation.from_paid_quote(quote, NOW)

        quote.itinerary.append(stops_between(at(TUESDAY, 9), at(TUESDAY, 10))[0])

        self.assertEqual(len(reservation.itinerary), 2)

    def test_claim_points_back_to_quote(self) -> None:
        reservation = make_reservation(driver_id="D1")
        claim = reservation.to_claim()

        self.assertIs(claim.owner_kind, OwnerKind.RESERVATION)
        self.assertEqual(claim.source_owner_id, str(reservation.quote_id))
        self.assertTrue(claim.is_owned_by(str(reservation.quote_id)))

    def test_changes_mark_reservation_modified(self) -> None:
        reservation = make_reservation(ReservationStatus.CONFIRMED, ["V1"], "D1")

        reservation.change_driver("D2", NOW)
        reservation.adjust_vehicles(vehicles("V3"), NOW)

        self.assertEqual(reservation.status, ReservationStatus.MODIFIED)
        self.assertEqual(reservation.assigned_driver_id, "D2")
        self.assertEqual(reservation.vehicle_ids, {"V3"})
        self.assertTrue(all(isinstance(e, ReservationStatusChanged) for e in reservation.events))

    def test_finished_reservation_is_frozen(self) -> None:
        for finish in (Reservation.complete, Reservation.cancel):
            reservation = make_reservation()
            finish(reservation, NOW)
            with self.subTest(action=finish.__name__), self.assertRaises(LifecycleViolation):
                reservation.change_driver("D2", NOW)


class ReservationRepositoryTests(TestCase):

    def setUp(self) -> None:
        self.quotes = DjangoQuoteRepository()
        self.reservations = DjangoReservationRepository()
        self.quote = self.quotes.add(make_quote(QuoteStatus.PAID, ["V1"], "D1", quoted_at=NOW))

    def test_round_trip(self) -> None:
        reservation = self.reservations.add(Reservation.from_paid_quote(self.quote, NOW))

        loaded = self.reservations.get(reservation.id)

        self.assertEqual(loaded.quote_id, self.quote.id)
        self.assertEqual(loaded.status, ReservationStatus.CONFIRMED)
        self.assertEqual(loaded.vehicle_ids, {"V1"})
        self.assertEqual([s.arrival_time for s in loaded.itinerary], [at(MONDAY, 9), at(MONDAY, 18)])

    def test_save_replaces_itinerary(self) -> None:
        reservation = self.reservations.add(Reservation.from_paid_quote(self.quote, NOW))

        reservation.update_itinerary(stops_between(at(TUESDAY, 8), at(TUESDAY, 20)), NOW)
        self.reservations.save(reservation)

        loaded = self.reservations.get_by_quote_id(self.quote.id)
        self.assertEqual(loaded.status, ReservationStatus.MODIFIED)
        self.assertEqual([s.arrival_time for s in loaded.itinerary], [at(TUESDAY, 8), at(TUESDAY, 20)])

    def test_missing_reservation(self) -> None:
        with self.assertRaises(ReservationNotFoundError):
            self.reservations.get_by_quote_id(self.quote.id)
