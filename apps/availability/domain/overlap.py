"""Overlap test between a requested window and an existing itinerary."""

from typing import Iterable

from shared.domain.value_objects import TimeRange

from .itinerary import ItineraryStop, TripWindow


def overlaps(candidate: TimeRange, stops: Iterable[ItineraryStop]) -> bool:
    """
    Check if a candidate window collides with a stop sequence

    The sequence is reduced to two closed ranges: one over its arrival
    times and one over the departure times that are present. The candidate
    collides when it intersects either of them. An empty sequence never
    collides.

    Whether the two ranges should be ANDed instead of ORed is an open
    product question; OR errs towards reporting a resource as busy.
    """
    window = TripWindow.from_stops(stops)
    if window is None:
        return False

    if candidate.intersects(window.arrival_range):
        return True

    departure_range = window.departure_range
    return departure_range is not None and candidate.intersects(departure_range)
