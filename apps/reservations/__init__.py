"""Reservations app package.

A reservation is the confirmed booking created when a quote is paid. It
carries its own copy of the itinerary and keeps blocking its vehicles and
driver while confirmed or modified.
"""
