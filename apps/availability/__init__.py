"""Availability app package.

Answers whether vehicles and drivers are free over a trip window. Hard
claims come from quotes in a blocking status and from live reservations;
recent draft quotes add a short soft hold on their vehicles. The app owns
no tables of its own and reads quotes and reservations through a claim
store.
"""
