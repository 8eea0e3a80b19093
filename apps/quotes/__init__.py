"""Quotes app package.

Holds the quote lifecycle from draft to payment, the versioned quote
table, and the periodic task that expires quotes whose payment window has
lapsed. Promotions into a blocking status re-run the availability scan
inside the same transaction as the status write.
"""
