"""
Quote Event Handlers

Subscribers for quote and reservation domain events. They run after the
transaction that recorded the event has committed.
"""

import logging

from shared.domain.base import DomainEvent
from apps.quotes.domain.entities import QuoteStatus
from apps.quotes.domain.events import QuoteStatusChanged

logger = logging.getLogger(__name__)


def log_domain_event(event: DomainEvent):
    """Audit trail entry for every published event"""
    logger.info(f"Domain event {type(event).__name__}", extra={'event': event.to_dict()})


def schedule_payment_window_expiry(event: QuoteStatusChanged):
    """
    Queue the expiry of a quote when its payment window closes

    Re-quoting after negotiation schedules another run; expire_quote
    skips quotes that are no longer due.
    """
    if event.new_status != QuoteStatus.QUOTED.value:
        return

    from apps.quotes.application.command_handlers import payment_window
    from apps.quotes.tasks import expire_quote

    countdown = int(payment_window().total_seconds()) + 1
    expire_quote.apply_async(args=[str(event.quote_id)], countdown=countdown)
    logger.debug(f"Scheduled expiry check for quote {event.quote_id} in {countdown}s")
