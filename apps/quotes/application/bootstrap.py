"""Wires quote command and event handlers into the global message bus."""

import logging

from shared.application.message_bus import message_bus
from shared.domain.base import DomainEvent
from apps.quotes.application import command_handlers as commands
from apps.quotes.application.event_handlers import (
    log_domain_event,
    schedule_payment_window_expiry,
)
from apps.quotes.domain.events import QuoteStatusChanged

logger = logging.getLogger(__name__)


def register_handlers(bus=message_bus, quote_repo=None, reservation_repo=None, availability=None):
    if quote_repo is None:
        from apps.quotes.repositories import DjangoQuoteRepository

        quote_repo = DjangoQuoteRepository()
    if reservation_repo is None:
        from apps.reservations.repositories import DjangoReservationRepository

        reservation_repo = DjangoReservationRepository()

    handlers = {
        commands.CreateQuoteDraftCommand: commands.CreateQuoteDraftHandler,
        commands.TransitionQuoteCommand: commands.TransitionQuoteHandler,
        commands.EditQuoteCommand: commands.EditQuoteHandler,
        commands.AssignDriverCommand: commands.AssignDriverHandler,
        commands.AutoAssignDriverCommand: commands.AutoAssignDriverHandler,
        commands.AcceptQuoteCommand: commands.AcceptQuoteHandler,
        commands.PayQuoteCommand: commands.PayQuoteHandler,
        commands.DeleteQuoteDraftCommand: commands.DeleteQuoteDraftHandler,
        commands.ExpireQuoteCommand: commands.ExpireQuoteHandler,
    }
    for command_type, handler_class in handlers.items():
        handler = handler_class(quote_repo, reservation_repo, availability, bus=bus)
        bus.register_command_handler(command_type, handler.handle, replace=True)

    bus.register_event_handler(DomainEvent, log_domain_event)
    bus.register_event_handler(QuoteStatusChanged, schedule_payment_window_expiry)

    logger.debug(f"Registered {len(handlers)} quote command handlers")
    return bus
