"""Wires reservation command handlers into the global message bus."""

import logging

from shared.application.message_bus import message_bus
from apps.reservations.application import command_handlers as commands

logger = logging.getLogger(__name__)


def register_handlers(bus=message_bus, reservation_repo=None, availability=None):
    if reservation_repo is None:
        from apps.reservations.repositories import DjangoReservationRepository

        reservation_repo = DjangoReservationRepository()

    handlers = {
        commands.ChangeReservationDriverCommand: commands.ChangeReservationDriverHandler,
        commands.AdjustReservationVehiclesCommand: commands.AdjustReservationVehiclesHandler,
        commands.UpdateReservationItineraryCommand: commands.UpdateReservationItineraryHandler,
    }
    for command_type, handler_class in handlers.items():
        handler = handler_class(reservation_repo, availability, bus=bus)
        bus.register_command_handler(command_type, handler.handle, replace=True)

    logger.debug(f"Registered {len(handlers)} reservation command handlers")
    return bus
