"""
Domain Exceptions

Errors raised by the quote, reservation and availability domains. They are
plain exception classes so the application layer can catch them by kind;
the builtin bases keep callers that only know ValueError/LookupError working.
"""


class DomainError(Exception):
    """Base class for all domain errors"""


class InvalidWindowError(DomainError, ValueError):
    """A time window is missing a bound or its start is after its end"""


class LifecycleViolation(DomainError, ValueError):
    """A status transition that the lifecycle table does not permit"""


class NotFoundError(DomainError, LookupError):
    """A requested aggregate does not exist"""


class OwnerNotFoundError(NotFoundError):
    """An owner id given for exclusion matches no quote or reservation"""


class QuoteNotFoundError(NotFoundError):
    """Quote does not exist"""


class ReservationNotFoundError(NotFoundError):
    """Reservation does not exist"""


class ResourceConflictError(DomainError):
    """
    A vehicle or driver is already claimed for the requested window

    Raised at the promotion boundary so the losing side of a concurrent
    checkout gets an explicit conflict instead of a double booking.
    """

    def __init__(self, message: str, vehicle_ids=(), driver_id: str | None = None):
        super().__init__(message)
        self.vehicle_ids = frozenset(vehicle_ids)
        self.driver_id = driver_id


class ConcurrentModificationError(DomainError):
    """The aggregate was changed by someone else since it was loaded"""
