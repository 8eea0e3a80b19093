"""
Common Value Objects

Value objects used across multiple domains:
- TimeRange: A closed range of instants (start to end, both inclusive)
"""

from dataclasses import dataclass
from datetime import datetime

from shared.domain.base import ValueObject
from shared.domain.exceptions import InvalidWindowError


@dataclass(frozen=True)
class TimeRange(ValueObject):
    """
    Time range value object

    Represents the closed interval [start, end]. Both bounds are inclusive,
    so a range that ends exactly when another starts still intersects it.
    A zero-length range (start == end) is a valid instant.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start is None or self.end is None:
            raise InvalidWindowError("Window requires both a start and an end")
        if self.start > self.end:
            raise InvalidWindowError(
                f"Window start ({self.start.isoformat()}) is after its end ({self.end.isoformat()})"
            )

    @classmethod
    def spanning(cls, instants) -> 'TimeRange | None':
        """Smallest range covering every instant, or None when there are none"""
        instants = [instant for instant in instants if instant is not None]
        if not instants:
            return None
        return cls(min(instants), max(instants))

    def intersects(self, other: 'TimeRange') -> bool:
        """
        Check if this range shares at least one instant with another

        Overlap formula for closed ranges: start1 <= end2 AND end1 >= start2
        """
        if not isinstance(other, TimeRange):
            raise TypeError("Can only check intersection with another TimeRange")
        return self.start <= other.end and self.end >= other.start

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"

    def __repr__(self):
        return f"TimeRange({self.start.isoformat()}, {self.end.isoformat()})"
