"""
Cache Value Objects

Immutable value objects for the shared cache domain.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Keys are opaque to the cache; the only rule is that they are non-empty
    strings.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key."""
        if not isinstance(self.value, str):
            raise TypeError(
                f"Cache key must be a string, got {type(self.value).__name__}"
            )
        if not self.value:
            raise ValueError("Cache key cannot be empty")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CacheEntryOptions:
    """
    Expiration options applied when an entry is written.

    ``sliding_expiration`` is stored as given; negative or zero durations are
    not rejected.
    """

    absolute_expiration: Optional[datetime] = None
    absolute_expiration_relative_to_now: Optional[timedelta] = None
    sliding_expiration: Optional[timedelta] = None

    @classmethod
    def sliding(cls, duration: timedelta) -> "CacheEntryOptions":
        """Options with only a sliding expiration."""
        return cls(sliding_expiration=duration)

    @classmethod
    def absolute(cls, deadline: datetime) -> "CacheEntryOptions":
        """Options with only an absolute deadline."""
        return cls(absolute_expiration=deadline)

    @classmethod
    def relative(cls, duration: timedelta) -> "CacheEntryOptions":
        """Options with an absolute deadline relative to the time of writing."""
        return cls(absolute_expiration_relative_to_now=duration)

    def resolve_absolute_expiration(self, now: datetime) -> Optional[datetime]:
        """Compute the absolute UTC deadline at write time ``now``.

        The relative form wins when both are given.
        """
        if self.absolute_expiration_relative_to_now is not None:
            return to_utc(now) + self.absolute_expiration_relative_to_now
        if self.absolute_expiration is not None:
            return to_utc(self.absolute_expiration)
        return None
