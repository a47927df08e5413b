"""
Cache Domain Entities

Core domain entities for the shared cache: the cache entry with its
expiration bookkeeping, and the opaque key-ring element.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Union
from uuid import uuid4

from .exceptions import CacheDocumentFormatException
from .repository_interfaces import Document
from .value_objects import CacheEntryOptions, to_utc, utc_now

# Document field names
VALUE_FIELD = "value"
ABSOLUTE_EXPIRATION_FIELD = "absolute_expiration"
SLIDING_EXPIRATION_FIELD = "sliding_expiration"
LAST_ACCESS_TIME_FIELD = "last_access_time"

ELEMENT_FIELD = "element"
CREATED_AT_FIELD = "created_at"


def encode_timestamp(value: datetime) -> bytes:
    """Encode a datetime as a fixed-width ISO-8601 UTC string."""
    return to_utc(value).isoformat(timespec="microseconds").encode("ascii")


def decode_timestamp(raw: Union[bytes, str]) -> datetime:
    if isinstance(raw, bytes):
        raw = raw.decode("ascii")
    return to_utc(datetime.fromisoformat(raw))


_MICROSECOND = timedelta(microseconds=1)
_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def encode_duration(value: timedelta) -> bytes:
    """Encode a duration as an exact integer count of microseconds."""
    return str(value // _MICROSECOND).encode("ascii")


def decode_duration(raw: Union[bytes, str]) -> timedelta:
    if isinstance(raw, bytes):
        raw = raw.decode("ascii")
    return timedelta(microseconds=int(raw))


@dataclass
class CacheEntry:
    """
    Cache entry entity.

    One document per cache key. The payload is opaque; expiration is
    described entirely by the document fields.
    """

    id: str
    value: bytes
    last_access_time: datetime
    absolute_expiration: Optional[datetime] = None
    sliding_expiration: Optional[timedelta] = None

    @classmethod
    def create(
        cls,
        key: str,
        value: bytes,
        options: Optional[CacheEntryOptions] = None,
        now: Optional[datetime] = None,
    ) -> "CacheEntry":
        """Create a fresh entry; access bookkeeping starts at ``now``."""
        now = to_utc(now) if now else utc_now()
        options = options or CacheEntryOptions()

        return cls(
            id=key,
            value=bytes(value),
            last_access_time=now,
            absolute_expiration=options.resolve_absolute_expiration(now),
            sliding_expiration=options.sliding_expiration,
        )

    @property
    def has_sliding_expiration(self) -> bool:
        return self.sliding_expiration is not None

    def effective_deadline(self) -> Optional[datetime]:
        """Earliest of the absolute deadline and the sliding deadline."""
        deadlines = []
        if self.absolute_expiration is not None:
            deadlines.append(self.absolute_expiration)
        if self.sliding_expiration is not None:
            try:
                deadlines.append(self.last_access_time + self.sliding_expiration)
            except OverflowError:
                # Past the datetime range: never reached, or already passed
                if self.sliding_expiration < timedelta(0):
                    deadlines.append(_EARLIEST)
        if not deadlines:
            return None
        return min(deadlines)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the entry is past its deadline."""
        deadline = self.effective_deadline()
        if deadline is None:
            return False
        now = to_utc(now) if now else utc_now()
        return now >= deadline

    def touch(self, now: Optional[datetime] = None) -> bool:
        """Record an access. Only entries with a sliding expiration are touched.

        Returns:
            True if ``last_access_time`` changed
        """
        if not self.has_sliding_expiration:
            return False
        now = to_utc(now) if now else utc_now()
        # Never move the access marker backwards
        if now <= self.last_access_time:
            return False
        self.last_access_time = now
        return True

    def to_document(self) -> Document:
        """Serialize to document fields."""
        document: Document = {
            VALUE_FIELD: self.value,
            LAST_ACCESS_TIME_FIELD: encode_timestamp(self.last_access_time),
        }
        if self.absolute_expiration is not None:
            document[ABSOLUTE_EXPIRATION_FIELD] = encode_timestamp(
                self.absolute_expiration
            )
        if self.sliding_expiration is not None:
            document[SLIDING_EXPIRATION_FIELD] = encode_duration(
                self.sliding_expiration
            )
        return document

    @classmethod
    def from_document(cls, document_id: str, document: Document) -> "CacheEntry":
        """Deserialize document fields.

        Raises:
            CacheDocumentFormatException: If a field is missing or undecodable
        """
        if VALUE_FIELD not in document:
            raise CacheDocumentFormatException(document_id, field=VALUE_FIELD)
        if LAST_ACCESS_TIME_FIELD not in document:
            raise CacheDocumentFormatException(
                document_id, field=LAST_ACCESS_TIME_FIELD
            )

        current_field = LAST_ACCESS_TIME_FIELD
        try:
            last_access_time = decode_timestamp(document[LAST_ACCESS_TIME_FIELD])

            absolute_expiration = None
            current_field = ABSOLUTE_EXPIRATION_FIELD
            if document.get(ABSOLUTE_EXPIRATION_FIELD):
                absolute_expiration = decode_timestamp(
                    document[ABSOLUTE_EXPIRATION_FIELD]
                )

            sliding_expiration = None
            current_field = SLIDING_EXPIRATION_FIELD
            if document.get(SLIDING_EXPIRATION_FIELD):
                sliding_expiration = decode_duration(
                    document[SLIDING_EXPIRATION_FIELD]
                )
        except (ValueError, UnicodeDecodeError, OverflowError) as e:
            raise CacheDocumentFormatException(
                document_id, field=current_field, original_error=e
            ) from e

        return cls(
            id=document_id,
            value=bytes(document[VALUE_FIELD]),
            last_access_time=last_access_time,
            absolute_expiration=absolute_expiration,
            sliding_expiration=sliding_expiration,
        )


@dataclass
class KeyRingElement:
    """
    Key-ring element entity.

    Opaque serialized key material. Generation, validation and rotation are
    the concern of the key management system that owns the key ring.
    """

    id: str
    element: str
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def create(
        cls,
        element: str,
        friendly_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "KeyRingElement":
        """Create new key-ring element, naming it after ``friendly_name`` if given."""
        if not isinstance(element, str):
            raise TypeError(
                f"Key-ring element must be a string, got {type(element).__name__}"
            )
        return cls(
            id=friendly_name or uuid4().hex,
            element=element,
            created_at=to_utc(now) if now else utc_now(),
        )

    def to_document(self) -> Document:
        return {
            ELEMENT_FIELD: self.element.encode("utf-8"),
            CREATED_AT_FIELD: encode_timestamp(self.created_at),
        }

    @classmethod
    def from_document(cls, document_id: str, document: Document) -> "KeyRingElement":
        try:
            return cls(
                id=document_id,
                element=document[ELEMENT_FIELD].decode("utf-8"),
                created_at=decode_timestamp(document[CREATED_AT_FIELD]),
            )
        except KeyError as e:
            raise CacheDocumentFormatException(
                document_id, field=str(e.args[0]), original_error=e
            ) from e
        except (ValueError, UnicodeDecodeError) as e:
            raise CacheDocumentFormatException(document_id, original_error=e) from e
