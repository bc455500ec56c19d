"""Typed values for property-list documents.

Safari's Bookmarks.plist is a loosely-typed tree of dictionaries, arrays and
scalars. Rather than pass raw ``dict``/``list`` objects around and hope every
``node["Children"]`` really is a list, documents are converted into a small
set of immutable variants. Navigation helpers check the variant and raise
``StructureMismatch`` when the shape is not what the caller expected.
"""
import base64
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from safari_reading_list.errors import StructureMismatch


class Value:
    """Base class of all document variants."""

    __slots__ = ()


@dataclass(frozen=True)
class Null(Value):
    """JSON ``null``. Property lists have no equivalent."""


@dataclass(frozen=True)
class Boolean(Value):
    value: bool


@dataclass(frozen=True)
class Number(Value):
    """Integer or real. The Python type is kept so plists round-trip."""
    value: Union[int, float]


@dataclass(frozen=True)
class String(Value):
    value: str


@dataclass(frozen=True)
class Date(Value):
    value: datetime


@dataclass(frozen=True)
class Data(Value):
    value: bytes


@dataclass(frozen=True)
class Sequence(Value):
    """Ordered array of values."""
    items: Tuple[Value, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Value]:
        return iter(self.items)

    def replace(self, index: int, item: Value) -> "Sequence":
        """Return a copy with the element at ``index`` swapped for ``item``."""
        items = list(self.items)
        items[index] = item
        return Sequence(tuple(items))


@dataclass(frozen=True)
class Mapping(Value):
    """String-keyed dictionary. Key order is preserved."""
    entries: Dict[str, Value] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, key: str) -> Optional[Value]:
        return self.entries.get(key)

    def with_entry(self, key: str, value: Value) -> "Mapping":
        """Return a copy with ``key`` set to ``value``, keeping key order."""
        entries = dict(self.entries)
        entries[key] = value
        return Mapping(entries)


def expect_mapping(value: Optional[Value], what: str) -> Mapping:
    if isinstance(value, Mapping):
        return value
    raise StructureMismatch(f"{what} is {_describe(value)}, expected a dictionary")


def expect_sequence(value: Optional[Value], what: str) -> Sequence:
    if isinstance(value, Sequence):
        return value
    raise StructureMismatch(f"{what} is {_describe(value)}, expected an array")


def string_value(value: Optional[Value]) -> Optional[str]:
    """Return the Python string held by ``value``, or None for any other variant."""
    if isinstance(value, String):
        return value.value
    return None


def _describe(value: Optional[Value]) -> str:
    if value is None:
        return "missing"
    return type(value).__name__


def from_native(obj: Any) -> Value:
    """Convert ``plistlib`` or ``json`` output into document values.

    Args:
        obj: Nested dicts, lists and scalars

    Returns:
        The equivalent ``Value`` tree

    Raises:
        TypeError: If ``obj`` holds a type with no document variant
    """
    if obj is None:
        return Null()
    # bool is a subclass of int, check it first
    if isinstance(obj, bool):
        return Boolean(obj)
    if isinstance(obj, (int, float)):
        return Number(obj)
    if isinstance(obj, str):
        return String(obj)
    if isinstance(obj, datetime):
        return Date(obj)
    if isinstance(obj, (bytes, bytearray)):
        return Data(bytes(obj))
    if isinstance(obj, dict):
        entries = {}
        for key, item in obj.items():
            if not isinstance(key, str):
                raise TypeError(f"dictionary key {key!r} is not a string")
            entries[key] = from_native(item)
        return Mapping(entries)
    if isinstance(obj, (list, tuple)):
        return Sequence(tuple(from_native(item) for item in obj))
    raise TypeError(f"unsupported value type: {type(obj).__name__}")


def to_native(value: Value) -> Any:
    """Convert document values back into objects ``plistlib`` can encode.

    ``Null`` becomes ``None``, which the XML plist writer refuses.
    """
    if isinstance(value, Mapping):
        return {key: to_native(item) for key, item in value.entries.items()}
    if isinstance(value, Sequence):
        return [to_native(item) for item in value.items]
    if isinstance(value, Null):
        return None
    if isinstance(value, (Boolean, Number, String, Date, Data)):
        return value.value
    raise TypeError(f"not a document value: {value!r}")


def to_json(value: Value) -> Any:
    """Convert document values into JSON-serializable objects.

    Dates are rendered as RFC 3339 UTC timestamps and binary data as base64.
    """
    if isinstance(value, Mapping):
        return {key: to_json(item) for key, item in value.entries.items()}
    if isinstance(value, Sequence):
        return [to_json(item) for item in value.items]
    if isinstance(value, Date):
        return format_date(value.value)
    if isinstance(value, Data):
        return base64.b64encode(value.value).decode("ascii")
    return to_native(value)


def format_date(moment: datetime) -> str:
    """Format a plist date (naive datetimes are UTC) as ``YYYY-MM-DDTHH:MM:SS[.ffffff]Z``.

    Microseconds are kept when the date has them.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.isoformat() + "Z"
