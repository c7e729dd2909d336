"""
OIDMap - Walk Data Models.

Dataclasses shared by the protocol engine, traversal engine and pipeline.

Design Principles:
- Records are transient: produced per batch, consumed once
- Type names come from a static table built once at import
- Outcomes are values, not exceptions (DONE / FAILED / CANCELLED)
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Sequence, Union

from .oid import Identifier


class TypeTag(IntEnum):
    """SNMP varbind value types (BER tag numbers)."""
    BOOLEAN = 1
    INTEGER = 2
    BIT_STRING = 3
    OCTET_STRING = 4
    NULL = 5
    OID = 6
    IP_ADDRESS = 64
    COUNTER = 65
    GAUGE = 66
    TIME_TICKS = 67
    OPAQUE = 68
    COUNTER64 = 70
    NO_SUCH_OBJECT = 128
    NO_SUCH_INSTANCE = 129
    END_OF_MIB_VIEW = 130


TYPE_NAMES: Dict[int, str] = {
    TypeTag.BOOLEAN: "Boolean",
    TypeTag.INTEGER: "Integer",
    TypeTag.BIT_STRING: "BitString",
    TypeTag.OCTET_STRING: "OctetString",
    TypeTag.NULL: "Null",
    TypeTag.OID: "OID",
    TypeTag.IP_ADDRESS: "IpAddress",
    TypeTag.COUNTER: "Counter",
    TypeTag.GAUGE: "Gauge",
    TypeTag.TIME_TICKS: "TimeTicks",
    TypeTag.OPAQUE: "Opaque",
    TypeTag.COUNTER64: "Counter64",
    TypeTag.NO_SUCH_OBJECT: "NoSuchObject",
    TypeTag.NO_SUCH_INSTANCE: "NoSuchInstance",
    TypeTag.END_OF_MIB_VIEW: "EndOfMibView",
}

ERROR_TAGS = frozenset({
    TypeTag.NO_SUCH_OBJECT,
    TypeTag.NO_SUCH_INSTANCE,
    TypeTag.END_OF_MIB_VIEW,
})


def resolve_type(tag: Union[TypeTag, int, None]) -> str:
    """Canonical name for a type tag, "Unknown" for anything unrecognised."""
    if tag is None:
        return "Unknown"
    try:
        return TYPE_NAMES.get(int(tag), "Unknown")
    except (TypeError, ValueError):
        return "Unknown"


@dataclass(frozen=True)
class Record:
    """One varbind returned by a bulk request."""
    identifier: Identifier
    type_tag: Union[TypeTag, int]
    value: Any = None

    @property
    def is_error(self) -> bool:
        """Unusable varbind: empty value or an exception type."""
        return self.value is None or self.type_tag in ERROR_TAGS

    @property
    def is_end_of_view(self) -> bool:
        return self.type_tag == TypeTag.END_OF_MIB_VIEW

    @property
    def type_name(self) -> str:
        return resolve_type(self.type_tag)


@dataclass
class BatchResult:
    """Records from one GETBULK round trip, in agent order."""
    records: Sequence[Record] = field(default_factory=list)
    end_of_subtree: bool = False


@dataclass(frozen=True)
class Translation:
    """Result of MIB name resolution. ``resolved`` is False on fallback."""
    name: str
    resolved: bool = True
    error: Optional[Exception] = None


class WalkStatus(str, Enum):
    """Terminal status of a traversal."""
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class WalkOutcome:
    """How a traversal ended and how many records it saw."""
    status: WalkStatus
    processed: int = 0
    failed: int = 0
    error: Optional[Exception] = None

    @classmethod
    def done(cls, processed: int, failed: int = 0) -> "WalkOutcome":
        return cls(WalkStatus.DONE, processed, failed)

    @classmethod
    def failed_with(cls, error: Exception, processed: int, failed: int = 0) -> "WalkOutcome":
        return cls(WalkStatus.FAILED, processed, failed, error)

    @classmethod
    def cancelled(cls, processed: int, failed: int = 0) -> "WalkOutcome":
        return cls(WalkStatus.CANCELLED, processed, failed)

    @property
    def ok(self) -> bool:
        return self.status == WalkStatus.DONE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "processed": self.processed,
            "failed": self.failed,
            "error": str(self.error) if self.error else None,
        }
