"""Decoded MAVLink record structures."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
import math


Payload = Dict[str, Any]


def _require_int(data: Mapping[str, Any], *names: str) -> int:
    for name in names:
        value = data.get(name)
        if value is None:
            continue
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise ValueError(f"{name} must be an integer, got {value!r}")
    raise ValueError(f"missing integer field: {names[0]}")


@dataclass
class DecodedRecord:
    """
    One decoded message as produced by the external decoder.
    The payload is an opaque mapping of field name to value.
    """
    t: float  # milliseconds
    sysid: int
    compid: int
    msg_id: int
    payload: Payload = field(default_factory=dict)

    @property
    def key(self):
        """Composite index key (sysid, compid, msg_id)."""
        return (self.sysid, self.compid, self.msg_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DecodedRecord":
        """Create a record from a decoder-shaped mapping.

        Raises:
            ValueError: identifier or timestamp fields are missing or invalid
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"record must be an object, got {type(data).__name__}")

        t = data.get("t")
        if isinstance(t, bool) or not isinstance(t, (int, float)):
            raise ValueError(f"t must be a number, got {t!r}")
        try:
            finite = math.isfinite(t)
        except OverflowError:
            finite = False
        if not finite:
            raise ValueError("t must be finite")

        payload = data.get("payload")
        if payload is None:
            payload = {}
        elif not isinstance(payload, Mapping):
            raise ValueError("payload must be an object")

        return cls(
            t=t,
            sysid=_require_int(data, "sysid"),
            compid=_require_int(data, "compid"),
            msg_id=_require_int(data, "msgId", "msg_id"),
            payload=dict(payload),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the decoder-shaped mapping."""
        return {
            "t": self.t,
            "sysid": self.sysid,
            "compid": self.compid,
            "msgId": self.msg_id,
            "payload": self.payload,
        }


@dataclass
class HistoryItem:
    """Single timestamped payload kept in an entry's history."""
    t: float
    payload: Payload

    def to_dict(self) -> Dict[str, Any]:
        return {"t": self.t, "payload": self.payload}


@dataclass
class RawSample:
    """Latest value of a message, as returned by raw lookups."""
    t: Optional[float]
    payload: Optional[Payload]
