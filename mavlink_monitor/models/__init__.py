"""Data models for the MAVLink monitor."""

from .record import DecodedRecord, HistoryItem, RawSample, Payload
from .brief import MsgBrief, MsgDetail

__all__ = [
    "DecodedRecord",
    "HistoryItem",
    "RawSample",
    "Payload",
    "MsgBrief",
    "MsgDetail",
]
