"""Storage layer for aggregated message state."""

from .ring_buffer import RingBuffer, InvalidArgumentError
from .raw_store import RawStore, RawEntry

__all__ = ["RawStore", "RawEntry", "RingBuffer", "InvalidArgumentError"]
