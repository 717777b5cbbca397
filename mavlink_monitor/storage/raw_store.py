"""Aggregated per-message state for decoded MAVLink traffic."""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
from threading import Lock
import logging
import time

from ..config import StoreConfig
from ..models.record import DecodedRecord, HistoryItem, RawSample, Payload
from ..models.brief import MsgBrief, MsgDetail
from .ring_buffer import RingBuffer, InvalidArgumentError


logger = logging.getLogger(__name__)

EntryKey = Tuple[int, int, int]  # (sysid, compid, msg_id)


def wall_clock_ms() -> float:
    """Current wall clock time in milliseconds."""
    return time.time() * 1000


@dataclass
class RawEntry:
    """Aggregate state for one (sysid, compid, msg_id) triple."""
    history: RingBuffer[HistoryItem]
    last_t: Optional[float] = None
    last_payload: Optional[Payload] = None
    count: int = 0
    hz_ema: float = 0.0  # 0.0 means no rate computed yet


class RawStore:
    """
    Queryable aggregate of the latest MAVLink messages.

    Entries are keyed by (sysid, compid, msg_id), created on first apply and
    kept for the lifetime of the store. A single lock guards apply and every
    query, so one store may be shared between an ingest thread and readers.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], float]] = None,
        stale_ms: float = 3000,
        history_size: int = 64,
        ema_alpha: float = 0.2,
    ):
        if history_size <= 0:
            raise InvalidArgumentError("history_size must be > 0")

        self._clock = clock or wall_clock_ms
        self._stale_ms = stale_ms
        self._history_size = history_size
        self._ema_alpha = ema_alpha

        self._entries: Dict[EntryKey, RawEntry] = {}
        self._total_records = 0
        self._lock = Lock()

    @classmethod
    def from_config(
        cls, config: StoreConfig, clock: Optional[Callable[[], float]] = None
    ) -> "RawStore":
        """Create a store from configuration."""
        return cls(
            clock=clock,
            stale_ms=config.stale_ms,
            history_size=config.history_size,
            ema_alpha=config.ema_alpha,
        )

    def now(self) -> float:
        """Current clock value in milliseconds."""
        return self._clock()

    @property
    def stale_ms(self) -> float:
        return self._stale_ms

    @property
    def history_size(self) -> int:
        return self._history_size

    @property
    def ema_alpha(self) -> float:
        return self._ema_alpha

    @property
    def entry_count(self) -> int:
        """Number of distinct keys ever observed. Never decreases."""
        with self._lock:
            return len(self._entries)

    # ----- Mutation -----

    def apply(self, record: DecodedRecord) -> None:
        """Fold one decoded record into its entry."""
        t = record.t
        with self._lock:
            entry = self._ensure_entry(record.key)

            # Rate only moves forward in time
            if entry.last_t is not None and t > entry.last_t:
                dt = (t - entry.last_t) / 1000
                inst_hz = 1 / dt
                if entry.hz_ema == 0:
                    entry.hz_ema = inst_hz
                else:
                    alpha = self._ema_alpha
                    entry.hz_ema = (1 - alpha) * entry.hz_ema + alpha * inst_hz

            entry.last_t = t
            entry.last_payload = record.payload
            entry.count += 1
            entry.history.push(HistoryItem(t=t, payload=record.payload))
            self._total_records += 1

    def set_stale_ms(self, ms: float) -> None:
        """Set the staleness threshold used by subsequent queries."""
        with self._lock:
            self._stale_ms = ms
        logger.info("Staleness threshold set to %sms", ms)

    def set_history_size(self, n: int) -> None:
        """Resize every entry's history, keeping the most recent items."""
        if n <= 0:
            raise InvalidArgumentError("history_size must be > 0")

        with self._lock:
            self._history_size = n
            for entry in self._entries.values():
                entry.history.set_capacity(n)
            count = len(self._entries)
        logger.info("History size set to %d for %d entries", n, count)

    def reset_stats(self) -> None:
        """Zero all entries while keeping their keys enumerable."""
        with self._lock:
            for entry in self._entries.values():
                entry.count = 0
                entry.hz_ema = 0.0
                entry.last_t = None
                entry.last_payload = None
                entry.history.clear()
            count = len(self._entries)
        logger.info("Statistics reset for %d entries", count)

    # ----- Lookups -----

    def get_raw(
        self, sysid: int, msg_id: int, compid: Optional[int] = None
    ) -> Optional[RawSample]:
        """
        Get the latest value of a message.

        Without compid, the component with the most recent update wins;
        ties go to the smallest compid.
        """
        with self._lock:
            if compid is not None:
                entry = self._entries.get((sysid, compid, msg_id))
                if entry is None:
                    return None
                return RawSample(t=entry.last_t, payload=entry.last_payload)

            latest: Optional[RawEntry] = None
            for key in sorted(self._entries):
                if key[0] != sysid or key[2] != msg_id:
                    continue
                entry = self._entries[key]
                if latest is None or _newer(entry.last_t, latest.last_t):
                    latest = entry

            if latest is None:
                return None
            return RawSample(t=latest.last_t, payload=latest.last_payload)

    def list_sysids(self) -> List[int]:
        with self._lock:
            return sorted({key[0] for key in self._entries})

    def list_compids(self, sysid: int) -> List[int]:
        with self._lock:
            return sorted({key[1] for key in self._entries if key[0] == sysid})

    def list_msg_ids(self, sysid: int, compid: Optional[int] = None) -> List[int]:
        """List message ids under a system, optionally for one component."""
        with self._lock:
            return sorted({
                key[2]
                for key in self._entries
                if key[0] == sysid and (compid is None or key[1] == compid)
            })

    def list_keys(self) -> List[EntryKey]:
        """All (sysid, compid, msg_id) keys in ascending order."""
        with self._lock:
            return sorted(self._entries)

    def get_msg_brief(
        self, sysid: int, compid: int, msg_id: int
    ) -> Optional[MsgBrief]:
        with self._lock:
            entry = self._entries.get((sysid, compid, msg_id))
            if entry is None:
                return None
            return self._brief(compid, msg_id, entry)

    def get_msg_detail(
        self,
        sysid: int,
        compid: int,
        msg_id: int,
        include_history: bool = False,
    ) -> Optional[MsgDetail]:
        """Get brief plus last payload, and a history copy if requested."""
        with self._lock:
            entry = self._entries.get((sysid, compid, msg_id))
            if entry is None:
                return None
            brief = self._brief(compid, msg_id, entry)
            return MsgDetail(
                compid=brief.compid,
                msg_id=brief.msg_id,
                last_t=brief.last_t,
                count=brief.count,
                hz_ema=brief.hz_ema,
                stale=brief.stale,
                last_payload=entry.last_payload,
                history=entry.history.to_list() if include_history else None,
            )

    def get_summary(self) -> Dict:
        """Get overall store summary."""
        with self._lock:
            return {
                "entry_count": len(self._entries),
                "total_records": self._total_records,
                "sysids": sorted({key[0] for key in self._entries}),
                "history_size": self._history_size,
                "stale_ms": self._stale_ms,
            }

    # ----- Internals -----

    def _ensure_entry(self, key: EntryKey) -> RawEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = RawEntry(history=RingBuffer(self._history_size))
            self._entries[key] = entry
            logger.debug("New entry sysid=%d compid=%d msg_id=%d", *key)
        return entry

    def _brief(self, compid: int, msg_id: int, entry: RawEntry) -> MsgBrief:
        last_t = entry.last_t
        if last_t is None:
            stale = True
        else:
            stale = self._clock() - last_t > self._stale_ms

        return MsgBrief(
            compid=compid,
            msg_id=msg_id,
            last_t=last_t,
            count=entry.count,
            hz_ema=entry.hz_ema if entry.hz_ema > 0 else None,
            stale=stale,
        )


def _newer(candidate: Optional[float], current: Optional[float]) -> bool:
    """True if candidate is strictly more recent. Unset sorts oldest."""
    if candidate is None:
        return False
    if current is None:
        return True
    return candidate > current
