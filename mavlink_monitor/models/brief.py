"""Query result structures for the raw message store."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .record import HistoryItem, Payload


@dataclass
class MsgBrief:
    """Summary of one (sysid, compid, msg_id) entry."""
    compid: int
    msg_id: int
    last_t: Optional[float]
    count: int
    hz_ema: Optional[float]
    stale: bool

    def age_ms(self, now: float) -> Optional[float]:
        """Milliseconds since the last update, None if never updated."""
        if self.last_t is None:
            return None
        return now - self.last_t

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compid": self.compid,
            "msgId": self.msg_id,
            "lastT": self.last_t,
            "count": self.count,
            "hzEma": self.hz_ema,
            "stale": self.stale,
        }


@dataclass
class MsgDetail(MsgBrief):
    """Brief plus last payload and optional history snapshot."""
    last_payload: Optional[Payload] = None
    history: Optional[List[HistoryItem]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["lastPayload"] = self.last_payload
        if self.history is not None:
            data["history"] = [item.to_dict() for item in self.history]
        return data
