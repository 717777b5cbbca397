from mavlink_monitor.models.record import DecodedRecord


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_record(t, sysid=1, compid=1, msg_id=30, **payload):
    return DecodedRecord(t=t, sysid=sysid, compid=compid, msg_id=msg_id, payload=payload)
