import threading

import pytest

from mavlink_monitor.config import StoreConfig
from mavlink_monitor.models.record import HistoryItem
from mavlink_monitor.storage.raw_store import RawStore
from mavlink_monitor.storage.ring_buffer import InvalidArgumentError
from tests.helpers import make_record


@pytest.fixture
def store(clock):
    return RawStore(clock=clock)


def test_defaults():
    store = RawStore()
    assert store.stale_ms == 3000
    assert store.history_size == 64
    assert store.ema_alpha == pytest.approx(0.2)


def test_default_clock_is_wall_clock_ms():
    import time

    store = RawStore()
    assert abs(store.now() - time.time() * 1000) < 5_000


def test_constructor_rejects_non_positive_history_size():
    with pytest.raises(InvalidArgumentError):
        RawStore(history_size=0)


def test_from_config(clock):
    store = RawStore.from_config(
        StoreConfig(stale_ms=500, history_size=8, ema_alpha=0.5), clock=clock
    )
    assert store.stale_ms == 500
    assert store.history_size == 8
    assert store.ema_alpha == pytest.approx(0.5)
    assert store.now() == 0


def test_count_matches_number_of_applies(store):
    for t in range(0, 1000, 100):
        store.apply(make_record(t))
    assert store.get_msg_brief(1, 1, 30).count == 10


def test_first_apply_has_no_rate(store):
    store.apply(make_record(0))
    brief = store.get_msg_brief(1, 1, 30)
    assert brief.count == 1
    assert brief.last_t == 0
    assert brief.hz_ema is None


def test_ema_seeds_to_first_instantaneous_rate(store):
    store.apply(make_record(0))
    store.apply(make_record(500))
    assert store.get_msg_brief(1, 1, 30).hz_ema == pytest.approx(2.0)


def test_ema_smooths_subsequent_rates(store):
    store.apply(make_record(0))
    store.apply(make_record(500))   # 2 Hz seeds
    store.apply(make_record(750))   # 4 Hz
    assert store.get_msg_brief(1, 1, 30).hz_ema == pytest.approx(0.8 * 2 + 0.2 * 4)


def test_custom_alpha(clock):
    store = RawStore(clock=clock, ema_alpha=1.0)
    store.apply(make_record(0))
    store.apply(make_record(500))
    store.apply(make_record(600))
    assert store.get_msg_brief(1, 1, 30).hz_ema == pytest.approx(10.0)


def test_out_of_order_update_keeps_rate(store):
    store.apply(make_record(800))
    store.apply(make_record(1000))  # 5 Hz
    assert store.get_msg_brief(1, 1, 30).hz_ema == pytest.approx(5.0)

    store.apply(make_record(900, value="late"))
    detail = store.get_msg_detail(1, 1, 30, include_history=True)
    assert detail.last_t == 900
    assert detail.last_payload == {"value": "late"}
    assert detail.count == 3
    assert detail.hz_ema == pytest.approx(5.0)
    assert [item.t for item in detail.history] == [800, 1000, 900]


def test_duplicate_timestamp_keeps_rate(store):
    store.apply(make_record(0))
    store.apply(make_record(500))
    store.apply(make_record(500))
    brief = store.get_msg_brief(1, 1, 30)
    assert brief.count == 3
    assert brief.hz_ema == pytest.approx(2.0)


def test_staleness_boundary(clock, store):
    store.apply(make_record(10_000))

    clock.now = 10_000 + 3000 + 1
    assert store.get_msg_brief(1, 1, 30).stale is True

    clock.now = 10_000 + 3000 - 1
    assert store.get_msg_brief(1, 1, 30).stale is False

    clock.now = 10_000 + 3000
    assert store.get_msg_brief(1, 1, 30).stale is False


def test_set_stale_ms_applies_to_next_query(clock, store):
    store.apply(make_record(0))
    clock.now = 1000
    assert store.get_msg_brief(1, 1, 30).stale is False

    store.set_stale_ms(500)
    assert store.stale_ms == 500
    assert store.get_msg_brief(1, 1, 30).stale is True


def test_unknown_lookups_return_none(store):
    store.apply(make_record(0))
    assert store.get_msg_brief(9, 1, 30) is None
    assert store.get_msg_brief(1, 9, 30) is None
    assert store.get_msg_brief(1, 1, 99) is None
    assert store.get_msg_detail(1, 1, 99) is None
    assert store.get_raw(9, 30) is None
    assert store.get_raw(1, 99) is None
    assert store.get_raw(1, 30, compid=9) is None


def test_get_raw_with_compid(store):
    store.apply(make_record(100, compid=1, alt=10))
    store.apply(make_record(200, compid=2, alt=20))
    raw = store.get_raw(1, 30, compid=1)
    assert raw.t == 100
    assert raw.payload == {"alt": 10}


def test_get_raw_without_compid_picks_latest_component(store):
    store.apply(make_record(100, compid=1, alt=10))
    store.apply(make_record(200, compid=2, alt=20))
    raw = store.get_raw(1, 30)
    assert raw.t == 200
    assert raw.payload == {"alt": 20}


def test_get_raw_tie_goes_to_smallest_compid(store):
    store.apply(make_record(100, compid=5, src="five"))
    store.apply(make_record(100, compid=2, src="two"))
    store.apply(make_record(100, compid=7, src="seven"))
    assert store.get_raw(1, 30).payload == {"src": "two"}


def test_get_raw_ignores_other_systems_and_messages(store):
    store.apply(make_record(100, sysid=1, compid=1))
    store.apply(make_record(900, sysid=2, compid=1))
    store.apply(make_record(900, sysid=1, compid=2, msg_id=31))
    assert store.get_raw(1, 30).t == 100


def test_listing_is_sorted_and_deduplicated(store):
    store.apply(make_record(0, sysid=3, compid=1, msg_id=33))
    store.apply(make_record(0, sysid=1, compid=200, msg_id=0))
    store.apply(make_record(0, sysid=1, compid=1, msg_id=30))
    store.apply(make_record(0, sysid=1, compid=1, msg_id=24))
    store.apply(make_record(0, sysid=1, compid=200, msg_id=30))

    assert store.list_sysids() == [1, 3]
    assert store.list_compids(1) == [1, 200]
    assert store.list_msg_ids(1, 1) == [24, 30]
    assert store.list_msg_ids(1, 200) == [0, 30]
    assert store.list_msg_ids(1) == [0, 24, 30]
    assert store.list_keys() == [
        (1, 1, 24), (1, 1, 30), (1, 200, 0), (1, 200, 30), (3, 1, 33),
    ]


def test_listing_unknown_keys_is_empty(store):
    assert store.list_sysids() == []
    assert store.list_compids(1) == []
    assert store.list_msg_ids(1) == []
    assert store.list_msg_ids(1, 1) == []


def test_detail_includes_payload_and_optional_history(store):
    store.apply(make_record(0, roll=0.1))
    store.apply(make_record(100, roll=0.2))

    detail = store.get_msg_detail(1, 1, 30)
    assert detail.last_payload == {"roll": 0.2}
    assert detail.history is None

    detail = store.get_msg_detail(1, 1, 30, include_history=True)
    assert detail.history == [
        HistoryItem(t=0, payload={"roll": 0.1}),
        HistoryItem(t=100, payload={"roll": 0.2}),
    ]


def test_detail_history_is_a_snapshot(store):
    store.apply(make_record(0))
    detail = store.get_msg_detail(1, 1, 30, include_history=True)
    store.apply(make_record(100))
    assert len(detail.history) == 1


def test_history_bounded_by_history_size(clock):
    store = RawStore(clock=clock, history_size=4)
    for t in range(10):
        store.apply(make_record(t * 100, seq=t))
    history = store.get_msg_detail(1, 1, 30, include_history=True).history
    assert [item.payload["seq"] for item in history] == [6, 7, 8, 9]


def test_shrinking_history_size_keeps_most_recent(store):
    for t in range(10):
        store.apply(make_record(t * 100, seq=t))
    store.set_history_size(4)

    history = store.get_msg_detail(1, 1, 30, include_history=True).history
    assert [item.payload["seq"] for item in history] == [6, 7, 8, 9]
    assert store.history_size == 4


def test_history_size_applies_to_new_entries(store):
    store.set_history_size(2)
    for t in range(5):
        store.apply(make_record(t, msg_id=42))
    assert len(store.get_msg_detail(1, 1, 42, include_history=True).history) == 2


def test_set_history_size_rejects_non_positive(store):
    store.apply(make_record(0))
    with pytest.raises(InvalidArgumentError):
        store.set_history_size(0)
    assert store.history_size == 64


def test_reset_stats_zeroes_entries_but_keeps_keys(store):
    store.apply(make_record(0, compid=1))
    store.apply(make_record(500, compid=1))
    store.apply(make_record(0, compid=2, msg_id=31))

    store.reset_stats()

    assert store.list_msg_ids(1, 1) == [30]
    assert store.list_msg_ids(1) == [30, 31]
    detail = store.get_msg_detail(1, 1, 30, include_history=True)
    assert detail.count == 0
    assert detail.hz_ema is None
    assert detail.last_t is None
    assert detail.last_payload is None
    assert detail.history == []
    assert detail.stale is True


def test_reset_entry_restarts_rate_from_zero_baseline(store):
    store.apply(make_record(0))
    store.apply(make_record(500))
    store.reset_stats()

    store.apply(make_record(10_000))
    assert store.get_msg_brief(1, 1, 30).hz_ema is None
    store.apply(make_record(10_250))
    assert store.get_msg_brief(1, 1, 30).hz_ema == pytest.approx(4.0)


def test_reset_history_uses_current_capacity(store):
    store.set_history_size(3)
    store.apply(make_record(0))
    store.reset_stats()
    for t in range(1, 6):
        store.apply(make_record(t))
    assert len(store.get_msg_detail(1, 1, 30, include_history=True).history) == 3


def test_get_raw_after_reset_returns_unset_sample(store):
    store.apply(make_record(100))
    store.reset_stats()
    raw = store.get_raw(1, 30, compid=1)
    assert raw.t is None
    assert raw.payload is None
    assert store.get_raw(1, 30).t is None


def test_get_raw_prefers_updated_component_after_reset(store):
    store.apply(make_record(100, compid=1))
    store.apply(make_record(100, compid=2))
    store.reset_stats()
    store.apply(make_record(50, compid=2, src="two"))
    assert store.get_raw(1, 30).payload == {"src": "two"}


def test_index_grows_with_distinct_keys_and_never_shrinks(store):
    for sysid in range(1, 4):
        for compid in range(1, 3):
            for msg_id in range(5):
                store.apply(make_record(0, sysid=sysid, compid=compid, msg_id=msg_id))
    assert store.entry_count == 3 * 2 * 5

    # Repeated keys do not add entries
    store.apply(make_record(1, sysid=1, compid=1, msg_id=0))
    assert store.entry_count == 30

    store.reset_stats()
    store.set_history_size(1)
    assert store.entry_count == 30


def test_summary(store):
    store.apply(make_record(0, sysid=2))
    store.apply(make_record(1, sysid=1))
    store.apply(make_record(2, sysid=1))
    summary = store.get_summary()
    assert summary == {
        "entry_count": 2,
        "total_records": 3,
        "sysids": [1, 2],
        "history_size": 64,
        "stale_ms": 3000,
    }


def test_concurrent_apply_and_queries(clock):
    store = RawStore(clock=clock, history_size=16)
    errors = []

    def writer(sysid):
        for t in range(500):
            store.apply(make_record(t, sysid=sysid, compid=t % 3, msg_id=t % 7))

    def reader():
        try:
            for _ in range(500):
                for key in store.list_keys():
                    store.get_msg_detail(*key, include_history=True)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(s,)) for s in range(4)]
    threads.append(threading.Thread(target=reader))
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert errors == []
    assert store.get_summary()["total_records"] == 4 * 500
    total = sum(store.get_msg_brief(*key).count for key in store.list_keys())
    assert total == 4 * 500
