import json
import logging
import threading
import time
from datetime import datetime, timezone

from sqlalchemy.exc import OperationalError

from calcpad.history import HISTORY_KEY, HistoryEntry, HistoryStore, decode_history
from calcpad.storage import MemoryKeyValueStore, SqlKeyValueStore


def entry(n, result="1"):
    return HistoryEntry(
        id=f"id-{n}",
        expression=f"{n} + 0 =",
        result=result,
        timestamp=datetime(2026, 10, 16, 12, n, tzinfo=timezone.utc),
    )


def wait_for_flush(store, timeout=3.0):
    deadline = time.monotonic() + timeout
    while store.flush_pending and time.monotonic() < deadline:
        time.sleep(0.01)


class BrokenStore(MemoryKeyValueStore):
    def get(self, key):
        raise OperationalError("SELECT", {}, Exception("unable to open database file"))

    def set(self, key, value):
        raise OperationalError("INSERT", {}, Exception("unable to open database file"))

    def delete(self, key):
        raise OperationalError("DELETE", {}, Exception("unable to open database file"))


def test_entry_dict_round_trip():
    e = entry(1)
    data = e.to_dict()
    assert data["timestamp"] == "2026-10-16T12:01:00+00:00"
    assert HistoryEntry.from_dict(data) == e


def test_decode_accepts_zulu_timestamps():
    raw = json.dumps([
        {"id": "17000000001234", "expression": "72 + 18 =", "result": "90", "timestamp": "2024-01-01T12:00:00.000Z"}
    ])
    [e] = decode_history(raw)
    assert e.result == "90"
    assert e.timestamp == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_append_prepends():
    store = HistoryStore(MemoryKeyValueStore(), flush_delay=0)
    store.append(entry(1))
    store.append(entry(2))
    assert [e.id for e in store.entries] == ["id-2", "id-1"]


def test_append_writes_whole_list_with_symbols():
    kv = MemoryKeyValueStore()
    store = HistoryStore(kv, flush_delay=0)
    store.append(HistoryEntry(id="a", expression="9 ÷ 3 =", result="3", timestamp=entry(1).timestamp))
    store.append(entry(2))

    data = json.loads(kv.get(HISTORY_KEY))
    assert [d["id"] for d in data] == ["id-2", "a"]
    assert "÷" in kv.get(HISTORY_KEY)


def test_load_all_restores_order():
    kv = MemoryKeyValueStore()
    first = HistoryStore(kv, flush_delay=0)
    for n in range(3):
        first.append(entry(n))

    second = HistoryStore(kv)
    loaded = second.load_all()
    assert [e.id for e in loaded] == ["id-2", "id-1", "id-0"]
    assert loaded == first.entries


def test_load_missing_is_empty():
    assert HistoryStore(MemoryKeyValueStore()).load_all() == []


def test_load_corrupt_blob_is_empty(caplog):
    kv = MemoryKeyValueStore({HISTORY_KEY: "{not json"})
    with caplog.at_level(logging.WARNING):
        assert HistoryStore(kv).load_all() == []
    assert "Could not load history" in caplog.text


def test_load_non_list_blob_is_empty():
    kv = MemoryKeyValueStore({HISTORY_KEY: json.dumps({"id": "x"})})
    assert HistoryStore(kv).load_all() == []


def test_load_skips_malformed_records():
    good = entry(1).to_dict()
    kv = MemoryKeyValueStore({HISTORY_KEY: json.dumps([good, {"id": "broken"}, "nope"])})
    loaded = HistoryStore(kv).load_all()
    assert [e.id for e in loaded] == ["id-1"]


def test_store_failures_do_not_raise(caplog):
    store = HistoryStore(BrokenStore(), flush_delay=0)
    with caplog.at_level(logging.WARNING):
        assert store.load_all() == []
        store.append(entry(1))
        store.clear_all()
    assert len(store) == 0
    assert "Could not save history" in caplog.text


def test_debounced_writes_coalesce():
    kv = MemoryKeyValueStore()
    store = HistoryStore(kv, flush_delay=0.3)
    for n in range(5):
        store.append(entry(n))
    assert kv.writes == 0
    assert store.flush_pending

    wait_for_flush(store)
    assert kv.writes == 1
    assert len(json.loads(kv.get(HISTORY_KEY))) == 5


def test_flush_writes_immediately():
    kv = MemoryKeyValueStore()
    store = HistoryStore(kv, flush_delay=60)
    store.append(entry(1))
    assert store.flush() is True
    assert kv.writes == 1
    assert store.flush() is False


def test_load_all_flushes_pending_entries_first():
    kv = MemoryKeyValueStore()
    store = HistoryStore(kv, flush_delay=60)
    store.append(entry(1))
    assert [e.id for e in store.load_all()] == ["id-1"]


def test_clear_all_cancels_pending_write():
    kv = MemoryKeyValueStore()
    first = HistoryStore(kv, flush_delay=0)
    first.append(entry(1))

    store = HistoryStore(kv, flush_delay=60)
    store.load_all()
    store.append(entry(2))
    store.clear_all()

    assert not store.flush_pending
    assert kv.get(HISTORY_KEY) is None
    assert len(store) == 0


class SlowStore(MemoryKeyValueStore):
    """Holds every ``set`` until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def set(self, key, value):
        self.entered.set()
        self.release.wait(5)
        super().set(key, value)


class FlakyStore(MemoryKeyValueStore):
    def __init__(self, initial=None):
        super().__init__(initial)
        self.failing = True

    def set(self, key, value):
        if self.failing:
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        super().set(key, value)


def test_clear_all_during_running_write_stays_cleared():
    kv = SlowStore()
    store = HistoryStore(kv, flush_delay=0.01)
    store.append(entry(1))
    assert kv.entered.wait(3)

    clearer = threading.Thread(target=store.clear_all)
    clearer.start()
    time.sleep(0.05)
    kv.release.set()
    clearer.join(3)

    assert not clearer.is_alive()
    assert kv.get(HISTORY_KEY) is None
    assert len(store) == 0
    assert store.load_all() == []


def test_load_all_keeps_entries_whose_write_failed(caplog):
    kv = FlakyStore({HISTORY_KEY: json.dumps([entry(1).to_dict()])})
    store = HistoryStore(kv, flush_delay=0)
    store.append(entry(2))

    with caplog.at_level(logging.ERROR):
        loaded = store.load_all()

    assert [e.id for e in loaded] == ["id-2", "id-1"]
    assert "Could not save history" in caplog.text

    kv.failing = False
    store.append(entry(3))
    stored = decode_history(kv.get(HISTORY_KEY))
    assert [e.id for e in stored] == ["id-3", "id-2", "id-1"]
    assert [e.id for e in store.load_all()] == ["id-3", "id-2", "id-1"]


def test_memory_only_store():
    store = HistoryStore()
    store.append(entry(1))
    store.close()
    assert [e.id for e in store.load_all()] == ["id-1"]


def test_sql_store_round_trip(tmp_path):
    url = f"sqlite:///{(tmp_path / 'calc.db').as_posix()}"
    store = HistoryStore(SqlKeyValueStore(url), flush_delay=0)
    store.append(entry(1, result="90"))
    store.append(entry(2, result="Undefined"))

    reloaded = HistoryStore(SqlKeyValueStore(url)).load_all()
    assert [e.result for e in reloaded] == ["Undefined", "90"]
    assert reloaded[0].timestamp == entry(2).timestamp

    store.clear_all()
    assert HistoryStore(SqlKeyValueStore(url)).load_all() == []
