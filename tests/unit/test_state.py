"""Tests for durable state stores."""

from __future__ import annotations

from switchyard.state import InMemoryStateStore, JsonFileStateStore


def test_in_memory_returns_copies():
    store = InMemoryStateStore()
    assert store.get() is None
    state = {"items": [1]}
    store.set(state)
    state["items"].append(2)
    loaded = store.get()
    assert loaded == {"items": [1]}
    loaded["items"].append(3)
    assert store.get() == {"items": [1]}


def test_json_file_round_trip(tmp_path):
    store = JsonFileStateStore(tmp_path / "state", "router")
    assert store.get() is None
    store.set({"routing_history": [{"query": "q"}]})
    assert store.path == tmp_path / "state" / "router.json"
    assert JsonFileStateStore(tmp_path / "state", "router").get() == {
        "routing_history": [{"query": "q"}]
    }


def test_json_file_last_write_wins(tmp_path):
    store = JsonFileStateStore(tmp_path, "k")
    store.set({"v": 1})
    store.set({"v": 2})
    assert store.get() == {"v": 2}
    assert [p.name for p in tmp_path.iterdir()] == ["k.json"]


def test_json_file_corrupt_is_ignored(tmp_path):
    (tmp_path / "bad.json").write_text("{not json")
    assert JsonFileStateStore(tmp_path, "bad").get() is None


def test_json_file_undecodable_bytes_are_ignored(tmp_path):
    (tmp_path / "bad.json").write_bytes(b"\xff\xfe\x00")
    assert JsonFileStateStore(tmp_path, "bad").get() is None
