"""
Unit tests for wqsim.core.device_store.DeviceStateStore.

Covers:
- registration, duplicate ids and removal
- reads returning private copies
- update() committing on return and discarding on exception
"""

from __future__ import annotations

import pytest


def test_add_and_get_returns_copy(make_record, store) -> None:
    rec = make_record(device_id="a")
    store.add(rec)

    got = store.get("a")
    got.technical.battery_level = 1.0
    got.technical.alerts.append("junk")

    again = store.get("a")
    assert again.technical.battery_level == 100.0
    assert again.technical.alerts == []


def test_add_stores_a_private_copy(make_record, store) -> None:
    rec = make_record(device_id="a")
    store.add(rec)
    rec.is_online = False
    assert store.get("a").is_online is True


def test_duplicate_id_is_rejected(make_record, store) -> None:
    store.add(make_record(device_id="a"))
    with pytest.raises(ValueError):
        store.add(make_record(device_id="a"))


def test_unknown_device_reads_as_none(store) -> None:
    assert store.get("nope") is None
    assert store.update("nope", lambda rec: 1) is None
    assert "nope" not in store


def test_ids_keep_registration_order(make_record, store) -> None:
    for i in ("c", "a", "b"):
        store.add(make_record(device_id=i))

    assert store.ids() == ["c", "a", "b"]
    assert list(store) == ["c", "a", "b"]
    assert [r.device_id for r in store.snapshot()] == ["c", "a", "b"]
    assert len(store) == 3


def test_remove(make_record, store) -> None:
    store.add(make_record(device_id="a"))

    assert store.remove("a") is True
    assert store.remove("a") is False
    assert len(store) == 0


def test_update_commits_and_returns_result(make_record, store) -> None:
    store.add(make_record(device_id="a"))

    def drain(rec):
        rec.technical.battery_level = 42.0
        return "done"

    assert store.update("a", drain) == "done"
    assert store.get("a").technical.battery_level == 42.0


def test_update_discards_changes_when_fn_raises(make_record, store) -> None:
    """A failing mutation must leave the stored record untouched."""
    store.add(make_record(device_id="a"))

    def half_write(rec):
        rec.technical.battery_level = 0.0
        rec.current["ph"] = 99.0
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        store.update("a", half_write)

    got = store.get("a")
    assert got.technical.battery_level == 100.0
    assert got.current["ph"] == 7.2
