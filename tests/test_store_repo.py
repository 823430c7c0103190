import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from store.engine import get_engine
from store.repository import RowNotFoundError, StoreError, TableStore
from tracker.transform import form_to_draft, to_domain, to_wire_insert


@pytest.fixture()
def store(tmp_path):
    return TableStore(get_engine(tmp_path / "migraine.db"))


def _row(user_id="user-a", start="2025-01-01T10:00:00Z", **form):
    candidate = {"start_time": start, "severity": 5, "pain_location": ["neck"], **form}
    return to_wire_insert(form_to_draft(candidate), user_id)


def test_engine_path_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("MIGRAINE_DB_PATH", str(tmp_path / "env.db"))
    engine = get_engine()
    assert Path(engine.url.database) == (tmp_path / "env.db").resolve()


def test_insert_roundtrip(store):
    saved = store.insert(
        "episodes",
        _row(
            end_time="2025-01-01T12:00:00Z",
            medications=[{"name": "Ibuprofen", "dosage": "400mg", "time_taken": "2025-01-01T10:15:00Z"}],
            contributing_factors={"hours_of_sleep": 6.5},
        ),
    )
    assert saved["id"]
    assert saved["start_time"] == "2025-01-01T10:00:00.000000Z"
    assert saved["created_at"].endswith("Z")

    ep = to_domain(store.get("episodes", "user-a", saved["id"]))
    assert ep.user_id == "user-a"
    assert ep.medications[0].name == "Ibuprofen"
    assert ep.contributing_factors.hours_of_sleep == 6.5


def test_list_is_owner_scoped_and_ordered(store):
    store.insert("episodes", _row(start="2025-01-01T10:00:00Z"))
    store.insert("episodes", _row(start="2025-03-01T10:00:00Z"))
    store.insert("episodes", _row(start="2025-02-01T10:00:00Z"))
    store.insert("episodes", _row(user_id="user-b"))

    rows = store.list("episodes", "user-a", order_by="start_time", descending=True)
    assert [r["start_time"][:7] for r in rows] == ["2025-03", "2025-02", "2025-01"]
    assert len(store.list("episodes", "user-b")) == 1
    assert store.list("episodes", "nobody") == []


def test_rows_of_other_owners_are_invisible(store):
    saved = store.insert("episodes", _row())
    with pytest.raises(RowNotFoundError):
        store.get("episodes", "user-b", saved["id"])
    with pytest.raises(RowNotFoundError):
        store.update("episodes", "user-b", saved["id"], {"severity": 9})
    with pytest.raises(RowNotFoundError):
        store.delete("episodes", "user-b", saved["id"])
    assert store.get("episodes", "user-a", saved["id"])["severity"] == 5


def test_update_and_delete(store):
    saved = store.insert("episodes", _row())
    updated = store.update("episodes", "user-a", saved["id"], {"severity": 9, "notes": "worse"})
    assert updated["severity"] == 9
    assert updated["notes"] == "worse"
    assert updated["pain_location"] == ["neck"]

    store.delete("episodes", "user-a", saved["id"])
    with pytest.raises(RowNotFoundError):
        store.get("episodes", "user-a", saved["id"])


def test_store_errors(store):
    with pytest.raises(StoreError):
        store.insert("episodes", {**_row(), "mood": "grim"})
    with pytest.raises(StoreError):
        store.insert("episodes", _row(user_id=""))
    with pytest.raises(StoreError):
        store.insert("migraines", _row())
    with pytest.raises(StoreError):
        store.list("episodes", "user-a", order_by="mood")

    saved = store.insert("episodes", _row())
    with pytest.raises(StoreError):
        store.update("episodes", "user-a", saved["id"], {"user_id": "user-b"})
    with pytest.raises(StoreError):
        store.update("episodes", "user-a", saved["id"], {"start_time": "whenever"})


def test_constraint_violation_is_a_store_error(store):
    row = _row()
    row["severity"] = None
    with pytest.raises(StoreError) as info:
        store.insert("episodes", row)
    assert "NOT NULL" in info.value.message
