from __future__ import annotations

import json
import multiprocessing

import pytest

from transit_insights.adapters.persistence.local_history_store import (
    INDEX_FILENAME,
    LocalHistoryStore,
)
from transit_insights.domain.exceptions import PersistenceError
from transit_insights.domain.models import HistoryIndexEntry


@pytest.mark.unit
def test_entries_are_written_read_and_deleted(tmp_path) -> None:
    store = LocalHistoryStore(base_path=tmp_path)

    assert store.read_entry("snapshot-1.json") is None
    store.write_entry("snapshot-1.json", {"id": "1", "timestamp": 1})

    assert store.read_entry("snapshot-1.json") == {"id": "1", "timestamp": 1}
    assert not list(tmp_path.glob("*.tmp"))
    assert store.delete_entry("snapshot-1.json") is True
    assert store.delete_entry("snapshot-1.json") is False


@pytest.mark.unit
def test_index_is_persisted_in_snapshots_layout(tmp_path) -> None:
    store = LocalHistoryStore(base_path=tmp_path)
    legacy = HistoryIndexEntry(timestamp=10, filename="snapshot-10.json")
    current = HistoryIndexEntry(
        timestamp=20, filename="snapshot-20-ab.json", id="20-ab", vehicle_count=3, alert_count=1
    )

    assert store.list_index() == []
    store.append_index_entry(legacy)
    store.append_index_entry(current)

    assert store.list_index() == [legacy, current]
    raw = json.loads((tmp_path / INDEX_FILENAME).read_text(encoding="utf-8"))
    assert raw == {
        "snapshots": [
            {"timestamp": 10, "filename": "snapshot-10.json"},
            {
                "timestamp": 20,
                "filename": "snapshot-20-ab.json",
                "id": "20-ab",
                "vehicleCount": 3,
                "alertCount": 1,
            },
        ]
    }

    assert store.prune_index(15) == [legacy]
    assert store.list_index() == [current]
    assert store.prune_index(15) == []


@pytest.mark.unit
def test_base_directory_comes_from_env(tmp_path, monkeypatch) -> None:
    target = tmp_path / "nested" / "history"
    monkeypatch.setenv("HISTORY_DIR", str(target))

    LocalHistoryStore().write_entry("snapshot-x.json", {"id": "x"})

    assert (target / "snapshot-x.json").exists()


@pytest.mark.unit
@pytest.mark.parametrize("reference", ["../escape.json", "sub/snapshot-1.json"])
def test_references_must_be_bare_file_names(tmp_path, reference) -> None:
    store = LocalHistoryStore(base_path=tmp_path)

    with pytest.raises(PersistenceError, match="Invalid history reference"):
        store.write_entry(reference, {})


@pytest.mark.unit
def test_corrupt_files_raise_persistence_error(tmp_path) -> None:
    store = LocalHistoryStore(base_path=tmp_path)
    (tmp_path / INDEX_FILENAME).write_text("{not json", encoding="utf-8")
    (tmp_path / "snapshot-1.json").write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(PersistenceError):
        store.list_index()
    with pytest.raises(PersistenceError, match="Malformed snapshot"):
        store.read_entry("snapshot-1.json")


def _append_many(base_path: str, writer: int, count: int) -> None:
    store = LocalHistoryStore(base_path=base_path)
    for i in range(count):
        ts = writer * 100_000 + i
        store.append_index_entry(
            HistoryIndexEntry(timestamp=ts, filename=f"snapshot-{ts}.json", id=str(ts))
        )


@pytest.mark.unit
def test_appends_from_separate_processes_are_all_kept(tmp_path) -> None:
    # The API and the worker run as two processes sharing one directory.
    ctx = multiprocessing.get_context("spawn")
    writers = [
        ctx.Process(target=_append_many, args=(str(tmp_path), n, 100)) for n in (1, 2)
    ]
    for p in writers:
        p.start()
    for p in writers:
        p.join(timeout=60)

    assert [p.exitcode for p in writers] == [0, 0]
    entries = LocalHistoryStore(base_path=tmp_path).list_index()
    assert len(entries) == 200
    assert len({e.id for e in entries}) == 200
    assert not list(tmp_path.glob("*.tmp"))


@pytest.mark.unit
def test_prune_keeps_entries_appended_while_waiting_for_the_lock(tmp_path) -> None:
    store = LocalHistoryStore(base_path=tmp_path)
    for ts in (1, 2, 3):
        store.append_index_entry(HistoryIndexEntry(timestamp=ts, filename=f"snapshot-{ts}.json"))

    ctx = multiprocessing.get_context("spawn")
    writer = ctx.Process(target=_append_many, args=(str(tmp_path), 1, 20))
    writer.start()
    removed = store.prune_index(3)
    writer.join(timeout=60)

    assert writer.exitcode == 0
    assert [e.timestamp for e in removed] == [1, 2]
    remaining = {e.timestamp for e in store.list_index()}
    assert 3 in remaining and not {1, 2} & remaining
    assert len(remaining) == 21
