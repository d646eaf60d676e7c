"""
Tests for the persistence gateway and the autosave debouncer.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from webide.models import EditorFile, Session, Settings
from webide.persistence import (
    ACTIVE_FILE_KEY,
    FILES_KEY,
    SETTINGS_KEY,
    THEME_KEY,
    Debouncer,
    PersistenceGateway,
)
from webide.session import SessionStore
from webide.storage import LocalKeyValueStore, MemoryKeyValueStore


class CountingStore(MemoryKeyValueStore):
    def __init__(self) -> None:
        super().__init__()
        self.writes = []

    def set(self, key: str, value: str) -> None:
        self.writes.append((key, value))
        super().set(key, value)


def _files_written(kv: CountingStore):
    return [json.loads(value) for key, value in kv.writes if key == FILES_KEY]


def test_round_trip(gateway):
    session = Session(
        files=[
            EditorFile(id="a", name="one.py", language="python", content="print(1)"),
            EditorFile(id="b", name="Main.java", language="java", content=""),
        ],
        active_file_id="b",
        settings=Settings(font_size=14, tab_size=4, minimap=False, format_on_save=True),
    )
    assert gateway.save(session) is True
    assert gateway.load() == session


def test_save_skipped_without_autosave(kv_store, gateway):
    session = Session(
        files=[EditorFile(id="a", name="a.js", language="javascript")],
        active_file_id="a",
        settings=Settings(auto_save=False),
    )
    assert gateway.save(session) is False
    assert kv_store.keys() == []


def test_load_without_state_gives_default(gateway):
    session = gateway.load()
    assert [f.name for f in session.files] == ["main.js"]
    assert session.active_file_id == "1"
    assert session.settings == Settings()


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        '{"id": "1"}',
        "[]",
        '[{"id": "1"}]',
        '[{"id": "1", "name": "a.js", "language": "javascript", "content": ""},'
        ' {"id": "1", "name": "b.js", "language": "javascript", "content": ""}]',
    ],
)
def test_corrupt_files_fall_back_to_default(kv_store, gateway, raw):
    kv_store.set(FILES_KEY, raw)
    session = gateway.load()
    assert len(session.files) == 1
    assert session.files[0].id == "1"
    assert session.files[0].language == "javascript"
    assert session.settings == Settings()


def test_corrupt_settings_do_not_block_files(kv_store, gateway):
    kv_store.set(FILES_KEY, json.dumps([{"id": "x", "name": "x.c", "language": "c", "content": "int"}]))
    kv_store.set(SETTINGS_KEY, "###")
    session = gateway.load()
    assert session.files[0].id == "x"
    assert session.settings == Settings()


def test_partial_settings_merge_over_defaults(kv_store, gateway):
    kv_store.set(SETTINGS_KEY, json.dumps({"fontSize": 20}))
    settings = gateway.load().settings
    assert settings.font_size == 20
    assert settings.auto_save is True


def test_stale_active_id_falls_back_to_first(kv_store, gateway):
    kv_store.set(FILES_KEY, json.dumps([
        {"id": "p", "name": "p.py", "language": "python", "content": ""},
        {"id": "q", "name": "q.py", "language": "python", "content": ""},
    ]))
    kv_store.set(ACTIVE_FILE_KEY, "gone")
    assert gateway.load().active_file_id == "p"


def test_theme_defaults_and_persists(kv_store, gateway):
    assert gateway.load_theme() == "dark"
    gateway.save_theme("light")
    assert kv_store.get(THEME_KEY) == "light"
    assert gateway.load_theme() == "light"
    kv_store.set(THEME_KEY, "purple")
    assert gateway.load_theme() == "dark"
    with pytest.raises(ValueError):
        gateway.save_theme("purple")


def test_settings_and_active_saved_immediately():
    kv = CountingStore()
    store = SessionStore.open(PersistenceGateway(kv, autosave_delay=10))
    store.update_settings({"tab_size": 8})
    assert json.loads(kv.get(SETTINGS_KEY))["tabSize"] == 8
    second = store.add_file().active_file_id
    assert kv.get(ACTIVE_FILE_KEY) == second


def test_write_failure_is_swallowed(store, kv_store, monkeypatch):
    def boom(key, value):
        raise OSError("disk full")

    monkeypatch.setattr(kv_store, "set", boom)
    assert store.update_settings({"minimap": False}).settings.minimap is False


def test_save_writes_every_key_when_one_fails(kv_store, gateway, monkeypatch):
    original_set = kv_store.set

    def fail_files(key, value):
        if key == FILES_KEY:
            raise OSError("disk full")
        original_set(key, value)

    monkeypatch.setattr(kv_store, "set", fail_files)
    session = Session(
        files=[EditorFile(id="a", name="a.js", language="javascript")],
        active_file_id="a",
        settings=Settings(font_size=20),
    )
    assert gateway.save(session) is False
    assert kv_store.get(FILES_KEY) is None
    assert kv_store.get(ACTIVE_FILE_KEY) == "a"
    assert json.loads(kv_store.get(SETTINGS_KEY))["fontSize"] == 20


@pytest.mark.asyncio
async def test_debounce_collapses_burst_of_edits():
    kv = CountingStore()
    gateway = PersistenceGateway(kv, autosave_delay=0.05)
    store = SessionStore.open(gateway)
    file_id = store.session.files[0].id
    for i in range(10):
        store.update_content(file_id, f"edit {i}")
    assert _files_written(kv) == []
    await asyncio.sleep(0.2)
    written = _files_written(kv)
    assert len(written) == 1
    assert written[0][0]["content"] == "edit 9"
    assert store.session.last_saved_at is not None


@pytest.mark.asyncio
async def test_no_autosave_when_disabled():
    kv = CountingStore()
    store = SessionStore.open(PersistenceGateway(kv, autosave_delay=0.01))
    store.update_settings({"auto_save": False})
    store.update_content(store.session.files[0].id, "unsaved")
    await asyncio.sleep(0.05)
    assert _files_written(kv) == []


@pytest.mark.asyncio
async def test_flush_writes_pending_save():
    kv = CountingStore()
    gateway = PersistenceGateway(kv, autosave_delay=60)
    store = SessionStore.open(gateway)
    store.update_content(store.session.files[0].id, "final")
    assert gateway.debouncer.pending
    gateway.flush()
    assert not gateway.debouncer.pending
    assert _files_written(kv)[-1][0]["content"] == "final"


def test_debouncer_runs_immediately_without_loop():
    calls = []
    debouncer = Debouncer(5, lambda: calls.append(1))
    debouncer.trigger()
    assert calls == [1]
    assert not debouncer.pending


def test_local_store_round_trip(tmp_path):
    kv = LocalKeyValueStore(tmp_path / "state")
    kv.set(FILES_KEY, "[]")
    assert kv.get(FILES_KEY) == "[]"
    assert kv.keys() == [FILES_KEY]
    kv.delete(FILES_KEY)
    assert kv.get(FILES_KEY) is None
    with pytest.raises(ValueError):
        kv.set("../escape", "x")
