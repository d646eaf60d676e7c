"""
Tests for the session store.

They cover the invariants every operation must keep (at least one file,
a valid active id, unique ids), the policies of individual operations
and the notifications sent to observers.
"""

from __future__ import annotations

import random

from webide.languages import JAVA_TEMPLATE, PYTHON_TEMPLATE, Language
from webide.models import Settings
from webide.session import SessionEvent, SessionStore, default_session


def assert_invariants(store: SessionStore) -> None:
    session = store.session
    ids = [f.id for f in session.files]
    assert session.files
    assert session.active_file_id in ids
    assert len(ids) == len(set(ids))


def test_starts_with_default_session():
    store = SessionStore()
    session = store.session
    assert len(session.files) == 1
    assert session.files[0].name == "main.js"
    assert session.files[0].language == "javascript"
    assert session.active_file_id == session.files[0].id
    assert session.settings == Settings()


def test_add_file_appends_and_activates():
    store = SessionStore()
    session = store.add_file()
    assert len(session.files) == 2
    new = session.files[-1]
    assert new.name == "untitled.js"
    assert session.active_file_id == new.id
    assert_invariants(store)


def test_closing_last_file_is_noop():
    store = SessionStore()
    only = store.session.files[0].id
    session = store.close_file(only)
    assert [f.id for f in session.files] == [only]
    assert session.active_file_id == only


def test_closing_active_file_selects_first_remaining():
    store = SessionStore()
    first = store.session.files[0].id
    store.add_file()
    third = store.add_file().active_file_id
    session = store.close_file(third)
    assert session.active_file_id == first
    assert_invariants(store)


def test_closing_inactive_file_keeps_selection():
    store = SessionStore()
    second = store.add_file().active_file_id
    first = store.session.files[0].id
    session = store.close_file(first)
    assert session.active_file_id == second


def test_random_close_sequences_keep_invariants():
    rng = random.Random(7)
    store = SessionStore()
    for _ in range(200):
        if rng.random() < 0.4:
            store.add_file()
        else:
            ids = [f.id for f in store.session.files] + ["missing"]
            store.close_file(rng.choice(ids))
        assert_invariants(store)


def test_rename_trims_and_rejects_blank():
    store = SessionStore()
    file_id = store.session.files[0].id
    assert store.rename_file(file_id, "  app.js  ").files[0].name == "app.js"
    assert store.rename_file(file_id, "   ").files[0].name == "app.js"
    assert store.rename_file(file_id, "").files[0].name == "app.js"


def test_change_language_resets_content_and_extension():
    store = SessionStore()
    file_id = store.session.files[0].id
    store.update_content(file_id, "console.log('mine')")
    session = store.change_language(file_id, Language.PYTHON)
    file = session.files[0]
    assert file.language == "python"
    assert file.name == "main.py"
    assert file.content == PYTHON_TEMPLATE


def test_change_language_uses_text_before_first_dot():
    store = SessionStore()
    file_id = store.session.files[0].id
    store.rename_file(file_id, "archive.tar.js")
    file = store.change_language(file_id, "java").files[0]
    assert file.name == "archive.java"
    assert file.content == JAVA_TEMPLATE


def test_change_language_unknown_is_noop():
    store = SessionStore()
    before = store.session
    assert store.change_language(before.files[0].id, "cobol") == before


def test_update_content_is_verbatim():
    store = SessionStore()
    file_id = store.session.files[0].id
    text = "\n\n  weird \t content ☃\n"
    assert store.update_content(file_id, text).files[0].content == text


def test_set_active_file_rejects_unknown_id():
    store = SessionStore()
    second = store.add_file().active_file_id
    session = store.set_active_file("nope")
    assert session.active_file_id == second


def test_update_settings_merges_partial():
    store = SessionStore()
    session = store.update_settings({"fontSize": 12, "word_wrap": False, "bogus": 1})
    assert session.settings.font_size == 12
    assert session.settings.word_wrap is False
    assert session.settings.tab_size == 2


def test_reset_settings_and_font_size_clamp():
    store = SessionStore()
    store.update_settings({"font_size": 23})
    assert store.adjust_font_size(5).settings.font_size == 24
    assert store.reset_settings().settings == Settings()
    store.update_settings({"font_size": 11})
    assert store.adjust_font_size(-5).settings.font_size == 10


def test_load_file_detects_language():
    store = SessionStore()
    session = store.load_file("solver.cc", "int main() {}")
    file = session.files[-1]
    assert file.language == "cpp"
    assert file.content == "int main() {}"
    assert session.active_file_id == file.id
    assert store.load_file("notes.txt", "x").files[-1].language == "javascript"


def test_returned_session_is_a_copy():
    store = SessionStore()
    session = store.session
    session.files.clear()
    assert store.session.files


def test_observers_receive_events_and_can_unsubscribe():
    store = SessionStore()
    seen = []
    unsubscribe = store.subscribe(lambda event, session: seen.append(event))
    store.add_file()
    store.update_settings({"minimap": False})
    store.rename_file("missing", "x.js")
    assert seen == [SessionEvent.FILES, SessionEvent.ACTIVE, SessionEvent.SETTINGS]
    unsubscribe()
    store.add_file()
    assert len(seen) == 3


def test_failing_observer_does_not_break_operation():
    store = SessionStore()

    def broken(event, session):
        raise RuntimeError("observer blew up")

    store.subscribe(broken)
    assert len(store.add_file().files) == 2


def test_export_project_shape():
    store = SessionStore(default_session())
    project = store.export_project()
    assert set(project) == {"files", "activeFileId", "settings", "timestamp"}
    assert project["files"][0]["name"] == "main.js"
    assert project["settings"]["fontSize"] == 18
