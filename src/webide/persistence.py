"""Durable persistence of session state.

The gateway serializes the session into four independent keys of a
:class:`~webide.storage.KeyValueStore`: the file collection, the active
file id, the settings and the theme.  Each key is read on its own so that
a corrupt value under one key never prevents the others from loading.

File edits arrive far more often than anything else, so they are
written through a :class:`Debouncer`; every edit re-arms the timer and
only the last edit of a burst reaches storage.  The active file and the
settings are written immediately.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Callable, List, Optional

from .errors import PersistenceCorruption
from .models import EditorFile, Session, Settings
from .session import SessionEvent, default_session
from .storage import KeyValueStore

if TYPE_CHECKING:
    from .session import SessionStore

logger = logging.getLogger(__name__)

FILES_KEY = "code-editor-files"
ACTIVE_FILE_KEY = "code-editor-active-file"
THEME_KEY = "code-editor-theme"
SETTINGS_KEY = "code-editor-settings"

THEMES = ("dark", "light")
DEFAULT_THEME = "dark"


class Debouncer:
    """Run ``callback`` once ``delay`` seconds after the last :meth:`trigger`.

    Scheduling uses the running asyncio loop.  Outside of an event loop
    there is nothing to wait on, so the callback runs immediately.
    """

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.callback()
            return
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Run a pending callback now instead of waiting for the timer."""
        if self._handle is not None:
            self.cancel()
            self.callback()

    def _fire(self) -> None:
        self._handle = None
        self.callback()


class PersistenceGateway:
    """Load and save :class:`~webide.models.Session` state."""

    def __init__(self, store: KeyValueStore, autosave_delay: float = 1.0) -> None:
        self.store = store
        self.debouncer = Debouncer(autosave_delay, self._autosave)
        self._session_store: Optional["SessionStore"] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    # -- loading -------------------------------------------------------

    def load(self) -> Session:
        """Return the stored session, or the default session if none is usable.

        Never raises: corrupt values are logged and replaced by defaults.
        """
        settings = self._load_settings()
        try:
            files = self._load_files()
        except PersistenceCorruption as exc:
            logger.warning("Falling back to the default session: %s", exc)
            files = None

        if not files:
            session = default_session()
            session.settings = settings
            return session

        active_id = self._read(ACTIVE_FILE_KEY)
        if active_id not in {f.id for f in files}:
            active_id = files[0].id
        return Session(files=files, active_file_id=active_id, settings=settings)

    def _read(self, key: str) -> Optional[str]:
        try:
            return self.store.get(key)
        except Exception:
            logger.exception("Unable to read %s from storage", key)
            return None

    def _load_settings(self) -> Settings:
        raw = self._read(SETTINGS_KEY)
        if raw is None:
            return Settings()
        try:
            stored = json.loads(raw)
            if not isinstance(stored, dict):
                raise PersistenceCorruption(SETTINGS_KEY, "expected a JSON object")
            merged = {**Settings().model_dump(by_alias=True), **stored}
            return Settings.model_validate(merged)
        except PersistenceCorruption as exc:
            logger.warning("Failed to load settings: %s", exc)
        except ValueError as exc:
            logger.warning("Failed to load settings: %s", PersistenceCorruption(SETTINGS_KEY, str(exc)))
        return Settings()

    def _load_files(self) -> Optional[List[EditorFile]]:
        raw = self._read(FILES_KEY)
        if raw is None:
            return None
        try:
            stored = json.loads(raw)
        except ValueError as exc:
            raise PersistenceCorruption(FILES_KEY, f"invalid JSON ({exc})")
        if not isinstance(stored, list):
            raise PersistenceCorruption(FILES_KEY, "expected a JSON array")
        if not stored:
            raise PersistenceCorruption(FILES_KEY, "file list is empty")
        try:
            files = [EditorFile.model_validate(item) for item in stored]
        except ValueError as exc:
            raise PersistenceCorruption(FILES_KEY, f"invalid file entry ({exc})")
        ids = [f.id for f in files]
        if len(set(ids)) != len(ids):
            raise PersistenceCorruption(FILES_KEY, "duplicate file ids")
        return files

    def load_theme(self) -> str:
        theme = self._read(THEME_KEY)
        return theme if theme in THEMES else DEFAULT_THEME

    # -- saving --------------------------------------------------------

    def save(self, session: Session) -> bool:
        """Write the whole session.  Skipped when autosave is disabled.

        Each key is written even if another fails.  Returns whether every
        write succeeded.
        """
        if not session.settings.auto_save:
            return False
        results = [
            self.save_files(session.files),
            self.save_active_file(session.active_file_id),
            self.save_settings(session.settings),
        ]
        return all(results)

    def save_files(self, files: List[EditorFile]) -> bool:
        payload = json.dumps([f.model_dump(by_alias=True) for f in files])
        return self._write(FILES_KEY, payload)

    def save_active_file(self, file_id: str) -> bool:
        return self._write(ACTIVE_FILE_KEY, file_id)

    def save_settings(self, settings: Settings) -> bool:
        return self._write(SETTINGS_KEY, settings.model_dump_json(by_alias=True))

    def save_theme(self, theme: str) -> bool:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        return self._write(THEME_KEY, theme)

    def _write(self, key: str, value: str) -> bool:
        try:
            self.store.set(key, value)
        except Exception:
            logger.exception("Unable to write %s to storage", key)
            return False
        return True

    # -- observing a store ---------------------------------------------

    def attach(self, session_store: "SessionStore") -> None:
        """Persist ``session_store`` as it changes."""
        self.detach()
        self._session_store = session_store
        self._unsubscribe = session_store.subscribe(self._on_event)

    def detach(self) -> None:
        self.debouncer.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = None
        self._session_store = None

    def flush(self) -> None:
        """Write any pending debounced save now."""
        self.debouncer.flush()

    def _on_event(self, event: SessionEvent, session: Session) -> None:
        if event is SessionEvent.FILES:
            if session.settings.auto_save:
                self.debouncer.trigger()
        elif event is SessionEvent.ACTIVE:
            self.save_active_file(session.active_file_id)
        elif event is SessionEvent.SETTINGS:
            self.save_settings(session.settings)
            if not session.settings.auto_save:
                self.debouncer.cancel()

    def _autosave(self) -> None:
        if self._session_store is None:
            return
        session = self._session_store.session
        if not session.settings.auto_save:
            return
        if self.save_files(session.files):
            self._session_store.mark_saved()
            logger.debug("Autosaved %d file(s)", len(session.files))
