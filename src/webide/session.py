"""In-memory session state.

:class:`SessionStore` owns the file collection, the active selection and
the editor settings.  Every public operation returns a copy of the
updated :class:`~webide.models.Session`; operations that cannot apply
(unknown id, empty name, closing the last file) leave the state untouched
and return it unchanged rather than raising.

After every applied mutation the store notifies its observers
synchronously with a :class:`SessionEvent` describing what changed.  The
persistence gateway uses the event to decide between a debounced and an
immediate write.
"""

from __future__ import annotations

import enum
import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

from .errors import UnsupportedLanguage
from .languages import (
    DEFAULT_LANGUAGE,
    Language,
    language_for_filename,
    parse_language,
    spec_for,
    template_for,
)
from .models import FONT_SIZE_MAX, FONT_SIZE_MIN, EditorFile, Session, Settings

if TYPE_CHECKING:
    from .persistence import PersistenceGateway

logger = logging.getLogger(__name__)


class SessionEvent(str, enum.Enum):
    FILES = "files"
    ACTIVE = "active"
    SETTINGS = "settings"


Observer = Callable[[SessionEvent, Session], None]


def default_file() -> EditorFile:
    """The single file a brand new (or unrecoverable) session starts with."""
    spec = spec_for(DEFAULT_LANGUAGE)
    return EditorFile(
        id="1",
        name=f"main{spec.extension}",
        language=DEFAULT_LANGUAGE.value,
        content=spec.template,
    )


def default_session() -> Session:
    file = default_file()
    return Session(files=[file], active_file_id=file.id, settings=Settings())


def _settings_field_names() -> Dict[str, str]:
    # accept both wire names (fontSize) and attribute names (font_size)
    names: Dict[str, str] = {}
    for name, field in Settings.model_fields.items():
        names[name] = name
        if field.alias:
            names[field.alias] = name
    return names


class SessionStore:
    """Owner of the session state."""

    def __init__(self, session: Optional[Session] = None) -> None:
        self._session = session.model_copy(deep=True) if session else default_session()
        self._observers: List[Observer] = []

    @classmethod
    def open(cls, gateway: "PersistenceGateway") -> "SessionStore":
        """Build a store from persisted state and keep it persisted."""
        store = cls(gateway.load())
        gateway.attach(store)
        return store

    # -- observation ---------------------------------------------------

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer``; the returned callable unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, *events: SessionEvent) -> None:
        for event in events:
            for observer in list(self._observers):
                try:
                    observer(event, self._session)
                except Exception:
                    logger.exception("Session observer failed for %s event", event.value)

    # -- queries -------------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session.model_copy(deep=True)

    @property
    def files(self) -> List[EditorFile]:
        return [f.model_copy() for f in self._session.files]

    @property
    def settings(self) -> Settings:
        return self._session.settings.model_copy()

    @property
    def active_file(self) -> EditorFile:
        found = self._find(self._session.active_file_id)
        return (found or self._session.files[0]).model_copy()

    def get_file(self, file_id: str) -> Optional[EditorFile]:
        found = self._find(file_id)
        return found.model_copy() if found else None

    def _find(self, file_id: str) -> Optional[EditorFile]:
        for file in self._session.files:
            if file.id == file_id:
                return file
        return None

    def _new_id(self) -> str:
        existing = {f.id for f in self._session.files}
        while True:
            candidate = uuid.uuid4().hex
            if candidate not in existing:
                return candidate

    # -- file operations -----------------------------------------------

    def add_file(self, language: Language = DEFAULT_LANGUAGE) -> Session:
        """Append a new templated file and make it active."""
        spec = spec_for(language)
        file = EditorFile(
            id=self._new_id(),
            name=f"untitled{spec.extension}",
            language=language.value,
            content=spec.template,
        )
        self._session.files.append(file)
        self._session.active_file_id = file.id
        self._notify(SessionEvent.FILES, SessionEvent.ACTIVE)
        return self.session

    def load_file(self, filename: str, content: str) -> Session:
        """Open a file read from disk, guessing its language from the extension."""
        name = filename.strip() or "untitled"
        file = EditorFile(
            id=self._new_id(),
            name=name,
            language=language_for_filename(name).value,
            content=content,
        )
        self._session.files.append(file)
        self._session.active_file_id = file.id
        self._notify(SessionEvent.FILES, SessionEvent.ACTIVE)
        return self.session

    def close_file(self, file_id: str) -> Session:
        """Remove a file.  The last remaining file cannot be closed."""
        files = self._session.files
        if len(files) <= 1 or self._find(file_id) is None:
            return self.session
        self._session.files = [f for f in files if f.id != file_id]
        events = [SessionEvent.FILES]
        if self._session.active_file_id == file_id:
            self._session.active_file_id = self._session.files[0].id
            events.append(SessionEvent.ACTIVE)
        self._notify(*events)
        return self.session

    def rename_file(self, file_id: str, new_name: str) -> Session:
        file = self._find(file_id)
        name = (new_name or "").strip()
        if file is None or not name:
            logger.debug("Rename of %s to %r discarded", file_id, new_name)
            return self.session
        file.name = name
        self._notify(SessionEvent.FILES)
        return self.session

    def change_language(self, file_id: str, language: Language | str) -> Session:
        """Switch a file's language.

        The name keeps its base (text before the first ``.``) and takes the
        new extension.  The content is replaced with the language template,
        discarding whatever was there.
        """
        file = self._find(file_id)
        if file is None:
            return self.session
        try:
            lang = language if isinstance(language, Language) else parse_language(language)
        except UnsupportedLanguage as exc:
            logger.warning("Language change ignored: %s", exc)
            return self.session
        base_name = file.name.split(".")[0]
        file.language = lang.value
        file.name = base_name + spec_for(lang).extension
        file.content = template_for(lang)
        self._notify(SessionEvent.FILES)
        return self.session

    def update_content(self, file_id: str, content: str) -> Session:
        file = self._find(file_id)
        if file is None:
            return self.session
        file.content = content
        self._notify(SessionEvent.FILES)
        return self.session

    def set_active_file(self, file_id: str) -> Session:
        if self._find(file_id) is None or file_id == self._session.active_file_id:
            return self.session
        self._session.active_file_id = file_id
        self._notify(SessionEvent.ACTIVE)
        return self.session

    # -- settings ------------------------------------------------------

    def update_settings(self, partial: Mapping[str, Any]) -> Session:
        """Merge ``partial`` into the settings.

        Values are taken as given; range checks belong to the caller.
        Unknown keys are ignored.
        """
        names = _settings_field_names()
        update: Dict[str, Any] = {}
        for key, value in partial.items():
            if key not in names:
                logger.debug("Ignoring unknown setting %r", key)
                continue
            if value is not None:
                update[names[key]] = value
        if not update:
            return self.session
        self._session.settings = self._session.settings.model_copy(update=update)
        self._notify(SessionEvent.SETTINGS)
        return self.session

    def reset_settings(self) -> Session:
        self._session.settings = Settings()
        self._notify(SessionEvent.SETTINGS)
        return self.session

    def adjust_font_size(self, delta: int) -> Session:
        """Zoom in or out, staying within the allowed font size range."""
        current = self._session.settings.font_size
        target = max(FONT_SIZE_MIN, min(FONT_SIZE_MAX, current + delta))
        if target == current:
            return self.session
        return self.update_settings({"font_size": target})

    # -- persistence hooks ---------------------------------------------

    def mark_saved(self, when: Optional[datetime] = None) -> None:
        """Record a completed save.  Not a user mutation, so observers are not told."""
        self._session.last_saved_at = when or datetime.now(timezone.utc)

    def export_project(self) -> Dict[str, Any]:
        """Snapshot of the whole project in the downloadable project format."""
        return {
            "files": [f.model_dump(by_alias=True) for f in self._session.files],
            "activeFileId": self._session.active_file_id,
            "settings": self._session.settings.model_dump(by_alias=True),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
