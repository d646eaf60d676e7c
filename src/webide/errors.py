"""Error taxonomy shared by the session, persistence and execution layers.

None of these exceptions are allowed to escape :class:`~webide.session.SessionStore`
or :class:`~webide.dispatcher.ExecutionDispatcher`; they are raised
internally and converted into log records or a user visible
:class:`~webide.models.ExecutionResult`.  The HTTP layer maps the ones
that reach it onto status codes.
"""

from __future__ import annotations

from typing import Optional


class WebIDEError(Exception):
    """Base class for all errors raised by this package."""

    kind = "WebIDEError"


class ValidationError(WebIDEError):
    """A request is missing required fields or carries invalid values."""

    kind = "ValidationError"


class UnsupportedLanguage(WebIDEError):
    """The language has no configured runner."""

    kind = "UnsupportedLanguage"

    def __init__(self, language: str) -> None:
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class TransportFailure(WebIDEError):
    """The remote execution service could not be reached or answered badly.

    This is distinct from :class:`ProgramFailure`: the code may never have
    run at all.
    """

    kind = "TransportFailure"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProgramFailure(WebIDEError):
    """The code ran but exited non-zero or raised."""

    kind = "ProgramFailure"

    def __init__(
        self,
        message: str,
        output: str = "",
        exit_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.output = output
        self.exit_code = exit_code


class PersistenceCorruption(WebIDEError):
    """A stored value could not be parsed back into session state."""

    kind = "PersistenceCorruption"

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Corrupt value for {key!r}: {reason}")
        self.key = key
        self.reason = reason
