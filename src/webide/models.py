"""Pydantic models for session state and HTTP bodies.

Field names are snake_case in Python and camelCase on the wire (and in
persisted JSON), matching what the browser client stores and sends.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

FONT_SIZE_MIN = 10
FONT_SIZE_MAX = 24
TAB_SIZES = (2, 4, 6, 8)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EditorFile(_CamelModel):
    """One open file.  ``id`` is unique within the session."""

    id: str
    name: str
    language: str
    content: str = ""


class Settings(_CamelModel):
    """Editor preferences.  The defaults are the values a fresh session starts with."""

    font_size: int = Field(default=18, ge=FONT_SIZE_MIN, le=FONT_SIZE_MAX)
    tab_size: int = 2
    word_wrap: bool = True
    minimap: bool = True
    line_numbers: bool = True
    auto_save: bool = True
    format_on_save: bool = False

    @field_validator("tab_size")
    @classmethod
    def _check_tab_size(cls, value: int) -> int:
        if value not in TAB_SIZES:
            raise ValueError(f"tabSize must be one of {TAB_SIZES}")
        return value


class Session(_CamelModel):
    """Complete in-memory state of one editing instance."""

    files: List[EditorFile]
    active_file_id: str
    settings: Settings = Field(default_factory=Settings)
    last_saved_at: Optional[datetime] = None


class ExecutionResult(_CamelModel):
    """Normalized outcome of a single run.  Never persisted."""

    output_text: str
    exit_code: Optional[int] = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_message is None


# HTTP request and response bodies


class ExecuteRequest(BaseModel):
    """Body of the execution forwarding endpoint.

    Both fields are optional here so that a missing value produces the
    documented ``400`` rather than FastAPI's generic ``422``.
    """

    language: Optional[str] = Field(default=None, description="Language of the snippet.")
    code: Optional[str] = Field(default=None, description="Source code to execute.")


class ExecuteResponse(BaseModel):
    output: str
    exitCode: int
    error: Optional[str] = None


class CompletionRequest(BaseModel):
    prompt: Optional[str] = None


class FileUpdateRequest(_CamelModel):
    """Partial update of one file.  Fields are applied rename, language, content."""

    name: Optional[str] = None
    language: Optional[str] = None
    content: Optional[str] = None


class ActiveFileRequest(BaseModel):
    id: str


class SettingsUpdate(_CamelModel):
    """Partial settings; omitted fields keep their current value."""

    font_size: Optional[int] = Field(default=None, ge=FONT_SIZE_MIN, le=FONT_SIZE_MAX)
    tab_size: Optional[int] = None
    word_wrap: Optional[bool] = None
    minimap: Optional[bool] = None
    line_numbers: Optional[bool] = None
    auto_save: Optional[bool] = None
    format_on_save: Optional[bool] = None

    @field_validator("tab_size")
    @classmethod
    def _check_tab_size(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in TAB_SIZES:
            raise ValueError(f"tabSize must be one of {TAB_SIZES}")
        return value


class FontSizeRequest(BaseModel):
    delta: int


class ThemeBody(BaseModel):
    theme: Literal["dark", "light"]


class RunResponse(ExecutionResult):
    """Execution result plus the text the output panel shows."""

    output: str
