"""Shared fixtures.

The API module builds its session at import time, so the environment is
pointed at in-memory storage before anything imports it.
"""

from __future__ import annotations

import os
import sys
from typing import List

os.environ.setdefault("WEBIDE_STORAGE_BACKEND", "memory")
os.environ.setdefault("WEBIDE_API_KEY", "")
os.environ.setdefault("WEBIDE_AUTOSAVE_DELAY_MS", "50")

import pytest

from webide.executor.base import LocalOutcome, RunOutcome
from webide.persistence import PersistenceGateway
from webide.session import SessionStore
from webide.storage import MemoryKeyValueStore


class FakeLocalRunner:
    """Stands in for the local sandbox and records what it was asked to run."""

    def __init__(self, outcome: LocalOutcome | None = None) -> None:
        self.outcome = outcome or LocalOutcome(stdout="")
        self.calls: List[str] = []

    def execute(self, source: str) -> LocalOutcome:
        self.calls.append(source)
        return self.outcome

    async def execute_async(self, source: str) -> LocalOutcome:
        return self.execute(source)


class FakeRemoteClient:
    """Stands in for the remote execution client."""

    def __init__(self, outcome: RunOutcome | None = None, error: Exception | None = None) -> None:
        self.outcome = outcome or RunOutcome(stdout="", stderr="", exit_code=0)
        self.error = error
        self.calls: List[tuple] = []

    async def execute(self, language_id: str, version: str, source: str, filename: str) -> RunOutcome:
        self.calls.append((language_id, version, source, filename))
        if self.error is not None:
            raise self.error
        return self.outcome


@pytest.fixture
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def gateway(kv_store) -> PersistenceGateway:
    return PersistenceGateway(kv_store, autosave_delay=0.05)


@pytest.fixture
def store(gateway) -> SessionStore:
    return SessionStore.open(gateway)


@pytest.fixture
def python_command() -> List[str]:
    """Interpreter command that lets the local sandbox run Python snippets."""
    return [sys.executable, "{script}"]
