"""Configuration loader.

The editor backend reads its configuration from environment variables so
that the same image can run locally, under docker-compose or on Cloud
Run.  Reasonable defaults are provided so that local development works
out of the box.

Environment variables:

``WEBIDE_API_KEY``
    Shared secret expected in the ``x-api-key`` header.  Authentication is
    skipped when empty.

``WEBIDE_STORAGE_BACKEND``
    Selects the persistence substrate.  Supported values are ``local``,
    ``memory`` and ``gcs``.  Defaults to ``local``.

``WEBIDE_STORAGE_PATH``
    Base directory for the ``local`` backend.  Defaults to ``/tmp/webide``.

``WEBIDE_GCS_BUCKET``
    Bucket used by the ``gcs`` backend.  Required if using that backend.

``WEBIDE_AUTOSAVE_DELAY_MS``
    Debounce window for autosaving file edits.  Default is 1000.

``WEBIDE_PISTON_URL``
    Execute endpoint of the remote code execution service.

``WEBIDE_REMOTE_TIMEOUT_SECONDS``
    Timeout for one call to the remote service.  Default is 30.

``WEBIDE_NODE_BINARY``
    Interpreter used for JavaScript in the local sandbox.  Default ``node``.

``WEBIDE_MAX_EXECUTION_SECONDS``
    Wall-clock timeout (in seconds) for a local run.  Default is 10.

``WEBIDE_MAX_CPU_SECS``
    CPU time limit (in seconds) for a local run.  Default is 10.

``WEBIDE_MAX_MEMORY_MB``
    Heap limit (in megabytes) for a local run.  Default is 256.

``WEBIDE_COMPLETION_URL``
    Generative text endpoint used by the completion pass-through.

``WEBIDE_COMPLETION_API_KEY``
    Key for the completion service; ``GEMINI_API_KEY`` is used if unset.

``WEBIDE_LOG_REQUESTS``
    If ``true``, every HTTP request is logged.  Defaults to ``true``.

``PORT``
    The port on which the API server listens.  Defaults to 8080.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_PISTON_URL = "https://emkc.org/api/v2/piston/execute"
DEFAULT_COMPLETION_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"
)

STORAGE_BACKENDS = {"local", "memory", "gcs"}


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y"}


def _int_var(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {val}")


@dataclass
class Config:
    """Centralised configuration object."""

    api_key: str
    storage_backend: str
    storage_path: str
    gcs_bucket: Optional[str]
    autosave_delay_seconds: float
    piston_url: str
    remote_timeout_seconds: int
    node_binary: str
    max_execution_seconds: int
    max_cpu_secs: int
    max_memory_mb: int
    completion_url: str
    completion_api_key: Optional[str]
    log_requests: bool
    port: int

    @classmethod
    def load(cls) -> "Config":
        api_key = os.getenv("WEBIDE_API_KEY", "")

        storage_backend = os.getenv("WEBIDE_STORAGE_BACKEND", "local").lower()
        if storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Invalid WEBIDE_STORAGE_BACKEND: {storage_backend}. "
                f"Use one of {sorted(STORAGE_BACKENDS)}."
            )
        storage_path = os.getenv("WEBIDE_STORAGE_PATH", "/tmp/webide")
        gcs_bucket = os.getenv("WEBIDE_GCS_BUCKET")
        if storage_backend == "gcs" and not gcs_bucket:
            raise RuntimeError(
                "WEBIDE_GCS_BUCKET must be set when using the GCS storage backend"
            )

        completion_api_key = os.getenv("WEBIDE_COMPLETION_API_KEY") or os.getenv(
            "GEMINI_API_KEY"
        )

        return cls(
            api_key=api_key,
            storage_backend=storage_backend,
            storage_path=storage_path,
            gcs_bucket=gcs_bucket,
            autosave_delay_seconds=_int_var("WEBIDE_AUTOSAVE_DELAY_MS", 1000) / 1000.0,
            piston_url=os.getenv("WEBIDE_PISTON_URL", DEFAULT_PISTON_URL),
            remote_timeout_seconds=_int_var("WEBIDE_REMOTE_TIMEOUT_SECONDS", 30),
            node_binary=os.getenv("WEBIDE_NODE_BINARY", "node"),
            max_execution_seconds=_int_var("WEBIDE_MAX_EXECUTION_SECONDS", 10),
            max_cpu_secs=_int_var("WEBIDE_MAX_CPU_SECS", 10),
            max_memory_mb=_int_var("WEBIDE_MAX_MEMORY_MB", 256),
            completion_url=os.getenv("WEBIDE_COMPLETION_URL", DEFAULT_COMPLETION_URL),
            completion_api_key=completion_api_key or None,
            log_requests=_parse_bool(os.getenv("WEBIDE_LOG_REQUESTS"), True),
            port=_int_var("PORT", 8080),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Alternate constructor used by the API to load configuration."""
        return cls.load()
