"""
FastAPI application for the editor backend.

This module configures the FastAPI application and registers routes for
the editing session (file commands, settings, theme), for running the
active file, for the execution forwarding endpoint used by browser
clients, and for the completion pass-through.  Authentication via an API
key is enforced when one is configured.

The session is built once at import time from persisted state and is
saved again when the application shuts down.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict
from urllib.parse import quote

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response

from ..completion import CompletionClient
from ..config import Config
from ..dispatcher import ExecutionDispatcher, RunGuard, combine_output, render_output
from ..errors import TransportFailure, ValidationError
from ..executor import LocalSandboxRunner, RemoteExecutionClient
from ..languages import Language, LanguageSpec, RunnerKind, spec_for
from ..models import (
    ActiveFileRequest,
    CompletionRequest,
    ExecuteRequest,
    ExecuteResponse,
    FileUpdateRequest,
    FontSizeRequest,
    RunResponse,
    Session,
    SettingsUpdate,
    ThemeBody,
)
from ..persistence import PersistenceGateway
from ..session import SessionStore
from ..storage import build_store


logger = logging.getLogger("webide")

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[webide] %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

logger.setLevel(logging.INFO)


config = Config.from_env()

logger.info(
    "Loaded config: storage_backend=%s, storage_path=%s, autosave_delay=%ss, piston_url=%s",
    config.storage_backend,
    config.storage_path,
    config.autosave_delay_seconds,
    config.piston_url,
)

gateway = PersistenceGateway(build_store(config), autosave_delay=config.autosave_delay_seconds)
session_store = SessionStore.open(gateway)

dispatcher = ExecutionDispatcher(
    local=LocalSandboxRunner(
        timeout=config.max_execution_seconds,
        max_cpu_secs=config.max_cpu_secs,
        max_memory_mb=config.max_memory_mb,
        node_binary=config.node_binary,
    ),
    remote=RemoteExecutionClient(config.piston_url, timeout=config.remote_timeout_seconds),
)
run_guard = RunGuard()
completion_client = CompletionClient(config.completion_api_key, config.completion_url)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # final save of edits still waiting on the autosave timer
    gateway.flush()


app = FastAPI(title="Web IDE Backend", version="0.1.0", lifespan=lifespan)


@app.middleware("http")
async def authenticate(request, call_next):
    """Middleware to enforce API key authentication on all requests."""
    path = request.url.path
    method = request.method
    client = getattr(request.client, "host", "unknown")

    if config.log_requests:
        logger.info("Incoming request: %s %s from %s", method, path, client)

    if config.api_key:
        provided_key = request.headers.get("x-api-key")
        if provided_key != config.api_key:
            logger.warning("Invalid API key for %s %s from %s", method, path, client)
            return JSONResponse(status_code=401, content={"detail": "Invalid API key"})

    response = await call_next(request)
    if config.log_requests:
        logger.info("Response: %s %s -> %s", method, path, response.status_code)
    return response


@app.get("/health")
async def health() -> Dict[str, str]:
    """Return a simple health check response."""
    return {"status": "ok"}


# -- execution forwarding -------------------------------------------------


def _error(status_code: int, **content: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content)


_LANGUAGE_NAMES = frozenset(lang.value for lang in Language)


def _remote_spec(req: ExecuteRequest) -> LanguageSpec:
    """Validate an execution request and return the language it runs as.

    JavaScript is refused: it belongs to the local sandbox.  Language
    names must match exactly; ``"Python"`` or ``" java "`` are unsupported.
    """
    if not req.code or not req.language:
        raise ValidationError("Code and language are required")
    if req.language == Language.JAVASCRIPT.value:
        raise ValidationError("JavaScript should be executed client-side")
    if req.language not in _LANGUAGE_NAMES:
        raise ValidationError(f"Unsupported language: {req.language}")
    spec = spec_for(Language(req.language))
    if spec.runner is not RunnerKind.REMOTE:
        raise ValidationError(f"Unsupported language: {req.language}")
    return spec


@app.post("/api/execute", response_model=ExecuteResponse)
async def execute(req: ExecuteRequest):
    """Run a snippet on the remote execution service."""
    try:
        spec = _remote_spec(req)
    except ValidationError as exc:
        logger.warning("[/api/execute] Rejected request: %s", exc)
        return _error(400, error=str(exc))

    try:
        outcome = await dispatcher.remote.execute(
            spec.remote_language, spec.remote_version, req.code, spec.canonical_filename
        )
    except TransportFailure as exc:
        logger.error("[/api/execute] Code execution error: %s", exc)
        return _error(500, error="Failed to execute code", details=str(exc))

    logger.info("[/api/execute] Execution finished: exit_code=%s", outcome.exit_code)
    return ExecuteResponse(
        output=combine_output(outcome.stdout, outcome.stderr, outcome.exit_code == 0),
        exitCode=outcome.exit_code,
        error=outcome.stderr if outcome.exit_code != 0 else None,
    )


@app.post("/api/ai/completion")
async def completion(req: CompletionRequest):
    """Forward a prompt to the completion service and return its raw answer."""
    if not req.prompt:
        return _error(400, error="Prompt is required")
    if not completion_client.api_key:
        return _error(500, error="API key not configured")
    try:
        data = await completion_client.complete(req.prompt)
    except TransportFailure as exc:
        return _error(500, error=str(exc))
    return JSONResponse(content=data)


# -- session commands ------------------------------------------------------


@app.get("/api/session", response_model=Session)
async def get_session() -> Session:
    return session_store.session


@app.post("/api/session/files", response_model=Session)
async def new_file() -> Session:
    return session_store.add_file()


@app.post("/api/session/files/upload", response_model=Session)
async def load_file(file: UploadFile = File(...)) -> Session:
    """Open a file from the user's disk as a new tab."""
    content = await file.read()
    return session_store.load_file(file.filename or "untitled", content.decode("utf-8", errors="replace"))


@app.delete("/api/session/files/{file_id}", response_model=Session)
async def close_file(file_id: str) -> Session:
    return session_store.close_file(file_id)


@app.patch("/api/session/files/{file_id}", response_model=Session)
async def update_file(file_id: str, req: FileUpdateRequest) -> Session:
    session = session_store.session
    if req.name is not None:
        session = session_store.rename_file(file_id, req.name)
    if req.language is not None:
        session = session_store.change_language(file_id, req.language)
    if req.content is not None:
        session = session_store.update_content(file_id, req.content)
    return session


@app.get("/api/session/files/{file_id}/download")
async def download_file(file_id: str) -> Response:
    """Return one file's content as an attachment."""
    file = session_store.get_file(file_id)
    if file is None:
        raise HTTPException(status_code=404, detail="File not found")
    return Response(
        content=file.content,
        media_type="text/plain",
        headers={"Content-Disposition": _attachment(file.name)},
    )


def _attachment(filename: str) -> str:
    """Content-Disposition value that survives non-ASCII file names (RFC 6266)."""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("\\", "_").replace('"', "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@app.get("/api/session/export")
async def export_project() -> JSONResponse:
    return JSONResponse(
        content=session_store.export_project(),
        headers={"Content-Disposition": 'attachment; filename="code-editor-project.json"'},
    )


@app.put("/api/session/active", response_model=Session)
async def set_active_file(req: ActiveFileRequest) -> Session:
    return session_store.set_active_file(req.id)


@app.patch("/api/session/settings", response_model=Session)
async def update_settings(req: SettingsUpdate) -> Session:
    return session_store.update_settings(req.model_dump(exclude_none=True))


@app.post("/api/session/settings/reset", response_model=Session)
async def reset_settings() -> Session:
    return session_store.reset_settings()


@app.post("/api/session/settings/font-size", response_model=Session)
async def adjust_font_size(req: FontSizeRequest) -> Session:
    return session_store.adjust_font_size(req.delta)


@app.get("/api/theme", response_model=ThemeBody)
async def get_theme() -> ThemeBody:
    return ThemeBody(theme=gateway.load_theme())


@app.put("/api/theme", response_model=ThemeBody)
async def set_theme(req: ThemeBody) -> ThemeBody:
    gateway.save_theme(req.theme)
    return req


@app.post("/api/session/run", response_model=RunResponse)
async def run_active_file() -> RunResponse:
    """Run the active file.  Refused while another run is in flight."""
    if not run_guard.acquire():
        raise HTTPException(status_code=409, detail="A run is already in progress")
    try:
        file = session_store.active_file
        result = await dispatcher.run(file)
    finally:
        run_guard.release()
    logger.info("Run of %s finished: exit_code=%s error=%s", file.name, result.exit_code, result.error_kind)
    return RunResponse(**result.model_dump(), output=render_output(result))
