"""
Routing of run requests to a runner and normalization of the result.

The dispatcher is stateless: it does not queue, cancel or time out runs
itself.  Callers that need "one run at a time" hold a :class:`RunGuard`.
Every failure (unknown language, unreachable service, failing program)
comes back as an :class:`~webide.models.ExecutionResult` with
``error_message`` set; :meth:`ExecutionDispatcher.run` does not raise.
"""

from __future__ import annotations

import logging
from typing import Optional

from .errors import ProgramFailure, TransportFailure, UnsupportedLanguage, WebIDEError
from .executor.base import LocalOutcome, RunOutcome
from .executor.local_runner import LocalSandboxRunner
from .executor.remote import RemoteExecutionClient
from .languages import RunnerKind, parse_language, spec_for
from .models import EditorFile, ExecutionResult

logger = logging.getLogger(__name__)

SUCCESS_NO_OUTPUT = "Code executed successfully (no output)"
NO_OUTPUT = "No output"


def combine_output(stdout: str, stderr: str, success: bool) -> str:
    """Standard output followed by standard error, with placeholder texts."""
    output = (stdout or "") + (stderr or "")
    if not output and success:
        output = SUCCESS_NO_OUTPUT
    return output or NO_OUTPUT


def normalize_local(outcome: LocalOutcome) -> ExecutionResult:
    success = outcome.thrown is None
    output = combine_output(outcome.stdout, outcome.stderr, success)
    if success:
        return ExecutionResult(output_text=output, exit_code=0)
    return ExecutionResult(
        output_text=output,
        exit_code=None,
        error_message=outcome.thrown,
        error_kind=ProgramFailure.kind,
    )


def normalize_remote(outcome: RunOutcome) -> ExecutionResult:
    success = outcome.exit_code == 0
    output = combine_output(outcome.stdout, outcome.stderr, success)
    if success:
        return ExecutionResult(output_text=output, exit_code=0)
    message = outcome.stderr or f"Process exited with code {outcome.exit_code}"
    if outcome.signal:
        message = f"{message} (signal {outcome.signal})"
    return ExecutionResult(
        output_text=output,
        exit_code=outcome.exit_code,
        error_message=message,
        error_kind=ProgramFailure.kind,
    )


def failure_result(exc: WebIDEError) -> ExecutionResult:
    """Result for a run that never produced program output."""
    return ExecutionResult(output_text="", error_message=str(exc), error_kind=exc.kind)


def render_output(result: ExecutionResult) -> str:
    """Text for the output panel."""
    if result.ok:
        return result.output_text
    if result.error_kind == TransportFailure.kind:
        return f"API Error: {result.error_message}"
    if result.error_kind == ProgramFailure.kind and result.exit_code is not None:
        return f"Execution Error (Exit Code: {result.exit_code}):\n{result.error_message}"
    if result.output_text and result.output_text != NO_OUTPUT:
        return result.output_text
    return f"Error: {result.error_message}"


class ExecutionDispatcher:
    """Pick the runner for a file's language and normalize what it returns."""

    def __init__(
        self,
        local: Optional[LocalSandboxRunner] = None,
        remote: Optional[RemoteExecutionClient] = None,
    ) -> None:
        self.local = local or LocalSandboxRunner()
        self.remote = remote or RemoteExecutionClient()

    async def run(self, file: EditorFile) -> ExecutionResult:
        try:
            language = parse_language(file.language)
        except UnsupportedLanguage as exc:
            logger.warning("Refusing to run %s: %s", file.name, exc)
            return failure_result(exc)

        spec = spec_for(language)
        if spec.runner is RunnerKind.LOCAL:
            return await self._run_local(file)
        return await self._run_remote(file, spec.remote_language, spec.remote_version, spec.canonical_filename)

    async def _run_local(self, file: EditorFile) -> ExecutionResult:
        logger.info("Running %s in the local sandbox", file.name)
        try:
            outcome = await self.local.execute_async(file.content)
        except Exception as exc:
            logger.exception("Local sandbox failed unexpectedly")
            return failure_result(ProgramFailure(str(exc)))
        return normalize_local(outcome)

    async def _run_remote(
        self,
        file: EditorFile,
        language_id: Optional[str],
        version: Optional[str],
        filename: str,
    ) -> ExecutionResult:
        if not language_id or not version:
            return failure_result(UnsupportedLanguage(file.language))
        logger.info("Running %s remotely as %s %s", file.name, language_id, version)
        try:
            outcome = await self.remote.execute(language_id, version, file.content, filename)
        except TransportFailure as exc:
            return failure_result(exc)
        except Exception as exc:
            logger.exception("Remote execution failed unexpectedly")
            return failure_result(TransportFailure(str(exc)))
        return normalize_remote(outcome)


class RunGuard:
    """Busy flag for callers that allow a single run in flight.

    A second :meth:`acquire` while busy is refused rather than queued.
    """

    def __init__(self) -> None:
        self.busy = False

    def acquire(self) -> bool:
        if self.busy:
            return False
        self.busy = True
        return True

    def release(self) -> None:
        self.busy = False
