"""
Local sandbox for the in-host language.

JavaScript is the one language that never goes to the remote service.
Rather than evaluating it inside the server process, the runner writes
the snippet to a private temporary directory and runs it with a separate
interpreter (``node`` by default) under a wall-clock timeout, a CPU time
limit and a heap cap.  Everything the snippet prints is captured and
returned as a value; nothing it does can rebind state in this process.

The temporary directory is a scoped resource: it is removed on every
exit path, including when launching the interpreter fails.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
import tempfile
from pathlib import Path
from typing import Iterator, Optional, Sequence

from .base import LocalOutcome, run_subprocess

logger = logging.getLogger(__name__)

SCRIPT_PLACEHOLDER = "{script}"

# "Error: boom", "TypeError: x is not a function", "Exception: bad"
_ERROR_LINE = re.compile(r"^(?:[A-Za-z_$][\w.$]*)?(?:Error|Exception)\b(?::.*)?$")


def _thrown_message(stderr: str, exit_code: int) -> str:
    for line in reversed(stderr.splitlines()):
        line = line.rstrip()
        if _ERROR_LINE.match(line):
            return line
    return f"Process exited with code {exit_code}"


class LocalSandboxRunner:
    """Run snippets of the in-host language in a limited child process."""

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        filename: str = "main.js",
        timeout: int = 10,
        max_cpu_secs: int = 10,
        max_memory_mb: int = 256,
        node_binary: str = "node",
    ) -> None:
        """
        Parameters
        ----------
        command: sequence of str, optional
            Interpreter invocation.  ``{script}`` is replaced with the path
            of the snippet.  Defaults to ``node`` with its old-space heap
            capped at ``max_memory_mb``.
        filename: str
            Name the snippet is written under.
        timeout: int
            Wall-clock limit in seconds.
        max_cpu_secs: int
            CPU time limit in seconds (POSIX only).
        """
        if command is None:
            command = [node_binary, f"--max-old-space-size={max_memory_mb}", SCRIPT_PLACEHOLDER]
        if SCRIPT_PLACEHOLDER not in command:
            raise ValueError(f"command must contain the {SCRIPT_PLACEHOLDER} placeholder")
        self.command = list(command)
        self.filename = filename
        self.timeout = timeout
        self.max_cpu_secs = max_cpu_secs

    @contextlib.contextmanager
    def execution_context(self) -> Iterator[Path]:
        """Private working directory for a single run."""
        with tempfile.TemporaryDirectory(prefix="webide-") as tmpdir:
            yield Path(tmpdir)

    def execute(self, source: str) -> LocalOutcome:
        """Run ``source`` and capture its output.  Never raises."""
        try:
            with self.execution_context() as workdir:
                script_path = workdir / self.filename
                script_path.write_text(source, encoding="utf-8")
                args = [part.replace(SCRIPT_PLACEHOLDER, str(script_path)) for part in self.command]
                outcome = run_subprocess(
                    args,
                    workdir,
                    timeout=self.timeout,
                    max_cpu_secs=self.max_cpu_secs,
                )
        except FileNotFoundError:
            logger.error("Local interpreter not found: %s", self.command[0])
            return LocalOutcome(stdout="", thrown=f"Interpreter not found: {self.command[0]}")
        except OSError as exc:
            logger.exception("Unable to start local run")
            return LocalOutcome(stdout="", thrown=str(exc))

        thrown: Optional[str] = None
        if outcome.timed_out:
            thrown = f"Execution timed out after {self.timeout} seconds."
        elif outcome.exit_code != 0:
            thrown = _thrown_message(outcome.stderr, outcome.exit_code)
        return LocalOutcome(
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            thrown=thrown,
            duration_ms=outcome.duration_ms,
        )

    async def execute_async(self, source: str) -> LocalOutcome:
        """:meth:`execute` without blocking the event loop."""
        return await asyncio.to_thread(self.execute, source)
