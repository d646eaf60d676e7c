"""
Outcome types and the subprocess helper shared by the runners.

A run produces one of two raw shapes: :class:`RunOutcome` when a process
(local or remote) reports an exit status, and :class:`LocalOutcome` for
the local sandbox, which only distinguishes "completed" from "threw".
The dispatcher normalizes both into an
:class:`~webide.models.ExecutionResult`.

Resource limitations (CPU time and wall clock timeouts) are enforced by
:func:`run_subprocess`.  The container is assumed to be configured with
additional safeguards (unprivileged user, read-only root, no network)
since rlimits alone do not make a process safe to run untrusted code.
"""

from __future__ import annotations

import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

_resource: Any
try:
    import resource as _resource_module  # POSIX only
    _resource = _resource_module
except ImportError:  # pragma: no cover - platform specific
    _resource = None


@dataclass
class RunOutcome:
    """Raw result reported for one process run.

    Attributes
    ----------
    stdout: str
        Standard output captured from the execution.
    stderr: str
        Standard error captured from the execution.
    exit_code: int
        Exit status of the process.  Zero indicates success.
    signal: str, optional
        Name of the signal that terminated the process, if any.
    duration_ms: int
        Wall-clock execution time in milliseconds, when known.
    timed_out: bool
        Whether the process was killed for exceeding its timeout.
    """

    stdout: str
    stderr: str
    exit_code: int
    signal: Optional[str] = None
    duration_ms: int = 0
    timed_out: bool = False


@dataclass
class LocalOutcome:
    """Result of a local sandbox run.

    ``thrown`` carries the error message when the code raised (or the
    interpreter could not run it); it is ``None`` on normal completion.
    """

    stdout: str
    stderr: str = ""
    thrown: Optional[str] = None
    duration_ms: int = 0


def _limits(max_cpu_secs: int) -> Optional[Callable[[], None]]:
    if _resource is None or max_cpu_secs <= 0:
        return None

    def apply() -> None:
        _, hard = _resource.getrlimit(_resource.RLIMIT_CPU)
        limit = max_cpu_secs if hard == _resource.RLIM_INFINITY else min(max_cpu_secs, hard)
        _resource.setrlimit(_resource.RLIMIT_CPU, (limit, hard))

    return apply


def run_subprocess(
    args: Sequence[str],
    cwd: Path,
    timeout: int,
    max_cpu_secs: int = 0,
    stdin_data: Optional[str] = None,
) -> RunOutcome:
    """
    Invoke a subprocess with resource limits and capture its output.

    The process runs in ``cwd`` and is killed if it exceeds the
    wall-clock ``timeout``.  When ``max_cpu_secs`` is positive, an
    ``RLIMIT_CPU`` is applied to the child on POSIX systems.

    Raises
    ------
    FileNotFoundError
        If the interpreter in ``args[0]`` does not exist.
    """
    start_time = time.perf_counter()
    process = subprocess.Popen(
        list(args),
        cwd=str(cwd),
        stdin=subprocess.PIPE if stdin_data is not None else subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        encoding="utf-8",
        errors="replace",
        preexec_fn=_limits(max_cpu_secs),
    )

    timed_out = False

    def kill_proc() -> None:
        nonlocal timed_out
        timed_out = True
        try:
            process.kill()
        except OSError:
            pass

    # Timer thread enforces the wall clock timeout
    timer = threading.Timer(timeout, kill_proc)
    timer.start()

    try:
        stdout, stderr = process.communicate(input=stdin_data)
    finally:
        duration = int((time.perf_counter() - start_time) * 1000)
        timer.cancel()
    exit_code = process.returncode if process.returncode is not None else -1
    if timed_out:
        stderr = (stderr or "") + f"\nExecution timed out after {timeout} seconds."
        exit_code = -9
    return RunOutcome(
        stdout=stdout or "",
        stderr=stderr or "",
        exit_code=exit_code,
        duration_ms=duration,
        timed_out=timed_out,
    )
