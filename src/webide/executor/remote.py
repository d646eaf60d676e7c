"""
Client for the remote code execution service.

The service speaks the Piston ``/execute`` protocol: a single POST with
the language, a version pin and the source files, answered with the
captured output of the run.  One attempt is made per call; any failure to
obtain a well-formed answer is raised as
:class:`~webide.errors.TransportFailure`, which is distinct from a
program that ran and exited non-zero (reported through
:class:`~webide.executor.base.RunOutcome.exit_code`).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import DEFAULT_PISTON_URL
from ..errors import TransportFailure
from .base import RunOutcome

logger = logging.getLogger(__name__)


class RemoteExecutionClient:
    """Submit single-file programs to a Piston-compatible service."""

    def __init__(
        self,
        url: str = DEFAULT_PISTON_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def build_payload(
        self, language_id: str, version: str, source: str, filename: str
    ) -> Dict[str, Any]:
        return {
            "language": language_id,
            "version": version,
            "files": [{"name": filename, "content": source}],
        }

    async def execute(
        self, language_id: str, version: str, source: str, filename: str
    ) -> RunOutcome:
        """Run ``source`` remotely.

        ``filename`` should be the language's canonical file name, not the
        name the user gave the file.
        """
        payload = self.build_payload(language_id, version, source, filename)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Remote execution request failed: %s", exc)
            raise TransportFailure(f"Remote execution request failed: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "Remote execution service answered %s %s",
                response.status_code,
                response.reason_phrase,
            )
            raise TransportFailure(
                f"Piston API error: {response.status_code} {response.reason_phrase}".rstrip(),
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise TransportFailure("Remote execution service returned invalid JSON") from exc
        return self.parse_outcome(body)

    @staticmethod
    def parse_outcome(body: Any) -> RunOutcome:
        """Interpret an ``/execute`` response body."""
        run = body.get("run") if isinstance(body, dict) else None
        if not isinstance(run, dict):
            message = body.get("message") if isinstance(body, dict) else None
            raise TransportFailure(message or "Remote execution response has no 'run' section")
        code = run.get("code")
        signal = run.get("signal")
        if code is None and signal:
            # killed by a signal before exiting
            code = -1
        if not isinstance(code, int) or isinstance(code, bool):
            raise TransportFailure(f"Remote execution response has invalid exit code: {code!r}")
        return RunOutcome(
            stdout=run.get("stdout") or "",
            stderr=run.get("stderr") or "",
            exit_code=code,
            signal=signal or None,
        )
