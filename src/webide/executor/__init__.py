"""
Runners used by the execution dispatcher.

``LocalSandboxRunner`` runs the in-host language in a limited child
process; ``RemoteExecutionClient`` forwards every other language to the
remote execution service.  Both report raw outcomes from ``base.py``
which the dispatcher normalizes.
"""

from .base import LocalOutcome, RunOutcome
from .local_runner import LocalSandboxRunner
from .remote import RemoteExecutionClient

__all__ = [
    "LocalOutcome",
    "RunOutcome",
    "LocalSandboxRunner",
    "RemoteExecutionClient",
]
