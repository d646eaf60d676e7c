"""Backend for a multi-file, in-browser code editor.

The package keeps the editing session (open files, active selection and
editor settings), persists it to a key-value store, and runs the active
file either in a local sandbox (JavaScript) or on a remote code
execution service (Python, Java, C++ and C).

The top-level modules include:

* ``config`` – configuration handling for environment variables.
* ``languages`` – the supported languages and how each one is run.
* ``models`` – Pydantic models for session state and HTTP bodies.
* ``session`` – the in-memory session store.
* ``storage`` – pluggable key-value backends.
* ``persistence`` – loading and (debounced) saving of the session.
* ``executor`` – the local sandbox and the remote execution client.
* ``dispatcher`` – routing of runs and normalization of their results.
* ``api`` – FastAPI application exposing HTTP endpoints.
"""

__version__ = "0.1.0"
