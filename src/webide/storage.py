"""Key-value backends for persisted session state.

The persistence gateway stores a handful of string values under fixed
keys.  To decouple it from the underlying storage mechanism an abstract
backend is defined with a common interface.  Three concrete backends are
provided:

* ``MemoryKeyValueStore`` – keeps values in a dict.  Used by tests and for
  throwaway sessions.

* ``LocalKeyValueStore`` – one file per key under a configurable base
  directory.  Suitable for docker-compose deployments with a mounted
  volume.

* ``GCSKeyValueStore`` – stores values as objects in Google Cloud Storage.
  Suitable when deploying to Cloud Run and requiring durable
  cross-instance storage.

Backends are not thread-safe; the gateway is their only writer.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional

try:
    from google.cloud import storage  # type: ignore
except ImportError:
    storage = None  # type: ignore

from .config import Config

_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


class KeyValueStore:
    """Protocol for key-value backends."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    """Keep values in process memory."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self.data)


class LocalKeyValueStore(KeyValueStore):
    """Store each key as a UTF-8 file on the local filesystem."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.base_dir / key

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        # Write then rename so a crash never leaves a half-written value
        tmp = path.with_name(f".{path.name}.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def keys(self) -> List[str]:
        return sorted(
            p.name for p in self.base_dir.iterdir() if p.is_file() and not p.name.startswith(".")
        )


class GCSKeyValueStore(KeyValueStore):
    """Store values in Google Cloud Storage.

    Values are stored under ``prefix/key``.  This backend requires
    ``google-cloud-storage`` to be installed and appropriate service
    credentials to be available (Cloud Run automatically provides
    credentials via its service account).
    """

    def __init__(self, bucket_name: str, prefix: str = "webide") -> None:
        if storage is None:
            raise RuntimeError(
                "google-cloud-storage is not installed; cannot use GCSKeyValueStore"
            )
        client = storage.Client()
        self.bucket = client.bucket(bucket_name)
        self.prefix = prefix.strip("/")

    def _blob_name(self, key: str) -> str:
        return f"{self.prefix}/{key}"

    def get(self, key: str) -> Optional[str]:
        blob = self.bucket.blob(self._blob_name(key))
        if not blob.exists():
            return None
        return blob.download_as_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        blob = self.bucket.blob(self._blob_name(key))
        blob.upload_from_string(value, content_type="application/json")

    def delete(self, key: str) -> None:
        blob = self.bucket.blob(self._blob_name(key))
        if blob.exists():
            blob.delete()

    def keys(self) -> List[str]:
        prefix = f"{self.prefix}/"
        blobs = self.bucket.list_blobs(prefix=prefix)
        return sorted(blob.name[len(prefix):] for blob in blobs if not blob.name.endswith("/"))


def build_store(config: Config) -> KeyValueStore:
    """Instantiate the backend selected by ``config.storage_backend``."""
    if config.storage_backend == "gcs":
        if config.gcs_bucket is None:
            raise RuntimeError("WEBIDE_GCS_BUCKET must be set when using GCS storage backend")
        return GCSKeyValueStore(config.gcs_bucket)
    if config.storage_backend == "memory":
        return MemoryKeyValueStore()
    return LocalKeyValueStore(config.storage_path)
