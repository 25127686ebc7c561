from __future__ import annotations

import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Protocol

from civicreport.core.env import resolve_project_path
from civicreport.domain.errors import PersistenceError

"""
Local key-value persistence.

The app keeps two independently keyed blobs (`user` and `reports`). Storage is
deliberately simple:
- `FileKeyValueStore` writes one `<key>.json` file per key under `.data/civicreport/`.
- Writes go through a temporary file + atomic replace so a crash never leaves a
  half-written collection behind.
- `JsonBlobStore` layers JSON encoding, bounded write retry and fail-closed reads
  on top of any `KeyValueStore`.
"""

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(Protocol):
    """String-valued store keyed by short names (AsyncStorage-like)."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """In-process store; used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileKeyValueStore:
    """A filesystem-backed store: one UTF-8 file per key."""

    def __init__(self, base_dir: Path):
        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _key_path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key '{key}'")
        return self._base_dir / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._key_path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._key_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove_item(self, key: str) -> None:
        self._key_path(key).unlink(missing_ok=True)


class JsonBlobStore:
    """JSON blobs on top of a `KeyValueStore`.

    - `read()` returns None for a missing key *and* for undecodable bytes or JSON
      (fail closed).
    - `write()`/`remove()` retry up to `write_retries` extra times, then raise
      `PersistenceError`.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        write_retries: int = 0,
        retry_delay_seconds: float = 0.0,
    ):
        self._kv = kv
        self._write_retries = max(0, int(write_retries))
        self._retry_delay_seconds = max(0.0, float(retry_delay_seconds))

    def read(self, key: str) -> Any | None:
        try:
            raw = self._kv.get_item(key)
        except UnicodeDecodeError:
            logger.warning("Stored blob '%s' is not valid UTF-8; treating it as absent.", key)
            return None
        except OSError as exc:
            raise PersistenceError(f"Failed to read '{key}': {exc}") from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Stored blob '%s' is not valid JSON; treating it as absent.", key)
            return None

    def write(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Failed to encode '{key}': {exc}") from exc
        self._with_retry(key, lambda: self._kv.set_item(key, payload))

    def remove(self, key: str) -> None:
        self._with_retry(key, lambda: self._kv.remove_item(key))

    def _with_retry(self, key: str, op) -> None:
        max_attempts = self._write_retries
        for attempt in range(max_attempts + 1):
            try:
                op()
                return
            except OSError as exc:
                if attempt >= max_attempts:
                    raise PersistenceError(f"Failed to write '{key}': {exc}") from exc
                delay = self._retry_delay_seconds * (2**attempt)
                logger.warning(
                    "Write to '%s' failed (%s); retrying in %.2fs (attempt %s/%s)",
                    key,
                    exc,
                    delay,
                    attempt + 1,
                    max_attempts,
                )
                time.sleep(delay)


def build_blob_store(settings) -> JsonBlobStore:
    """Build the file-backed blob store described by `settings.storage`."""
    kv = FileKeyValueStore(resolve_project_path(settings.storage.dir))
    return JsonBlobStore(
        kv,
        write_retries=settings.storage.write_retries,
        retry_delay_seconds=settings.storage.retry_delay_seconds,
    )
