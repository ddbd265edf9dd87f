"""File-backed JSON record store.

Each logical record (the rate limit log, the submission ledger) lives in its
own JSON file and is always read and written as a whole.

Notes:
- Writes go to a temporary file in the target directory that is then renamed
  over the target, so a failed write leaves the previous contents intact.
- A missing file and a corrupt file both load as an empty container. The two
  cases are logged under different events; corrupt data is discarded on the
  next save.
- Per-path locks are process-wide. Callers must hold ``locked(path)`` around
  their load -> decide -> save sequence; separate worker processes sharing one
  data directory are not coordinated.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any, Callable, Iterator, TypeVar

from app.core.errors import StorageAppError

logger = logging.getLogger(__name__)

T = TypeVar("T", dict, list)

STORAGE_ERROR_MESSAGE = "Failed to save submission. Please try again."

_registry_lock = threading.Lock()
_path_locks: dict[str, threading.RLock] = {}


def _lock_for(path: Path) -> threading.RLock:
    """Return the lock shared by every caller touching ``path``."""
    key = str(path.resolve())
    with _registry_lock:
        lock = _path_locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _path_locks[key] = lock
        return lock


class JsonRecordStore:
    """Load/save primitive over JSON files with per-path mutual exclusion."""

    def __init__(self, *, file_mode: int = 0o644) -> None:
        self._file_mode = file_mode

    @contextmanager
    def locked(self, path: str | Path) -> Iterator[None]:
        """Hold the critical section for one logical file.

        Args:
            path: File whose read-modify-write sequence must not interleave.
        """
        lock = _lock_for(Path(path))
        with lock:
            yield

    def load(self, path: str | Path, default: Callable[[], T]) -> T:
        """Load the full contents of ``path``.

        Args:
            path: JSON file to read.
            default: Factory for the empty container (``dict`` or ``list``);
                its type is also the expected top-level JSON type.

        Returns:
            The decoded value, or ``default()`` when the file is absent or
            does not hold valid data of the expected shape.

        Raises:
            StorageAppError: If the file exists but cannot be read.
        """
        path = Path(path)
        empty = default()

        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("record_store.missing", extra={"file_name": path.name})
            return empty
        except UnicodeDecodeError:
            self._log_corrupt(path, reason="invalid_encoding")
            return empty
        except OSError as exc:
            logger.error(
                "record_store.read_failed",
                extra={
                    "file_path": str(path),
                    "errno": exc.errno,
                    "error_msg": exc.strerror,
                },
            )
            raise StorageAppError(
                code="storage_read_failed",
                message=STORAGE_ERROR_MESSAGE,
                details={"path": str(path), "operation": "read", "errno": exc.errno or 0},
            ) from exc

        try:
            value: Any = json.loads(raw)
        except json.JSONDecodeError:
            self._log_corrupt(path, reason="invalid_json", size=len(raw))
            return empty

        if not isinstance(value, type(empty)):
            self._log_corrupt(path, reason="unexpected_type", found=type(value).__name__)
            return empty

        return value

    def save(self, path: str | Path, value: dict | list, *, pretty: bool = False) -> None:
        """Replace the contents of ``path`` with ``value``.

        Args:
            path: Target JSON file; parent directories are created as needed.
            value: Full replacement value.
            pretty: Indent the output and keep non-ASCII characters readable.

        Raises:
            StorageAppError: If the directory cannot be created or the write fails.
        """
        path = Path(path)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error(
                "record_store.directory_failed",
                extra={
                    "directory": str(path.parent),
                    "errno": exc.errno,
                    "error_msg": exc.strerror,
                },
            )
            raise StorageAppError(
                code="storage_directory_unavailable",
                message=STORAGE_ERROR_MESSAGE,
                details={"path": str(path.parent), "operation": "mkdir", "errno": exc.errno or 0},
            ) from exc

        if pretty:
            payload = json.dumps(value, indent=2, ensure_ascii=False)
        else:
            payload = json.dumps(value, separators=(",", ":"))

        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_name, self._file_mode)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None:
                with suppress(OSError):
                    os.unlink(tmp_name)
            logger.error(
                "record_store.write_failed",
                extra={
                    "file_path": str(path),
                    "errno": exc.errno,
                    "error_msg": exc.strerror,
                },
            )
            raise StorageAppError(
                code="storage_write_failed",
                message=STORAGE_ERROR_MESSAGE,
                details={"path": str(path), "operation": "write", "errno": exc.errno or 0},
            ) from exc

        logger.debug(
            "record_store.saved",
            extra={"file_name": path.name, "bytes": len(payload)},
        )

    def _log_corrupt(self, path: Path, *, reason: str, **context: Any) -> None:
        # Corrupt contents are replaced on the next save.
        logger.warning(
            "record_store.corrupt",
            extra={"file_path": str(path), "reason": reason, **context},
        )
