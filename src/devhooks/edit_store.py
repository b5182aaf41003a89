"""Storage backends for the session edit record.

The record is the only state shared between hook invocations. Stores expose
load/save/clear plus a `locked()` critical section so that a drain (load then
clear) cannot interleave with a concurrent record or a second drain.
"""

import fcntl
import json
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .logging_config import get_logger
from .models import EditRecord

logger = get_logger("edit_store")


class EditStore(Protocol):
    """Persistence interface for the EditRecord."""

    def load(self) -> EditRecord | None: ...

    def save(self, record: EditRecord) -> None: ...

    def clear(self) -> None: ...

    def locked(self, create: bool = False) -> AbstractContextManager[None]: ...


class JsonFileEditStore:
    """EditRecord persisted as edit-log.json with an flock-guarded sibling lock file."""

    def __init__(self, path: str | Path):
        self.path = Path(os.path.expanduser(str(path)))
        self.lock_path = self.path.with_name(self.path.name + ".lock")

    def load(self) -> EditRecord | None:
        """Load the record. Missing, unreadable or corrupt files count as no record."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return None

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            record = EditRecord.model_validate(data)
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning(f"Ignoring corrupt edit log {self.path}: {e}")
            return None

        # Older writers may have left duplicates behind
        record.files = list(dict.fromkeys(record.files))
        return record

    def save(self, record: EditRecord) -> None:
        """Atomically write the record, creating the directory if needed.

        Raises OSError if the file cannot be written.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".edit-log-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.model_dump(mode="json"), f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    @contextmanager
    def locked(self, create: bool = False) -> Iterator[None]:
        """Hold an exclusive lock on the record for the duration of the block.

        With create=False and no storage directory there is nothing to guard,
        so the block runs without taking a lock.
        """
        if not self.path.parent.exists():
            if not create:
                yield
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)

        lock_fd = os.open(str(self.lock_path), os.O_CREAT | os.O_RDWR, 0o644)
        try:
            fcntl.flock(lock_fd, fcntl.LOCK_EX)
            yield
        finally:
            fcntl.flock(lock_fd, fcntl.LOCK_UN)
            os.close(lock_fd)


class MemoryEditStore:
    """In-process EditRecord store for tests and embedding."""

    def __init__(self, record: EditRecord | None = None):
        self.record = record
        self.saves = 0
        self._lock = threading.RLock()

    def load(self) -> EditRecord | None:
        if self.record is None:
            return None
        return self.record.model_copy(deep=True)

    def save(self, record: EditRecord) -> None:
        self.record = record.model_copy(deep=True)
        self.saves += 1

    def clear(self) -> None:
        self.record = None

    @contextmanager
    def locked(self, create: bool = False) -> Iterator[None]:
        with self._lock:
            yield
