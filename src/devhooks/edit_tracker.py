"""Session edit tracking.

Records which files were touched by mutating tool calls so the Stop hook
knows whether a build check is needed. The record is consumed on read:
`drain()` returns the accumulated paths and deletes the record in one step.
"""

from .edit_store import EditStore
from .logging_config import get_logger
from .models import MUTATING_OPERATIONS, EditRecord

logger = get_logger("edit_tracker")


class EditTracker:
    """Accounting of files changed during the current session."""

    def __init__(self, store: EditStore):
        self.store = store

    def record(self, operation_kind: str | None, file_path: str | None) -> bool:
        """Record a file touched by a mutating operation.

        Non-mutating operation kinds and empty or non-string paths are ignored.

        Returns:
            True if the record was persisted, False for no-ops and storage errors.
        """
        if not isinstance(operation_kind, str) or operation_kind not in MUTATING_OPERATIONS:
            return False
        if not isinstance(file_path, str) or not file_path:
            return False

        try:
            with self.store.locked(create=True):
                record = self.store.load()
                if record is None:
                    record = EditRecord()
                if record.add(file_path):
                    logger.debug(f"Tracking {file_path} ({operation_kind})")
                self.store.save(record)
        except OSError as e:
            logger.error(f"Failed to record edit of {file_path}: {e}")
            return False

        return True

    def has_pending(self) -> bool:
        """Whether any edits are waiting for a build check."""
        record = self.store.load()
        return record is not None and bool(record.files)

    def drain(self) -> set[str]:
        """Return the recorded paths and delete the record.

        A missing record drains to an empty set.
        """
        try:
            with self.store.locked():
                record = self.store.load()
                self.store.clear()
        except OSError as e:
            logger.error(f"Failed to drain edit record: {e}")
            return set()

        if record is None:
            return set()
        return set(record.files)
