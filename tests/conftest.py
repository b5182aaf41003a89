"""Pytest configuration for devhooks tests."""

import os
import tempfile

import pytest

# Keep component logs out of the real ~/.devhooks during tests
os.environ.setdefault("DEVHOOKS_LOG_DIR", tempfile.mkdtemp(prefix="devhooks-test-logs-"))

from devhooks.edit_store import JsonFileEditStore, MemoryEditStore  # noqa: E402
from devhooks.edit_tracker import EditTracker  # noqa: E402

HOOK_ENV_VARS = (
    "CLAUDE_PROJECT_DIR",
    "DEVHOOKS_BUILD_COMMAND",
    "DEVHOOKS_BUILD_TIMEOUT",
    "DEVHOOKS_EDIT_LOG",
    "DEVHOOKS_SKILL_RULES",
)


@pytest.fixture(autouse=True)
def clean_hook_env(monkeypatch):
    """Make sure the developer's own hook settings don't leak into tests."""
    for name in HOOK_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def memory_store():
    return MemoryEditStore()


@pytest.fixture
def memory_tracker(memory_store):
    return EditTracker(memory_store)


@pytest.fixture
def project(tmp_path):
    """A temporary project root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def file_store(project):
    return JsonFileEditStore(project / ".claude" / "edit-log.json")


@pytest.fixture
def file_tracker(file_store):
    return EditTracker(file_store)
