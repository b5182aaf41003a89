"""Runtime configuration for devhooks.

Every setting comes from the environment so the host can configure hooks
through its settings file without extra config files:

- CLAUDE_PROJECT_DIR       project root (default: current directory)
- DEVHOOKS_BUILD_COMMAND   build command run on Stop (default: cargo build)
- DEVHOOKS_BUILD_TIMEOUT   build timeout in seconds (default: 30)
- DEVHOOKS_EDIT_LOG        edit record path (default: <project>/.claude/edit-log.json)
- DEVHOOKS_SKILL_RULES     rule file path (default: <project>/.claude/skills/skill-rules.json)
"""

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_BUILD_COMMAND = "cargo build"
DEFAULT_BUILD_TIMEOUT = 30.0

EDIT_LOG_RELPATH = Path(".claude") / "edit-log.json"
SKILL_RULES_RELPATH = Path(".claude") / "skills" / "skill-rules.json"


@dataclass
class HookConfig:
    """Resolved settings for a single hook invocation."""

    project_dir: Path
    build_command: str = DEFAULT_BUILD_COMMAND
    build_timeout: float = DEFAULT_BUILD_TIMEOUT
    edit_log_path: Path | None = None
    skill_rules_path: Path | None = None

    def __post_init__(self):
        self.project_dir = Path(self.project_dir)
        if self.edit_log_path is None:
            self.edit_log_path = self.project_dir / EDIT_LOG_RELPATH
        if self.skill_rules_path is None:
            self.skill_rules_path = self.project_dir / SKILL_RULES_RELPATH

    @classmethod
    def from_env(cls, project_dir: str | Path | None = None) -> "HookConfig":
        """Build a config from environment variables.

        An explicit project_dir (e.g. the `cwd` of a hook payload) wins over
        CLAUDE_PROJECT_DIR.
        """
        if project_dir is None:
            project_dir = os.environ.get("CLAUDE_PROJECT_DIR") or os.getcwd()

        edit_log = os.environ.get("DEVHOOKS_EDIT_LOG")
        skill_rules = os.environ.get("DEVHOOKS_SKILL_RULES")

        return cls(
            project_dir=Path(project_dir),
            build_command=os.environ.get("DEVHOOKS_BUILD_COMMAND") or DEFAULT_BUILD_COMMAND,
            build_timeout=_parse_timeout(os.environ.get("DEVHOOKS_BUILD_TIMEOUT")),
            edit_log_path=Path(edit_log) if edit_log else None,
            skill_rules_path=Path(skill_rules) if skill_rules else None,
        )


def _parse_timeout(raw: str | None) -> float:
    if not raw:
        return DEFAULT_BUILD_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_BUILD_TIMEOUT
    return value if value > 0 else DEFAULT_BUILD_TIMEOUT
