"""Data models for devhooks."""

import time
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

# Tool names whose invocation mutates a file on disk
MUTATING_OPERATIONS = frozenset({"Write", "Edit", "MultiEdit"})

# Literal substrings that mark a line of build output as an issue
ISSUE_MARKERS = ("error", "Error", "warning", "Warning")


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class EditRecord(BaseModel):
    """Files touched by mutating operations since the last build check.

    Serialized as edit-log.json: {"files": [...], "timestamp": <epoch-ms>}
    """

    files: list[str] = Field(default_factory=list, description="Touched paths, no duplicates")
    timestamp: int = Field(default_factory=now_ms, description="Epoch ms of the last mutation")

    @property
    def last_updated_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=UTC)

    def add(self, file_path: str) -> bool:
        """Add a path if not already present and refresh the timestamp.

        Returns True if the path was new.
        """
        added = file_path not in self.files
        if added:
            self.files.append(file_path)
        self.timestamp = now_ms()
        return added


class PromptTriggers(BaseModel):
    """Keyword and intent-pattern triggers for a rule."""

    model_config = ConfigDict(populate_by_name=True)

    keywords: list[str] = Field(default_factory=list, description="Case-insensitive substrings")
    intent_patterns: list[str] = Field(
        default_factory=list,
        alias="intentPatterns",
        description="Regex sources, matched case-insensitively",
    )


class TriggerRule(BaseModel):
    """A named skill trigger loaded from skill-rules.json."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(..., description="Unique rule name")
    prompt_triggers: PromptTriggers = Field(default_factory=PromptTriggers, alias="promptTriggers")

    @property
    def keywords(self) -> list[str]:
        return self.prompt_triggers.keywords

    @property
    def intent_patterns(self) -> list[str]:
        return self.prompt_triggers.intent_patterns


class BuildReport(BaseModel):
    """Outcome of one build check."""

    command: str = Field(..., description="The build command that was run")
    succeeded: bool = Field(..., description="Whether the build exited zero")
    issue_lines: list[str] = Field(default_factory=list, description="Error/warning lines, or leading output on failure")
    issue_count: int = Field(default=0, description="Number of matched issue lines")
    truncated: bool = Field(default=False, description="Whether issue lines were capped for display")
    files: list[str] = Field(default_factory=list, description="Files edited during the session")

    @property
    def clean(self) -> bool:
        return self.succeeded and self.issue_count == 0

    def to_text(self) -> str:
        """Format the report as a delimited block for the host transcript."""
        lines = ["", "=== BUILD CHECK ===", f"Edited files: {len(self.files)}", ""]

        if not self.succeeded:
            lines.append(f"Build FAILED: {self.command}")
            lines.extend(self.issue_lines)
            if self.truncated:
                lines.append("...")
        elif self.issue_count == 0:
            lines.append("No issues found")
        elif self.truncated:
            lines.append(f"Found {self.issue_count} errors/warnings")
            lines.append(f"Run '{self.command}' to see full details")
        else:
            lines.append(f"Found {self.issue_count} errors/warnings:")
            lines.extend(self.issue_lines)

        lines.extend(["", "===================", ""])
        return "\n".join(lines)


class MatchResult(BaseModel):
    """Result of evaluating a prompt against the trigger rules."""

    text: str = Field(..., description="Prompt to forward to the agent")
    activated: list[str] = Field(default_factory=list, description="Activated rule names in configuration order")
    advisory: str = Field(default="", description="The prepended advisory block, empty if nothing activated")
