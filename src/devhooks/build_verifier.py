"""Build verification at the end of an agent turn.

Drains the session edit record, runs the project's build command, and turns
the output into a bounded report. A failing build is reported as content,
never raised: the verifier itself only fails silently by skipping.
"""

import os
import signal
import subprocess
from pathlib import Path

from .config import DEFAULT_BUILD_TIMEOUT
from .edit_tracker import EditTracker
from .logging_config import get_logger
from .models import ISSUE_MARKERS, BuildReport

logger = get_logger("build_verifier")

# Issue lines shown verbatim below this count; at or above it only the count is shown
MAX_LISTED_ISSUES = 5
# Leading output lines kept when the build command itself fails
FAILURE_CONTEXT_LINES = 10


def find_issue_lines(output: str) -> list[str]:
    """Select output lines containing an error/warning marker.

    The markers are literal substrings, so "0 warnings" matches as well.
    """
    return [line for line in output.splitlines() if any(marker in line for marker in ISSUE_MARKERS)]


def summarize_output(command: str, output: str, files: list[str] | None = None) -> BuildReport:
    """Build the report for a command that exited zero."""
    issues = find_issue_lines(output)
    return BuildReport(
        command=command,
        succeeded=True,
        issue_lines=issues,
        issue_count=len(issues),
        truncated=len(issues) >= MAX_LISTED_ISSUES,
        files=files or [],
    )


def summarize_failure(
    command: str,
    output: str,
    files: list[str] | None = None,
    trailer: str | None = None,
) -> BuildReport:
    """Build the report for a command that failed, timed out or could not start.

    A trailer (e.g. the timeout notice) is always kept as the last shown line.
    """
    lines = output.splitlines()
    limit = FAILURE_CONTEXT_LINES - 1 if trailer else FAILURE_CONTEXT_LINES
    shown = lines[:limit]
    if trailer:
        shown.append(trailer)
    return BuildReport(
        command=command,
        succeeded=False,
        issue_lines=shown,
        issue_count=len(find_issue_lines(output)),
        truncated=len(lines) > limit,
        files=files or [],
    )


def _as_text(data: str | bytes | None) -> str:
    # Partial output on a timeout may arrive as bytes
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class BuildVerifier:
    """Runs the build once per session end when edits are pending."""

    def __init__(self, tracker: EditTracker, cwd: str | Path | None = None):
        self.tracker = tracker
        self.cwd = Path(cwd) if cwd is not None else None

    def check(self, build_command: str, timeout: float = DEFAULT_BUILD_TIMEOUT) -> BuildReport | None:
        """Run the build if any edits were recorded this session.

        The edit record is drained before the build starts, whatever the outcome.

        Args:
            build_command: Shell command to run (e.g. "cargo build")
            timeout: Seconds before the build is killed

        Returns:
            The BuildReport, or None when there were no pending edits.
        """
        files = self.tracker.drain()
        if not files:
            logger.debug("No edits recorded, skipping build check")
            return None

        edited = sorted(files)
        logger.info(f"Running '{build_command}' for {len(edited)} edited file(s)")

        try:
            returncode, output = self._run(build_command, timeout)
        except subprocess.TimeoutExpired as e:
            logger.warning(f"Build timed out after {timeout}s: {build_command}")
            output = _as_text(e.stdout) or _as_text(e.stderr)
            return summarize_failure(
                build_command, output, edited, trailer=f"Build timed out after {timeout:g}s"
            )
        except (OSError, ValueError, TypeError, subprocess.SubprocessError) as e:
            # ValueError: NUL byte in the command; TypeError: command is not a string
            logger.error(f"Could not run build command {build_command!r}: {e}")
            return summarize_failure(str(build_command), str(e) or type(e).__name__, edited)

        if returncode != 0:
            logger.info(f"Build failed with exit code {returncode}")
            return summarize_failure(build_command, output or f"Exit code {returncode}", edited)

        report = summarize_output(build_command, output, edited)
        logger.info(f"Build passed with {report.issue_count} issue line(s)")
        return report

    def _run(self, build_command: str, timeout: float) -> tuple[int, str]:
        """Run the command with stderr folded into stdout.

        The build runs in its own process group so a timeout kills the whole
        tree, not just the shell.
        """
        with subprocess.Popen(
            build_command,
            shell=True,
            cwd=self.cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            start_new_session=True,
        ) as proc:
            try:
                output, _ = proc.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                try:
                    os.killpg(proc.pid, signal.SIGKILL)
                except ProcessLookupError:
                    pass
                partial, _ = proc.communicate()
                raise subprocess.TimeoutExpired(build_command, timeout, output=partial)
            return proc.returncode, output or ""
