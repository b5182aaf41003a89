"""Tests for the end-of-turn build check."""

import shlex
import sys

import pytest

from devhooks.build_verifier import (
    FAILURE_CONTEXT_LINES,
    BuildVerifier,
    find_issue_lines,
    summarize_failure,
    summarize_output,
)


def py_cmd(code: str) -> str:
    """Shell command that runs a Python snippet with the test interpreter."""
    return f"{shlex.quote(sys.executable)} -c {shlex.quote(code)}"


def print_lines(lines: list[str], exit_code: int = 0, stream: str = "stdout") -> str:
    body = "\\n".join(lines)
    return py_cmd(f"import sys; sys.{stream}.write('{body}\\n'); sys.exit({exit_code})")


@pytest.fixture
def verifier(memory_tracker, tmp_path):
    return BuildVerifier(memory_tracker, cwd=tmp_path)


@pytest.fixture
def pending(memory_tracker):
    memory_tracker.record("Edit", "src/main.rs")
    memory_tracker.record("Write", "src/lib.rs")
    return memory_tracker


class TestFindIssueLines:
    """Tests for output line classification."""

    def test_all_four_markers(self):
        output = "an error here\nError: bad\nsome warning\nWarning: hmm\nclean line"
        assert find_issue_lines(output) == ["an error here", "Error: bad", "some warning", "Warning: hmm"]

    def test_uppercase_is_not_a_marker(self):
        assert find_issue_lines("ERROR: loud\nWARNING: loud") == []

    def test_benign_matches_are_kept(self):
        """Literal substring matching also catches summary lines."""
        assert find_issue_lines("Finished with 0 warnings") == ["Finished with 0 warnings"]

    def test_order_preserved(self):
        output = "warning: b\nok\nerror: a"
        assert find_issue_lines(output) == ["warning: b", "error: a"]


class TestSummaries:
    """Tests for report construction from captured output."""

    def test_clean_output(self):
        report = summarize_output("make", "Compiling\nFinished")
        assert report.succeeded
        assert report.clean
        assert report.issue_lines == []
        assert not report.truncated
        assert "No issues found" in report.to_text()

    def test_three_issue_lines_listed_verbatim(self):
        output = "error: one\nok\nerror: two\nError: three"
        report = summarize_output("make", output)

        assert report.issue_lines == ["error: one", "error: two", "Error: three"]
        assert report.issue_count == 3
        assert report.truncated is False
        text = report.to_text()
        for line in report.issue_lines:
            assert line in text

    def test_four_issue_lines_are_not_truncated(self):
        report = summarize_output("make", "\n".join(f"warning: {i}" for i in range(4)))
        assert report.truncated is False

    def test_five_issue_lines_are_truncated(self):
        report = summarize_output("make", "\n".join(f"warning: {i}" for i in range(5)))
        assert report.truncated is True

    def test_seven_issue_lines_report_count_only(self):
        output = "\n".join(f"error[E{i:04}]: broken" for i in range(7))
        report = summarize_output("cargo build", output)

        assert report.truncated is True
        assert report.issue_count == 7
        text = report.to_text()
        assert "Found 7 errors/warnings" in text
        assert "cargo build" in text
        assert "error[E0000]: broken" not in text

    def test_failure_keeps_first_lines(self):
        output = "\n".join(f"line {i}" for i in range(25))
        report = summarize_failure("make", output)

        assert report.succeeded is False
        assert report.issue_lines == [f"line {i}" for i in range(FAILURE_CONTEXT_LINES)]
        assert report.truncated is True
        assert "Build FAILED: make" in report.to_text()

    def test_short_failure_is_not_truncated(self):
        report = summarize_failure("make", "boom")
        assert report.issue_lines == ["boom"]
        assert report.truncated is False

    def test_trailer_follows_output(self):
        report = summarize_failure("make", "partial", trailer="Build timed out after 30s")
        assert report.issue_lines == ["partial", "Build timed out after 30s"]
        assert report.truncated is False

    def test_trailer_without_output(self):
        report = summarize_failure("make", "", trailer="Build timed out after 30s")
        assert report.issue_lines == ["Build timed out after 30s"]

    def test_report_block_is_delimited(self):
        text = summarize_output("make", "").to_text()
        assert "=== BUILD CHECK ===" in text
        assert text.rstrip().endswith("===================")


class TestCheck:
    """Tests for BuildVerifier.check against real subprocesses."""

    def test_skipped_without_edits(self, verifier):
        """No pending edits means no build and no report."""
        assert verifier.check(py_cmd("raise SystemExit('should not run')")) is None

    def test_clean_pass_drains_record(self, verifier, pending):
        report = verifier.check(print_lines(["Compiling app", "Finished dev"]))

        assert report is not None
        assert report.succeeded and report.clean
        assert report.files == ["src/lib.rs", "src/main.rs"]
        assert pending.has_pending() is False

    def test_three_errors(self, verifier, pending):
        report = verifier.check(print_lines(["error: a", "note: x", "Error: b", "error: c"]))

        assert report.succeeded
        assert report.issue_lines == ["error: a", "Error: b", "error: c"]
        assert report.truncated is False

    def test_seven_warnings(self, verifier, pending):
        report = verifier.check(print_lines([f"warning: w{i}" for i in range(7)]))

        assert report.truncated is True
        assert report.issue_count == 7

    def test_stderr_is_captured(self, verifier, pending):
        """Compilers write diagnostics to stderr."""
        report = verifier.check(print_lines(["warning: unused variable"], stream="stderr"))
        assert report.issue_lines == ["warning: unused variable"]

    def test_non_zero_exit_is_failed_report(self, verifier, pending):
        report = verifier.check(print_lines([f"out {i}" for i in range(15)], exit_code=101))

        assert report.succeeded is False
        assert report.issue_lines == [f"out {i}" for i in range(10)]
        assert report.truncated is True
        assert pending.has_pending() is False

    def test_silent_failure_mentions_exit_code(self, verifier, pending):
        report = verifier.check(py_cmd("raise SystemExit(3)"))
        assert report.succeeded is False
        assert report.issue_lines == ["Exit code 3"]

    def test_timeout_is_failed_report(self, verifier, pending):
        report = verifier.check(py_cmd("import time; time.sleep(30)"), timeout=0.5)

        assert report is not None
        assert report.succeeded is False
        assert "timed out" in report.issue_lines[0]
        assert pending.has_pending() is False

    def test_timeout_keeps_partial_output(self, verifier, pending):
        code = "import sys, time; print('error: early'); sys.stdout.flush(); time.sleep(30)"
        report = verifier.check(py_cmd(code), timeout=1.0)

        assert report.succeeded is False
        assert report.issue_lines == ["error: early", "Build timed out after 1s"]
        assert "timed out" in report.to_text()

    def test_timeout_notice_kept_within_line_cap(self, verifier, pending):
        code = "import sys, time; print('\\n'.join(f'out {i}' for i in range(20))); sys.stdout.flush(); time.sleep(30)"
        report = verifier.check(py_cmd(code), timeout=1.0)

        assert len(report.issue_lines) == FAILURE_CONTEXT_LINES
        assert report.issue_lines[0] == "out 0"
        assert report.issue_lines[-1] == "Build timed out after 1s"
        assert report.truncated is True

    @pytest.mark.parametrize("command", ["cargo\0build", None, 123])
    def test_unrunnable_command_is_failed_report(self, memory_tracker, tmp_path, command):
        """Commands Popen rejects outright still produce a report."""
        memory_tracker.record("Edit", "a.rs")
        verifier = BuildVerifier(memory_tracker, cwd=tmp_path)

        report = verifier.check(command)

        assert report is not None
        assert report.succeeded is False
        assert report.issue_lines
        assert memory_tracker.has_pending() is False

    def test_missing_command_is_failed_report(self, verifier, pending):
        report = verifier.check("definitely-not-a-real-build-tool-xyz")
        assert report.succeeded is False
        assert report.issue_lines

    def test_spawn_failure_is_failed_report(self, memory_tracker, tmp_path):
        """A missing working directory fails to spawn but still reports."""
        memory_tracker.record("Edit", "a.rs")
        verifier = BuildVerifier(memory_tracker, cwd=tmp_path / "missing")

        report = verifier.check(py_cmd("print('hi')"))

        assert report.succeeded is False
        assert report.issue_lines
        assert memory_tracker.has_pending() is False

    def test_record_drained_exactly_once(self, verifier, pending):
        verifier.check(print_lines(["ok"]))
        assert verifier.check(print_lines(["ok"])) is None

    def test_runs_in_project_directory(self, memory_tracker, tmp_path):
        (tmp_path / "marker.txt").write_text("warning: from marker")
        memory_tracker.record("Edit", "a.rs")
        verifier = BuildVerifier(memory_tracker, cwd=tmp_path)

        report = verifier.check(py_cmd("print(open('marker.txt').read())"))

        assert report.issue_lines == ["warning: from marker"]
