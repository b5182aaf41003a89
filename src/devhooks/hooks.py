"""Host adapters for devhooks.

Each handler reads the hook payload the host writes to stdin, calls one
component, and prints whatever the host should see. Handlers never fail the
host: bad input and internal errors are logged and the process exits 0.

    devhooks-hook post-tool-use        # after Edit / MultiEdit / Write
    devhooks-hook stop                 # when the agent finishes responding
    devhooks-hook user-prompt-submit   # before each prompt reaches the agent
"""

import argparse
import json
import sys
from typing import TextIO

from .build_verifier import BuildVerifier
from .config import HookConfig
from .edit_store import JsonFileEditStore
from .edit_tracker import EditTracker
from .logging_config import get_logger
from .trigger_matcher import evaluate, load_rules

logger = get_logger("hooks")


def _read_payload(stream: TextIO) -> dict | None:
    try:
        payload = json.load(stream)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Ignoring invalid hook input: {e}")
        return None
    if not isinstance(payload, dict):
        logger.warning(f"Ignoring hook input of type {type(payload).__name__}")
        return None
    return payload


def _config_for(payload: dict) -> HookConfig:
    return HookConfig.from_env(payload.get("cwd") or None)


def _tracker_for(config: HookConfig) -> EditTracker:
    return EditTracker(JsonFileEditStore(config.edit_log_path))


def handle_post_tool_use(payload: dict, out: TextIO) -> None:
    """Record the file touched by a mutating tool call."""
    tool_input = payload.get("tool_input")
    if not isinstance(tool_input, dict):
        return
    config = _config_for(payload)
    _tracker_for(config).record(payload.get("tool_name"), tool_input.get("file_path"))


def handle_stop(payload: dict, out: TextIO) -> None:
    """Run the build check and print its report."""
    if payload.get("stop_hook_active"):
        # Host is already continuing because of a Stop hook
        return
    config = _config_for(payload)
    verifier = BuildVerifier(_tracker_for(config), cwd=config.project_dir)
    report = verifier.check(config.build_command, timeout=config.build_timeout)
    if report is not None:
        out.write(report.to_text() + "\n")


def handle_user_prompt_submit(payload: dict, out: TextIO, replace: bool = False) -> None:
    """Print the skill advisory for the prompt.

    By default only the advisory is printed, since the host adds hook output
    to the prompt's context. With replace=True the full prefixed prompt is
    printed for hosts that substitute hook output for the prompt.
    """
    prompt = payload.get("prompt")
    if not isinstance(prompt, str) or not prompt:
        return
    config = _config_for(payload)
    result = evaluate(prompt, load_rules(config.skill_rules_path))
    if replace:
        out.write(result.text)
    elif result.activated:
        out.write(result.advisory + "\n")


HANDLERS = {
    "post-tool-use": handle_post_tool_use,
    "stop": handle_stop,
    "user-prompt-submit": handle_user_prompt_submit,
}


def run_hook(event: str, stdin: TextIO, stdout: TextIO, replace: bool = False) -> int:
    """Dispatch one hook event. Always returns exit code 0."""
    payload = _read_payload(stdin)
    if payload is None:
        return 0

    try:
        if event == "user-prompt-submit":
            handle_user_prompt_submit(payload, stdout, replace=replace)
        else:
            HANDLERS[event](payload, stdout)
    except Exception:
        logger.exception(f"Hook {event} failed")
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for devhooks-hook."""
    parser = argparse.ArgumentParser(
        prog="devhooks-hook",
        description="Run a devhooks handler on a hook payload read from stdin",
    )
    parser.add_argument("event", choices=sorted(HANDLERS), help="Hook event to handle")
    parser.add_argument(
        "--replace",
        action="store_true",
        help="user-prompt-submit: print the full prefixed prompt instead of only the advisory",
    )
    args = parser.parse_args(argv)
    return run_hook(args.event, sys.stdin, sys.stdout, replace=args.replace)


if __name__ == "__main__":
    sys.exit(main())
