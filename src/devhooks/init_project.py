"""Install devhooks into a Claude Code project."""

import json
import shlex
import sys
from pathlib import Path

from .config import SKILL_RULES_RELPATH


def get_devhooks_python_path() -> str:
    """Get the path to the Python interpreter running devhooks."""
    return sys.executable


def hook_command(event: str) -> str:
    """Shell command the host runs for a hook event."""
    return f"{shlex.quote(get_devhooks_python_path())} -m devhooks.hooks {event}"


# Host hook type -> devhooks.hooks event name
HOOK_EVENTS = {
    "PostToolUse": "post-tool-use",
    "Stop": "stop",
    "UserPromptSubmit": "user-prompt-submit",
}


def build_hook_settings() -> dict:
    """Hook wiring merged into .claude/settings.json."""
    return {
        "hooks": {
            "PostToolUse": [
                {
                    "matcher": "Edit|MultiEdit|Write",
                    "hooks": [{"type": "command", "command": hook_command(HOOK_EVENTS["PostToolUse"])}],
                }
            ],
            "Stop": [
                {
                    "hooks": [{"type": "command", "command": hook_command(HOOK_EVENTS["Stop"]), "timeout": 60}],
                }
            ],
            "UserPromptSubmit": [
                {
                    "hooks": [{"type": "command", "command": hook_command(HOOK_EVENTS["UserPromptSubmit"])}],
                }
            ],
        }
    }


STARTER_SKILL_RULES = {
    "build-errors": {
        "promptTriggers": {
            "keywords": ["compile error", "build fails", "build error"],
            "intentPatterns": [r"(fix|resolve).*(error|warning)", r"why (does|won't) .* (build|compile)"],
        }
    },
    "rust-lints": {
        "promptTriggers": {
            "keywords": ["clippy", "lint"],
            "intentPatterns": [r"\bunused\b.*\b(variable|import)s?\b"],
        }
    },
}


def _has_devhooks_entry(groups: list, event: str) -> bool:
    """Whether a hook type's matcher groups already run the devhooks handler."""
    marker = f"-m devhooks.hooks {event}"
    for group in groups:
        if not isinstance(group, dict):
            continue
        for hook in group.get("hooks") or []:
            if isinstance(hook, dict) and marker in str(hook.get("command", "")):
                return True
    return False


def _merge_settings(existing: dict, build_command: str | None) -> bool:
    """Merge devhooks wiring into settings in place. Returns True if anything changed.

    The project's own matcher groups are kept; the devhooks group is appended
    to a hook type only when its command is not already there.
    """
    changed = False
    hooks = existing.setdefault("hooks", {})
    if not isinstance(hooks, dict):
        raise ValueError("'hooks' must be a JSON object")

    for hook_type, hook_config in build_hook_settings()["hooks"].items():
        groups = hooks.setdefault(hook_type, [])
        if not isinstance(groups, list):
            raise ValueError(f"'hooks.{hook_type}' must be a JSON array")
        if not _has_devhooks_entry(groups, HOOK_EVENTS[hook_type]):
            groups.extend(hook_config)
            changed = True

    if build_command:
        env = existing.setdefault("env", {})
        if not isinstance(env, dict):
            raise ValueError("'env' must be a JSON object")
        if env.get("DEVHOOKS_BUILD_COMMAND") != build_command:
            env["DEVHOOKS_BUILD_COMMAND"] = build_command
            changed = True

    return changed


def init_claude_hooks(project_dir: Path, dry_run: bool = False, build_command: str | None = None) -> dict:
    """
    Initialize devhooks in a project directory.

    Creates or updates:
    - .claude/settings.json               (hook wiring, merged)
    - .claude/skills/skill-rules.json     (starter rules, never overwritten)

    Args:
        project_dir: The project directory to initialize
        dry_run: If True, don't write changes, just report what would happen
        build_command: Optional build command stored as DEVHOOKS_BUILD_COMMAND

    Returns dict with status info.
    """
    results = {
        "created": [],
        "would_create": [],
        "updated": [],
        "would_update": [],
        "skipped": [],
        "errors": [],
    }

    settings_file = project_dir / ".claude" / "settings.json"
    rules_file = project_dir / SKILL_RULES_RELPATH

    if settings_file.exists():
        try:
            existing = json.loads(settings_file.read_text())
            if not isinstance(existing, dict):
                raise ValueError("settings must contain a JSON object, not " + type(existing).__name__)
            needs_update = _merge_settings(existing, build_command)
        except json.JSONDecodeError:
            results["errors"].append(f"Could not parse existing {settings_file}")
        except ValueError as e:
            results["errors"].append(f"{settings_file}: {e}")
        else:
            if not needs_update:
                results["skipped"].append(str(settings_file))
            elif dry_run:
                results["would_update"].append(str(settings_file))
            else:
                settings_file.write_text(json.dumps(existing, indent=2) + "\n")
                results["updated"].append(str(settings_file))
    else:
        settings = {}
        _merge_settings(settings, build_command)
        if dry_run:
            results["would_create"].append(str(settings_file))
        else:
            settings_file.parent.mkdir(parents=True, exist_ok=True)
            settings_file.write_text(json.dumps(settings, indent=2) + "\n")
            results["created"].append(str(settings_file))

    if rules_file.exists():
        results["skipped"].append(str(rules_file))
    elif dry_run:
        results["would_create"].append(str(rules_file))
    else:
        rules_file.parent.mkdir(parents=True, exist_ok=True)
        rules_file.write_text(json.dumps(STARTER_SKILL_RULES, indent=2) + "\n")
        results["created"].append(str(rules_file))

    return results


# ============================================================================
# Main CLI
# ============================================================================

def main():
    """CLI entry point for devhooks-init."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Install devhooks (edit tracking, build check, skill triggers) into a project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  devhooks-init                                  # Current directory
  devhooks-init ~/src/app --build-command "cargo check"
  devhooks-init --dry-run                        # Show what would change

Creates:
  .claude/settings.json            # PostToolUse, Stop and UserPromptSubmit hooks
  .claude/skills/skill-rules.json  # Starter skill trigger rules
        """,
    )

    parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Project directory (default: current directory)",
    )

    parser.add_argument(
        "--build-command", "-b",
        help="Build command run when the agent stops (stored as DEVHOOKS_BUILD_COMMAND)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes",
    )

    args = parser.parse_args()

    project_dir = Path(args.directory).resolve()
    dry_run = args.dry_run

    if dry_run:
        print("\n  DRY RUN - no changes will be made\n")
    print("  Initializing devhooks")
    print(f"  Project: {project_dir}\n")

    results = init_claude_hooks(project_dir, dry_run=dry_run, build_command=args.build_command)

    for f in results["created"]:
        print(f"    + {f}")
    for f in results["would_create"]:
        print(f"    ? {f} (would create)")
    for f in results["updated"]:
        print(f"    ~ {f}")
    for f in results["would_update"]:
        print(f"    ? {f} (would update)")
    for f in results["skipped"]:
        print(f"    = {f} (already configured)")
    for e in results["errors"]:
        print(f"    ! {e}")

    if dry_run:
        print("\n  Dry run complete. Run without --dry-run to apply changes.\n")
    elif results["errors"]:
        print("\n  Finished with errors - see above.\n")
    else:
        print("\n  Done! Restart Claude Code for the hooks to take effect.\n")


if __name__ == "__main__":
    main()
