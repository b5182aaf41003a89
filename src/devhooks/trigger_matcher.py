"""Skill trigger matching for incoming user prompts.

Rules live in skill-rules.json (or .yaml), one entry per skill:

    {
      "rust-lints": {
        "promptTriggers": {
          "keywords": ["clippy", "lint"],
          "intentPatterns": ["fix.*warning"]
        }
      }
    }

A rule activates when any keyword is a case-insensitive substring of the
prompt or any intent pattern matches it. Activated rule names are prepended
to the prompt as an advisory block; the prompt itself is never altered.
"""

import json
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .logging_config import get_logger
from .models import MatchResult, TriggerRule

logger = get_logger("trigger_matcher")

ADVISORY_HEADER = "SKILL ACTIVATION CHECK"
ADVISORY_FOOTER = "Consider using the skills above before responding."


def _read_rule_source(path: Path) -> object:
    """Parse a rule file by extension. JSON is the default format."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_load(text)
    return json.loads(text)


def load_rules(path: str | Path | None) -> list[TriggerRule]:
    """Load trigger rules in file order.

    A missing or unparseable file yields no rules. A malformed entry is
    skipped without affecting the others.
    """
    if path is None:
        return []
    path = Path(path)

    try:
        data = _read_rule_source(path)
    except FileNotFoundError:
        logger.debug(f"No rule file at {path}")
        return []
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        logger.warning(f"Could not load rules from {path}: {e}")
        return []

    if not isinstance(data, dict):
        if data is not None:
            logger.warning(f"Rule file {path} must contain a mapping, not {type(data).__name__}")
        return []

    rules = []
    for name, entry in data.items():
        if not isinstance(entry, dict):
            logger.warning(f"Skipping rule {name!r}: expected a mapping")
            continue
        try:
            rules.append(TriggerRule.model_validate({**entry, "name": str(name)}))
        except ValidationError as e:
            logger.warning(f"Skipping malformed rule {name!r}: {e.error_count()} error(s)")
    return rules


def compile_patterns(rule: TriggerRule) -> list[re.Pattern | re.error]:
    """Compile each intent pattern case-insensitively.

    Returns one entry per pattern: the compiled pattern, or the re.error
    raised while compiling it.
    """
    results: list[re.Pattern | re.error] = []
    for source in rule.intent_patterns:
        try:
            results.append(re.compile(source, re.IGNORECASE))
        except re.error as e:
            results.append(e)
    return results


def rule_matches(rule: TriggerRule, prompt: str) -> bool:
    """Check a single rule against a prompt."""
    lowered = prompt.lower()
    if any(keyword and keyword.lower() in lowered for keyword in rule.keywords):
        return True

    for source, compiled in zip(rule.intent_patterns, compile_patterns(rule)):
        if isinstance(compiled, re.error):
            logger.warning(f"Invalid intent pattern in rule {rule.name!r}: {source!r} ({compiled})")
            continue
        if compiled.search(prompt):
            return True
    return False


def format_advisory(names: list[str]) -> str:
    lines = [ADVISORY_HEADER, "", "Matched skills:"]
    lines.extend(f"  -> {name}" for name in names)
    lines.extend(["", ADVISORY_FOOTER])
    return "\n".join(lines)


def evaluate(prompt: str, rules: list[TriggerRule] | None) -> MatchResult:
    """Decide which rules a prompt activates.

    Args:
        prompt: The user's prompt text
        rules: Rules in configuration order (None or empty means inert)

    Returns:
        MatchResult whose text is the prompt, prefixed with an advisory block
        when at least one rule activated.
    """
    if not rules:
        return MatchResult(text=prompt)

    activated = [rule.name for rule in rules if rule_matches(rule, prompt)]
    if not activated:
        return MatchResult(text=prompt)

    logger.info(f"Activated skills: {', '.join(activated)}")
    advisory = format_advisory(activated)
    return MatchResult(text=f"{advisory}\n\n{prompt}", activated=activated, advisory=advisory)
