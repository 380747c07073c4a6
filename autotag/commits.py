"""Conventional commit grammar and bump classification.

The header grammar is the one commit-message linting uses:

    <type>(<scope>)!: <description>

The bump classifier layers three independently configurable patterns on
top of it (major, minor, patch) and scans the whole commit log window at
once: the first pattern that matches anywhere wins.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .errors import ConfigurationError
from .logging import get_logger
from .models import DEFAULT_COMMIT_TYPES, BumpLevel, ReleaseConfig

log = get_logger(__name__)

MIN_HEADER_LENGTH = 10
MAX_HEADER_LENGTH = 72

_FLAGS = re.IGNORECASE | re.MULTILINE


def header_regex(commit_types: Iterable[str] = DEFAULT_COMMIT_TYPES) -> re.Pattern[str]:
    """Compile the conventional-commit header grammar for a set of types."""
    types = "|".join(re.escape(t) for t in commit_types)
    return re.compile(rf"^(?:{types})(?:\([a-z0-9-]+\))?(?:!)?: .+$")


def check_message_format(
    message: str, commit_types: Iterable[str] = DEFAULT_COMMIT_TYPES
) -> list[str]:
    """Lint the header of a commit message.

    Returns:
        A list of issue descriptions; empty when the header is valid. When
        the format itself is wrong, length issues are not reported.
    """
    commit_types = tuple(commit_types)
    first_line = message.strip().splitlines()[0] if message.strip() else ""

    if not header_regex(commit_types).match(first_line):
        if ": " not in first_line:
            issue = "Missing ': ' separator between type/scope and description"
        elif not any(first_line.startswith(t) for t in commit_types):
            issue = f"Commit type must be one of: {', '.join(commit_types)}"
        elif "(" in first_line and ")" not in first_line:
            issue = "Unclosed scope parenthesis"
        elif ")" in first_line and "(" not in first_line:
            issue = "Unopened scope parenthesis"
        elif "()" in first_line:
            issue = "Empty scope parenthesis"
        else:
            issue = "Commit message format should be: <type>(<scope>): <description>"
        return [issue]

    issues: list[str] = []
    if len(first_line) < MIN_HEADER_LENGTH:
        issues.append(
            f"Commit message is too short (got {len(first_line)} characters, "
            f"minimum is {MIN_HEADER_LENGTH})"
        )
    if len(first_line) > MAX_HEADER_LENGTH:
        issues.append(
            f"First line of commit message is too long (got {len(first_line)} "
            f"characters, maximum is {MAX_HEADER_LENGTH})"
        )
    return issues


def compile_bump_patterns(
    config: ReleaseConfig,
) -> tuple[re.Pattern[str], re.Pattern[str], re.Pattern[str]]:
    """Compile the major, minor and patch patterns of a configuration.

    Patterns are always case-insensitive and multiline, so ``^`` anchors at
    the start of every line of the window.

    Raises:
        ConfigurationError: If a pattern is not a valid regular expression.
    """
    compiled = []
    for name in ("major_pattern", "minor_pattern", "patch_pattern"):
        pattern = getattr(config, name)
        try:
            compiled.append(re.compile(pattern, _FLAGS))
        except re.error as exc:
            raise ConfigurationError(
                f"Invalid {name.replace('_', ' ')} {pattern!r}: {exc}"
            ) from exc
    major, minor, patch = compiled
    return major, minor, patch


def classify_bump(log_window: str, config: ReleaseConfig) -> BumpLevel:
    """Classify a commit log window into a bump level.

    Evaluated in fixed priority: major pattern, minor pattern, patch
    pattern, then the literal none token anywhere in the window, and
    finally the configured default bump.
    """
    major, minor, patch = compile_bump_patterns(config)

    if major.search(log_window):
        level = BumpLevel.MAJOR
    elif minor.search(log_window):
        level = BumpLevel.MINOR
    elif patch.search(log_window):
        level = BumpLevel.PATCH
    elif config.none_token and config.none_token in log_window:
        level = BumpLevel.NONE
    else:
        level = config.default_bump

    log.debug("classified bump", bump=str(level), window_chars=len(log_window))
    return level
