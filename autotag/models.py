"""Data models for autotag.

These Pydantic models represent the configuration and results passed
between the tagging stages. ReleaseConfig is frozen: one invocation uses
one configuration from start to finish.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

import semver
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PLACEHOLDER = "{version}"

DEFAULT_COMMIT_TYPES: tuple[str, ...] = (
    "feat",
    "fix",
    "build",
    "chore",
    "ci",
    "cd",
    "docs",
    "perf",
    "refactor",
    "revert",
    "style",
    "test",
    "security",
)

SCOPE = r"(?:\s*\([^)]*\))?"


def _alternation(types: tuple[str, ...]) -> str:
    return "|".join(re.escape(t) for t in types)


def default_major_pattern(types: tuple[str, ...] = DEFAULT_COMMIT_TYPES) -> str:
    return rf"^(?:breaking[ -]change:|(?:{_alternation(types)}){SCOPE}!:)"


def default_minor_pattern() -> str:
    return rf"^feat{SCOPE}:"


def default_patch_pattern(types: tuple[str, ...] = DEFAULT_COMMIT_TYPES) -> str:
    others = tuple(t for t in types if t != "feat")
    return rf"^(?:{_alternation(others)}){SCOPE}:"


class BumpLevel(str, Enum):
    """Magnitude of a version increment, largest first."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    NONE = "none"

    def __str__(self) -> str:
        return self.value


class Stage(str, Enum):
    """States of one tagging run, in the order they are reached."""

    START = "start"
    BRANCH_RESOLVED = "branch_resolved"
    TAGS_FETCHED = "tags_fetched"
    BASE_TAGS_RESOLVED = "base_tags_resolved"
    SKIPPED = "skipped"
    BUMP_COMPUTED = "bump_computed"
    NEW_TAG_COMPUTED = "new_tag_computed"
    FILES_UPDATED = "files_updated"
    BUMP_COMMITTED = "bump_committed"
    TAG_CREATED = "tag_created"
    PUBLISHED = "published"
    DONE = "done"


class VersionFileRule(BaseModel):
    """Where and how to rewrite an embedded version string.

    Attributes:
        path: File path relative to the repository root. May be a glob
              such as "*.csproj".
        match_pattern: Regular expression matching the whole version
                       assignment (e.g. ``"version"\\s*:\\s*"[^"]*"``). Text
                       captured by a group named ``prefix`` is kept in
                       front of the replacement, which lets a pattern
                       anchor on a table header without rewriting it.
        replacement_template: Text that replaces each match; must contain
                              the ``{version}`` placeholder exactly once.
        max_replacements: Upper bound on replacements per file; 0 means
                          replace every non-overlapping match.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    match_pattern: str
    replacement_template: str
    max_replacements: int = Field(default=0, ge=0)

    @field_validator("match_pattern")
    @classmethod
    def _pattern_compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regular expression {value!r}: {exc}") from exc
        return value

    @field_validator("replacement_template")
    @classmethod
    def _single_placeholder(cls, value: str) -> str:
        if value.count(PLACEHOLDER) != 1:
            raise ValueError(
                f"template must contain {PLACEHOLDER} exactly once, got {value!r}"
            )
        return value

    def render(self, version: str) -> str:
        return self.replacement_template.replace(PLACEHOLDER, version)


class ReleaseConfig(BaseModel):
    """Settings for one tagging run.

    Mirrors the `autotag tag` command-line flags; values may also come from
    ``[tool.autotag]`` in pyproject.toml (see autotag.config).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_bump: BumpLevel = BumpLevel.MINOR
    with_v: bool = True
    release_branches: tuple[str, ...] = ("master", "main")
    source: Path = Path(".")
    dry_run: bool = False
    initial_version: str = "0.0.0"
    prerelease: bool = False
    prerelease_suffix: str = "beta"
    none_token: str = "#none"
    force_without_change: bool = False
    tag_message: str = ""
    publish: bool = True
    bump_config_files: bool = False
    remote: str = "origin"
    commit_types: tuple[str, ...] = DEFAULT_COMMIT_TYPES
    major_pattern: str = Field(default_factory=default_major_pattern)
    minor_pattern: str = Field(default_factory=default_minor_pattern)
    patch_pattern: str = Field(default_factory=default_patch_pattern)
    version_files: tuple[VersionFileRule, ...] = ()
    default_version_files: bool = True

    @model_validator(mode="before")
    @classmethod
    def _patterns_follow_types(cls, data: object) -> object:
        # Custom commit types reshape the default major/patch patterns.
        if isinstance(data, dict) and data.get("commit_types"):
            types = tuple(data["commit_types"])
            data = dict(data)
            data.setdefault("major_pattern", default_major_pattern(types))
            data.setdefault("patch_pattern", default_patch_pattern(types))
        return data

    @field_validator("default_bump")
    @classmethod
    def _default_bump_is_real(cls, value: BumpLevel) -> BumpLevel:
        if value is BumpLevel.NONE:
            raise ValueError("default_bump must be one of major, minor, patch")
        return value

    @field_validator("release_branches", mode="before")
    @classmethod
    def _split_branches(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(b.strip() for b in value.split(",") if b.strip())
        return value

    @field_validator("initial_version")
    @classmethod
    def _initial_is_semver(cls, value: str) -> str:
        bare = value[1:] if value.startswith("v") else value
        if not semver.Version.is_valid(bare):
            raise ValueError(f"initial_version {value!r} is not a semantic version")
        return value

    @field_validator("prerelease_suffix")
    @classmethod
    def _suffix_is_identifier(cls, value: str) -> str:
        if not re.fullmatch(r"[0-9A-Za-z-]+", value):
            raise ValueError(
                f"prerelease_suffix {value!r} must be alphanumeric (hyphens allowed)"
            )
        return value

    @field_validator("major_pattern", "minor_pattern", "patch_pattern")
    @classmethod
    def _bump_pattern_compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regular expression {value!r}: {exc}") from exc
        return value


class TagResult(BaseModel):
    """Outcome of one tagging run.

    The first four fields form the CLI's structured output record; the rest
    add detail for callers and logs.
    """

    ok: bool = True
    old_tag: str
    new_tag: str | None = None
    pre_release: bool = False
    skipped: bool = False
    dry_run: bool = False
    bump: BumpLevel | None = None
    counter_reset: bool = False
    updated_files: list[str] = Field(default_factory=list)
    stage: Stage = Stage.START
