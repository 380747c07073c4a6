"""Tag resolution and pre-release sequencing.

Pure functions over tag names and versions; nothing here touches git.

- resolve_tags() picks the highest release tag (X.Y.Z) and the highest
  pre-release tag (X.Y.Z-<suffix>.<n>) for the configured suffix.
- next_prerelease() continues or restarts the pre-release counter.
- is_prerelease_branch() decides whether the current branch produces
  pre-releases.
- should_skip() is the "no new commits since the last tag" check.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import semver

from .logging import get_logger
from .versions import core, max_tag, parse_version, strip_v

log = get_logger(__name__)

RELEASE_TAG_RE = re.compile(r"^v?\d+\.\d+\.\d+$")


def prerelease_tag_regex(suffix: str) -> re.Pattern[str]:
    """Pattern for pre-release tags carrying exactly this suffix."""
    return re.compile(rf"^v?\d+\.\d+\.\d+-{re.escape(suffix)}\.\d+$")


def is_prerelease_tag(tag: str, suffix: str) -> bool:
    return bool(prerelease_tag_regex(suffix).match(tag))


def resolve_tags(
    tag_names: Iterable[str], suffix: str, initial_version: str
) -> tuple[str, str]:
    """Find the base (release) tag and the latest pre-release tag.

    Tags with other pre-release suffixes, or that match neither shape, are
    ignored. Either result falls back to initial_version when no tag of
    that class exists.

    Returns:
        Tuple of (base_tag, pre_tag).
    """
    pre_re = prerelease_tag_regex(suffix)
    releases: list[str] = []
    prereleases: list[str] = []
    for name in tag_names:
        if RELEASE_TAG_RE.match(name):
            releases.append(name)
        elif pre_re.match(name):
            prereleases.append(name)

    base_tag = max_tag(releases) or initial_version
    pre_tag = max_tag(prereleases) or initial_version
    log.debug(
        "resolved tags",
        base_tag=base_tag,
        pre_tag=pre_tag,
        releases=len(releases),
        prereleases=len(prereleases),
    )
    return base_tag, pre_tag


def next_prerelease(target: semver.Version, pre_tag: str, suffix: str) -> str:
    """Compute the pre-release (tag body, no "v") that follows pre_tag.

    The counter is scoped to (suffix, target): when pre_tag is exactly
    ``<target>-<suffix>.<n>`` the next counter is n + 1, otherwise it
    restarts at 0.

    Examples:
        target 1.2.0, pre_tag "v1.2.0-beta.1" → 1.2.0-beta.2
        target 1.3.0, pre_tag "v1.2.0-beta.1" → 1.3.0-beta.0
        target 1.2.0, pre_tag "0.0.0"         → 1.2.0-beta.0
    """
    target_str = str(core(target))
    match = re.fullmatch(
        rf"{re.escape(target_str)}-{re.escape(suffix)}\.(\d+)", strip_v(pre_tag)
    )
    counter = int(match.group(1)) + 1 if match else 0
    return f"{target_str}-{suffix}.{counter}"


def prerelease_target(
    bumped: semver.Version, pre_tag: str, suffix: str
) -> tuple[semver.Version, bool]:
    """Pick the version a pre-release should be cut for.

    A pre-release line that is already ahead of the bumped release version
    keeps going; otherwise the bumped version starts (or continues) its own
    line.

    Returns:
        Tuple of (target version, counter_reset). counter_reset is True
        when an existing pre-release line for this suffix was left behind
        because the bumped version moved past it.
    """
    if not is_prerelease_tag(pre_tag, suffix):
        return bumped, False

    pre_core = core(parse_version(pre_tag))
    if pre_core.compare(bumped) >= 0:
        return pre_core, False
    log.info(
        "pre-release counter reset",
        previous=pre_tag,
        target=str(bumped),
    )
    return bumped, True


def is_prerelease_branch(
    branch: str, release_branches: Iterable[str], force_prerelease: bool = False
) -> bool:
    """Decide whether a branch produces pre-release tags.

    A branch is a release branch when it equals an entry exactly, or when
    an entry ends with '*' and the branch starts with the entry's prefix.
    """
    if force_prerelease:
        return True
    for entry in release_branches:
        if branch == entry:
            return False
        if entry.endswith("*") and branch.startswith(entry.rstrip("*")):
            return False
    return True


def should_skip(
    tag_commit: str | None, head_commit: str, force_without_change: bool
) -> bool:
    """True when HEAD is already the base tag's commit and tagging isn't forced."""
    return (
        tag_commit is not None
        and tag_commit == head_commit
        and not force_without_change
    )
