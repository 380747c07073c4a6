"""Version parsing, ordering and bumping.

Wraps semver.Version for the handful of operations the tagger needs:
turning tag names into versions, ordering tag names, and applying a bump
level to a release version.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable

import semver

from .errors import ConfigurationError
from .models import BumpLevel


def strip_v(tag: str) -> str:
    """Drop a single leading 'v' from a tag name ("v1.2.3" → "1.2.3")."""
    return tag[1:] if tag.startswith("v") else tag


def parse_version(tag: str) -> semver.Version:
    """Parse a tag name or bare version string into a semver.Version.

    Raises:
        ConfigurationError: If the string is not a valid semantic version.
    """
    try:
        return semver.Version.parse(strip_v(tag))
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(
            f"Invalid semantic version: {tag!r}",
            hint="Versions must look like MAJOR.MINOR.PATCH, e.g. 1.4.0",
        ) from exc


def compare_tags(a: str, b: str) -> int:
    """Order two tag names by semantic version.

    Falls back to plain string comparison when either side is a sentinel
    (contains "none") or does not parse as semver.

    Returns:
        Negative if a < b, zero if equal, positive if a > b.
    """
    if "none" in a or "none" in b:
        return (a > b) - (a < b)
    try:
        va = semver.Version.parse(strip_v(a))
        vb = semver.Version.parse(strip_v(b))
    except ValueError:
        return (a > b) - (a < b)
    return va.compare(vb)


def max_tag(tags: Iterable[str]) -> str | None:
    """Return the highest tag by compare_tags, or None for no tags."""
    tags = list(tags)
    if not tags:
        return None
    return max(tags, key=functools.cmp_to_key(compare_tags))


def apply_bump(version: semver.Version, level: BumpLevel) -> semver.Version:
    """Apply a bump level to a version.

    Examples:
        1.2.3 + major → 2.0.0
        1.2.3 + minor → 1.3.0
        1.2.3 + patch → 1.2.4
        1.2.3 + none  → 1.2.3
    """
    if level is BumpLevel.MAJOR:
        return version.bump_major()
    if level is BumpLevel.MINOR:
        return version.bump_minor()
    if level is BumpLevel.PATCH:
        return version.bump_patch()
    return version


def core(version: semver.Version) -> semver.Version:
    """Return major.minor.patch without pre-release or build metadata."""
    return semver.Version(version.major, version.minor, version.patch)


def format_tag(version: str | semver.Version, *, with_v: bool = True) -> str:
    """Render a tag name, with or without the leading 'v'."""
    bare = strip_v(str(version))
    return f"v{bare}" if with_v else bare
