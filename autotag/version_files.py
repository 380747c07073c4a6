"""Rewriting version strings embedded in project manifests.

Rules are plain data (VersionFileRule): a path, a regex matching the whole
version assignment, and a replacement template. The rewrite engine here is
kept separate from DEFAULT_VERSION_FILES, the catalogue of ecosystems
registered out of the box, so the catalogue can grow without touching the
engine.

Regex replacement is used instead of parsing each format so the rest of
the file (formatting, comments, key order) is left byte-for-byte intact.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from pathlib import Path

from pydantic import ValidationError

from .errors import ConfigurationError, VersionControlError
from .logging import get_logger
from .models import VersionFileRule
from .versions import strip_v

log = get_logger(__name__)


# TOML manifests: only a literal `version = "..."` inside the package's own
# table is rewritten. The table header and the lines before the version key
# are captured as `prefix` and written back unchanged; a table that inherits
# its version (version.workspace = true, dynamic = ["version"]) matches nothing.
def _toml_table_version(*tables: str) -> str:
    headers = "|".join(re.escape(t) for t in tables)
    return (
        rf"(?m)(?P<prefix>^\[(?:{headers})\][^\n]*\n(?:(?!\[)[^\n]*\n)*?)"
        r'version\s*=\s*"[^"]*"'
    )


# Maven: the project's own <version>, skipping a <parent> block and stopping
# before dependencies, plugins and profiles, which carry their own versions.
_POM_SECTIONS = "dependencies|dependencyManagement|build|profiles|reporting"
_POM_VERSION = (
    rf"(?s)(?P<prefix><project\b(?:(?!<(?:parent|version|{_POM_SECTIONS})>).)*"
    rf"(?:<parent>.*?</parent>(?:(?!<(?:version|{_POM_SECTIONS})>).)*)?)"
    r"<version>[^<]*</version>"
)

DEFAULT_VERSION_FILES: tuple[VersionFileRule, ...] = (
    # Rust
    VersionFileRule(
        path="Cargo.toml",
        match_pattern=_toml_table_version("package", "workspace.package"),
        replacement_template='version = "{version}"',
        max_replacements=1,
    ),
    # Node.js
    VersionFileRule(
        path="package.json",
        match_pattern=r'"version"\s*:\s*"[^"]*"',
        replacement_template='"version": "{version}"',
        max_replacements=1,
    ),
    # Python
    VersionFileRule(
        path="pyproject.toml",
        match_pattern=_toml_table_version("project", "tool.poetry"),
        replacement_template='version = "{version}"',
        max_replacements=1,
    ),
    # PHP
    VersionFileRule(
        path="composer.json",
        match_pattern=r'"version"\s*:\s*"[^"]*"',
        replacement_template='"version": "{version}"',
        max_replacements=1,
    ),
    # Java (Maven)
    VersionFileRule(
        path="pom.xml",
        match_pattern=_POM_VERSION,
        replacement_template="<version>{version}</version>",
        max_replacements=1,
    ),
    # .NET
    VersionFileRule(
        path="*.csproj",
        match_pattern=r"<Version>[^<]*</Version>",
        replacement_template="<Version>{version}</Version>",
        max_replacements=1,
    ),
)

_GLOB_CHARS = frozenset("*?[")


class VersionFileManager:
    """Ordered set of version-file rules applied in one pass.

    Example::

        manager = VersionFileManager()
        manager.register_defaults()
        changed = manager.apply("1.4.0", root=Path("."))
    """

    def __init__(self, rules: Iterable[VersionFileRule] = ()) -> None:
        self._rules: list[tuple[VersionFileRule, re.Pattern[str]]] = []
        for rule in rules:
            self.add_rule(rule)

    @property
    def rules(self) -> list[VersionFileRule]:
        return [rule for rule, _ in self._rules]

    def add_rule(self, rule: VersionFileRule) -> None:
        try:
            compiled = re.compile(rule.match_pattern)
        except re.error as exc:
            raise ConfigurationError(
                f"Invalid version file pattern for {rule.path}: {exc}"
            ) from exc
        self._rules.append((rule, compiled))

    def register(
        self,
        path: str,
        match_pattern: str,
        replacement_template: str,
        max_replacements: int = 0,
    ) -> VersionFileRule:
        """Validate and append a rule.

        Raises:
            ConfigurationError: If the pattern does not compile or the
                template lacks exactly one ``{version}`` placeholder.
        """
        try:
            rule = VersionFileRule(
                path=path,
                match_pattern=match_pattern,
                replacement_template=replacement_template,
                max_replacements=max_replacements,
            )
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid version file rule for {path}: {exc.errors()[0]['msg']}"
            ) from exc
        self.add_rule(rule)
        return rule

    def register_defaults(self) -> None:
        """Register the built-in manifest catalogue."""
        for rule in DEFAULT_VERSION_FILES:
            self.add_rule(rule)

    def apply(self, new_version: str, root: Path) -> list[str]:
        """Rewrite every matching file under root.

        All files are read and rewritten in memory first, so a file that
        cannot be read or decoded aborts the run before anything is written.
        Missing files are skipped. Files whose content would not change are
        left untouched and not reported.

        Args:
            new_version: Version to write; a leading 'v' is dropped.
            root: Repository root the rule paths are relative to.

        Returns:
            Paths (relative to root, POSIX style) of the files modified.

        Raises:
            ConfigurationError: If a matched file is not UTF-8 text.
            VersionControlError: If a file cannot be read or written.
        """
        bare = strip_v(new_version)
        original: dict[Path, str] = {}
        pending: dict[Path, str] = {}

        for rule, pattern in self._rules:
            for path in _expand(root, rule.path):
                if path not in pending:
                    original[path] = pending[path] = _read_text(path)
                pending[path] = pattern.sub(
                    _replacer(rule, pattern, bare),
                    pending[path],
                    count=rule.max_replacements,
                )

        updated = [path for path in pending if pending[path] != original[path]]
        for path in updated:
            _write_text(path, pending[path])
            log.info("updated version file", path=str(path), version=bare)

        # Re-read what we wrote before the caller stages it.
        for path in updated:
            if _read_text(path) != pending[path]:
                raise VersionControlError(
                    f"Version file {path} did not persist the new version"
                )

        return [path.relative_to(root).as_posix() for path in updated]


def _replacer(
    rule: VersionFileRule, pattern: re.Pattern[str], version: str
) -> Callable[[re.Match[str]], str]:
    """Build the substitution callback; a `prefix` group is written back as is."""
    rendered = rule.render(version)
    if "prefix" not in pattern.groupindex:
        return lambda _m: rendered
    return lambda m: (m.group("prefix") or "") + rendered


def _read_text(path: Path) -> str:
    # Bytes in, bytes out: keeps CRLF line endings intact.
    try:
        return path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigurationError(
            f"Version file {path} is not UTF-8 text: {exc}",
            hint="Remove it from version_files or set default_version_files = false.",
        ) from exc
    except OSError as exc:
        raise VersionControlError(f"Could not read version file {path}: {exc}") from exc


def _write_text(path: Path, content: str) -> None:
    try:
        path.write_bytes(content.encode("utf-8"))
    except OSError as exc:
        raise VersionControlError(f"Could not write version file {path}: {exc}") from exc


def _expand(root: Path, pattern: str) -> list[Path]:
    """Resolve a rule path (literal or glob) to existing files under root."""
    if _GLOB_CHARS.intersection(pattern):
        return sorted(p for p in root.glob(pattern) if p.is_file())
    path = root / pattern
    return [path] if path.is_file() else []


def build_manager(
    extra_rules: Iterable[VersionFileRule] = (), *, include_defaults: bool = True
) -> VersionFileManager:
    """Create a manager from the default catalogue plus configured rules."""
    manager = VersionFileManager()
    if include_defaults:
        manager.register_defaults()
    for rule in extra_rules:
        manager.add_rule(rule)
    return manager
