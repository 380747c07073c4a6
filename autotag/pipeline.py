"""Tagging pipeline: branch → tags → skip check → bump → tag → publish.

This module orchestrates one autotag run:
1. Refuse to run with staged-but-uncommitted changes
2. Classify the current branch (release vs pre-release)
3. Fetch tags from the remote, if there is one
4. Resolve the base release tag and the latest pre-release tag
5. Skip when HEAD is already the base tag's commit
6. Classify the commit log since the base tag into a bump level
7. Compute the new tag (with a pre-release counter when needed)
8. Optionally rewrite version files and commit them
9. Create the tag and push tag and commit

Stages run strictly in order. A dry run stops after step 7. Nothing is
rolled back if a push fails: the local tag and commit stay in place and
the push can be retried on its own.
"""

from __future__ import annotations

from .commits import classify_bump
from .errors import PreconditionError
from .logging import get_logger
from .models import BumpLevel, ReleaseConfig, Stage, TagResult
from .repo import GitRepository
from .tags import (
    is_prerelease_branch,
    next_prerelease,
    prerelease_target,
    resolve_tags,
    should_skip,
)
from .version_files import build_manager
from .versions import apply_bump, format_tag, parse_version, strip_v

log = get_logger(__name__)

BUMP_COMMIT_MESSAGE = "chore: bump version to {version}"


def _advance(result: TagResult, stage: Stage, **fields: object) -> None:
    result.stage = stage
    log.debug("stage reached", stage=stage.value, **fields)


def check_preconditions(repo: GitRepository) -> None:
    """Abort before any computation if the index holds uncommitted changes."""
    if repo.has_staged_changes():
        raise PreconditionError(
            "Please commit your staged changes before tagging",
            hint="Commit or unstage them (git restore --staged <file>), then retry.",
        )


def resolve_branch(repo: GitRepository, config: ReleaseConfig) -> tuple[str, bool]:
    """Return the current branch and whether this run produces a pre-release."""
    branch = repo.current_branch()
    pre_release = is_prerelease_branch(
        branch, config.release_branches, config.prerelease
    )
    log.info("current branch", branch=branch, pre_release=pre_release)
    return branch, pre_release


def compute_bump(
    repo: GitRepository, config: ReleaseConfig, base_commit: str | None
) -> BumpLevel:
    """Classify the commits since the base tag (the whole history if none)."""
    window = repo.commit_log(base_commit)
    level = classify_bump(window, config)
    log.info("bump level", bump=str(level))
    return level


def compute_new_tag(
    config: ReleaseConfig,
    base_tag: str,
    pre_tag: str,
    level: BumpLevel,
    pre_release: bool,
) -> tuple[str, bool]:
    """Compute the next tag name.

    Returns:
        Tuple of (new tag, counter_reset). counter_reset is only ever True
        for pre-releases that abandon an older pre-release line.
    """
    bumped = apply_bump(parse_version(base_tag), level)
    counter_reset = False
    if pre_release:
        target, counter_reset = prerelease_target(
            bumped, pre_tag, config.prerelease_suffix
        )
        body = next_prerelease(target, pre_tag, config.prerelease_suffix)
    else:
        body = str(bumped)
    return format_tag(body, with_v=config.with_v), counter_reset


def update_version_files(
    repo: GitRepository, config: ReleaseConfig, new_tag: str
) -> list[str]:
    """Rewrite configured version files; return the ones that changed."""
    manager = build_manager(
        config.version_files, include_defaults=config.default_version_files
    )
    updated = manager.apply(new_tag, repo.root)
    if updated:
        log.info("updated version files", files=updated)
    else:
        log.info("no version files needed updating")
    return updated


def commit_bump(repo: GitRepository, new_tag: str, files: list[str]) -> str:
    """Commit the rewritten version files with the fixed bump message."""
    message = BUMP_COMMIT_MESSAGE.format(version=strip_v(new_tag))
    commit = repo.commit_files(files, message)
    log.info("committed version bump", commit=commit[:12], message=message)
    return commit


def publish(
    repo: GitRepository, branch: str, new_tag: str, *, bump_committed: bool
) -> bool:
    """Push the bump commit (if any) and the tag.

    Returns:
        True if anything was pushed, False when there is no remote.
    """
    pushed = False
    if bump_committed:
        pushed = repo.push(f"refs/heads/{branch}")
        if pushed:
            log.info("pushed version bump commit", branch=branch, remote=repo.remote)
    if repo.push(f"refs/tags/{new_tag}"):
        log.info("pushed tag", tag=new_tag, remote=repo.remote)
        pushed = True
    return pushed


def run_tag(config: ReleaseConfig, repo: GitRepository | None = None) -> TagResult:
    """Execute one full tagging run.

    Args:
        config: Validated settings for this run.
        repo: Repository to operate on; opened from config.source if omitted.

    Returns:
        The TagResult describing what was (or would be) done. A skipped run
        is a success with new_tag set to None.
    """
    log.info("starting tag generation", source=str(config.source))
    if repo is None:
        repo = GitRepository(config.source, remote=config.remote)
    check_preconditions(repo)

    branch, pre_release = resolve_branch(repo, config)
    result = TagResult(
        old_tag=config.initial_version,
        pre_release=pre_release,
        dry_run=config.dry_run,
    )
    _advance(result, Stage.BRANCH_RESOLVED, branch=branch)

    fetched = repo.fetch_tags()
    _advance(result, Stage.TAGS_FETCHED, fetched=fetched)

    base_tag, pre_tag = resolve_tags(
        repo.tag_names(), config.prerelease_suffix, config.initial_version
    )
    result.old_tag = base_tag
    _advance(result, Stage.BASE_TAGS_RESOLVED, base_tag=base_tag, pre_tag=pre_tag)
    log.info("latest tags", base_tag=base_tag, pre_tag=pre_tag)

    base_commit = repo.tag_commit(base_tag)
    head_commit = repo.head_commit()
    if should_skip(base_commit, head_commit, config.force_without_change):
        log.info("no new commits since previous tag, skipping", tag=base_tag)
        result.skipped = True
        _advance(result, Stage.SKIPPED)
        return result

    level = compute_bump(repo, config, base_commit)
    result.bump = level
    _advance(result, Stage.BUMP_COMPUTED, bump=str(level))

    new_tag, counter_reset = compute_new_tag(
        config, base_tag, pre_tag, level, pre_release
    )
    result.new_tag = new_tag
    result.counter_reset = counter_reset
    _advance(result, Stage.NEW_TAG_COMPUTED, new_tag=new_tag)
    log.info("calculated new tag", new_tag=new_tag, counter_reset=counter_reset)

    if config.dry_run:
        log.info("dry run, not creating tag", new_tag=new_tag)
        return result

    if repo.tag_commit(new_tag) is not None:
        # A "none" bump on a release branch lands on the existing base tag.
        log.warning("tag already exists, nothing to release", tag=new_tag)
        result.skipped = True
        result.new_tag = None
        _advance(result, Stage.DONE)
        return result

    repo.check_identity()

    bump_committed = False
    if config.bump_config_files:
        updated = update_version_files(repo, config, new_tag)
        if updated:
            result.updated_files = updated
            _advance(result, Stage.FILES_UPDATED, files=updated)
            commit_bump(repo, new_tag, updated)
            bump_committed = True
            _advance(result, Stage.BUMP_COMMITTED)

    repo.create_tag(new_tag, config.tag_message or new_tag)
    _advance(result, Stage.TAG_CREATED, tag=new_tag)
    log.info("created tag", tag=new_tag)

    if config.publish and publish(repo, branch, new_tag, bump_committed=bump_committed):
        _advance(result, Stage.PUBLISHED)

    _advance(result, Stage.DONE)
    log.info("done", tag=new_tag)
    return result
