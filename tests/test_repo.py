"""Tests for autotag.repo."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from conftest import requires_git, run_git

from autotag.auth import CredentialHelperCredentials, DefaultCredentials
from autotag.errors import (
    AuthenticationError,
    PreconditionError,
    PublishError,
    VersionControlError,
)
from autotag.repo import GitRepository
from autotag.shell import GitCommandError


def fake_git(
    *, remote: str = "git@example.com:demo.git", fail: dict[str, str] | None = None
) -> Callable[..., str]:
    """Build a stand-in for autotag.repo.git.

    ``fail`` maps a subcommand (e.g. "push") to the stderr it should fail with.
    """
    fail = fail or {}

    def _git(*args: str, cwd: Any = None, env: Any = None, check: bool = True) -> str:
        for subcommand, stderr in fail.items():
            if subcommand in args:
                raise GitCommandError(args, 128, stderr)
        if args[:2] == ("rev-parse", "--show-toplevel"):
            return "/work/demo"
        if args[:2] == ("remote", "get-url"):
            return remote
        return ""

    return _git


class TestRemoteOperations:
    """Fetch and push error mapping, with git mocked out."""

    @patch("autotag.repo.git")
    def test_default_credentials(self, mock_git: Any) -> None:
        mock_git.side_effect = fake_git()
        assert type(GitRepository("/work/demo").credentials) is DefaultCredentials

    @patch("autotag.repo.git")
    def test_fetch_without_remote(self, mock_git: Any) -> None:
        mock_git.side_effect = fake_git(remote="")
        repo = GitRepository("/work/demo")
        assert repo.fetch_tags() is False
        assert not any("fetch" in c.args for c in mock_git.call_args_list)

    @patch("autotag.repo.git")
    def test_fetch_network_failure_is_not_fatal(self, mock_git: Any) -> None:
        mock_git.side_effect = fake_git(
            fail={"fetch": "fatal: unable to access: Could not resolve host"}
        )
        assert GitRepository("/work/demo").fetch_tags() is False

    @patch("autotag.repo.git")
    def test_fetch_auth_failure_raises(self, mock_git: Any) -> None:
        mock_git.side_effect = fake_git(
            fail={"fetch": "git@example.com: Permission denied (publickey)."}
        )
        with pytest.raises(AuthenticationError) as exc_info:
            GitRepository("/work/demo").fetch_tags()
        assert "ssh-agent" in (exc_info.value.hint or "")

    @patch("autotag.repo.git")
    def test_fetch_uses_credentials(self, mock_git: Any) -> None:
        mock_git.side_effect = fake_git()
        repo = GitRepository("/work/demo", credentials=CredentialHelperCredentials())
        assert repo.fetch_tags() is True

        fetch_call = next(c for c in mock_git.call_args_list if "fetch" in c.args)
        assert fetch_call.args == (
            "-c",
            "credential.helper=store",
            "fetch",
            "origin",
            "refs/tags/*:refs/tags/*",
        )
        assert fetch_call.kwargs["env"] == {"GIT_TERMINAL_PROMPT": "0"}

    @patch("autotag.repo.git")
    def test_push_failure_is_publish_error(self, mock_git: Any) -> None:
        mock_git.side_effect = fake_git(fail={"push": "! [rejected] (fetch first)"})
        with pytest.raises(PublishError) as exc_info:
            GitRepository("/work/demo").push("refs/tags/v1.0.0")
        assert "Retry with: git push origin refs/tags/v1.0.0" in (exc_info.value.hint or "")
        assert exc_info.value.exit_code == 5

    @patch("autotag.repo.git")
    def test_push_auth_failure(self, mock_git: Any) -> None:
        mock_git.side_effect = fake_git(
            fail={"push": "fatal: Authentication failed for 'https://example.com/'"}
        )
        with pytest.raises(AuthenticationError):
            GitRepository("/work/demo").push("refs/tags/v1.0.0")

    @patch("autotag.repo.git")
    def test_push_without_remote(self, mock_git: Any) -> None:
        mock_git.side_effect = fake_git(remote="")
        assert GitRepository("/work/demo").push("refs/tags/v1.0.0") is False

    @patch("autotag.repo.git")
    def test_missing_identity(self, mock_git: Any) -> None:
        mock_git.side_effect = fake_git()
        with pytest.raises(PreconditionError, match="user.name"):
            GitRepository("/work/demo").check_identity()


@requires_git
class TestGitRepository:
    """Tests against a real repository."""

    def test_not_a_repository(self, tmp_path: Path) -> None:
        with pytest.raises(VersionControlError, match="Not a git repository"):
            GitRepository(tmp_path / "missing")

    def test_discovers_root_from_subdirectory(
        self, git_repo: Path, commit: Callable[[str], str]
    ) -> None:
        commit("feat: initial")
        sub = git_repo / "src" / "pkg"
        sub.mkdir(parents=True)
        assert GitRepository(sub).root.resolve() == git_repo.resolve()

    def test_head_commit_missing(self, git_repo: Path) -> None:
        with pytest.raises(VersionControlError, match="no HEAD commit"):
            GitRepository(git_repo).head_commit()

    def test_branch_and_head(self, git_repo: Path, commit: Callable[[str], str]) -> None:
        sha = commit("feat: initial")
        repo = GitRepository(git_repo)
        assert repo.current_branch() == "main"
        assert repo.head_commit() == sha

    def test_tags(
        self,
        git_repo: Path,
        commit: Callable[[str], str],
        make_tag: Callable[[str], None],
    ) -> None:
        sha = commit("feat: initial")
        make_tag("v1.0.0")
        repo = GitRepository(git_repo)
        assert repo.tag_names() == ["v1.0.0"]
        assert repo.tag_commit("v1.0.0") == sha
        assert repo.tag_commit("v9.9.9") is None

    def test_commit_log_since_tag(
        self,
        git_repo: Path,
        commit: Callable[[str], str],
        make_tag: Callable[[str], None],
    ) -> None:
        base = commit("feat: initial")
        make_tag("v1.0.0")
        commit("fix: a")
        commit("docs: b\n\nlonger body")
        repo = GitRepository(git_repo)

        window = repo.commit_log(base)
        assert window.splitlines() == ["docs: b", "", "longer body", "fix: a"]
        assert "feat: initial" in repo.commit_log(None)

    def test_commit_log_empty(self, git_repo: Path, commit: Callable[[str], str]) -> None:
        head = commit("feat: initial")
        assert GitRepository(git_repo).commit_log(head) == ""

    def test_staged_changes(self, git_repo: Path, commit: Callable[[str], str]) -> None:
        repo = GitRepository(git_repo)
        (git_repo / "a.txt").write_text("a\n")
        run_git(git_repo, "add", "a.txt")
        assert repo.has_staged_changes() is True

        commit("feat: add a")
        assert repo.has_staged_changes() is False

        (git_repo / "a.txt").write_text("changed\n")
        assert repo.has_staged_changes() is False

    def test_commit_files_only_commits_given_paths(
        self, git_repo: Path, commit: Callable[[str], str]
    ) -> None:
        (git_repo / "VERSION").write_text("1.0.0\n")
        (git_repo / "other.txt").write_text("x\n")
        run_git(git_repo, "add", "VERSION", "other.txt")
        commit("feat: initial")

        (git_repo / "VERSION").write_text("1.1.0\n")
        (git_repo / "other.txt").write_text("dirty\n")
        repo = GitRepository(git_repo)
        sha = repo.commit_files(["VERSION"], "chore: bump version to 1.1.0")

        assert sha == run_git(git_repo, "rev-parse", "HEAD")
        assert run_git(git_repo, "show", "--name-only", "--format=%s", "HEAD").splitlines() == [
            "chore: bump version to 1.1.0",
            "",
            "VERSION",
        ]
        assert "other.txt" in run_git(git_repo, "status", "--porcelain")

    def test_create_annotated_tag(self, git_repo: Path, commit: Callable[[str], str]) -> None:
        commit("feat: initial")
        GitRepository(git_repo).create_tag("v0.1.0", "release notes")
        assert run_git(git_repo, "cat-file", "-t", "v0.1.0") == "tag"
        assert run_git(git_repo, "tag", "-l", "--format=%(contents:subject)", "v0.1.0") == (
            "release notes"
        )

    def test_create_duplicate_tag_fails(
        self,
        git_repo: Path,
        commit: Callable[[str], str],
        make_tag: Callable[[str], None],
    ) -> None:
        commit("feat: initial")
        make_tag("v0.1.0")
        with pytest.raises(VersionControlError, match="Failed to create tag v0.1.0"):
            GitRepository(git_repo).create_tag("v0.1.0", "again")

    def test_no_remote(self, git_repo: Path, commit: Callable[[str], str]) -> None:
        commit("feat: initial")
        repo = GitRepository(git_repo)
        assert repo.has_remote() is False
        assert repo.fetch_tags() is False
        assert repo.push("refs/tags/v0.1.0") is False

    def test_fetch_and_push_with_local_remote(
        self,
        tmp_path: Path,
        git_repo: Path,
        commit: Callable[[str], str],
        make_tag: Callable[[str], None],
    ) -> None:
        remote = tmp_path / "remote.git"
        run_git(tmp_path, "init", "-q", "--bare", str(remote))
        run_git(git_repo, "remote", "add", "origin", str(remote))
        commit("feat: initial")
        make_tag("v0.1.0")

        repo = GitRepository(git_repo)
        assert repo.push("refs/heads/main") is True
        assert repo.push("refs/tags/v0.1.0") is True
        assert run_git(remote, "tag", "--list") == "v0.1.0"

        run_git(git_repo, "tag", "-d", "v0.1.0")
        assert repo.fetch_tags() is True
        assert repo.tag_names() == ["v0.1.0"]
