"""Shared test fixtures."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def run_git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """An empty git repository on branch 'main' with a test identity."""
    repo = tmp_path / "repo"
    repo.mkdir()
    run_git(repo, "init", "-q")
    run_git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(repo, "config", "user.name", "Test User")
    run_git(repo, "config", "user.email", "test@example.com")
    run_git(repo, "config", "commit.gpgsign", "false")
    run_git(repo, "config", "tag.gpgsign", "false")
    return repo


@pytest.fixture
def commit(git_repo: Path) -> Callable[[str], str]:
    """Create an empty commit with a message; returns its id."""

    def _commit(message: str) -> str:
        run_git(git_repo, "commit", "-q", "--allow-empty", "-m", message)
        return run_git(git_repo, "rev-parse", "HEAD")

    return _commit


@pytest.fixture
def make_tag(git_repo: Path) -> Callable[[str], None]:
    """Create an annotated tag on HEAD."""

    def _tag(name: str) -> None:
        run_git(git_repo, "tag", "-a", name, "-m", name)

    return _tag


@pytest.fixture
def cargo_toml(tmp_path: Path) -> Path:
    """A Cargo.toml with a package version and an unrelated rust-version pin."""
    content = """\
[package]
name = "demo"
version = "1.0.0"
edition = "2021"
rust-version = "1.70.0"

[dependencies.serde]
version = "1.0.188"
"""
    path = tmp_path / "Cargo.toml"
    path.write_text(content)
    return path
