"""Git repository access for the tagger.

GitRepository wraps the git() helper with the operations the tagging run
needs and turns GitCommandError into autotag's error categories. Remote
operations go through a CredentialStrategy; a missing remote is reported
as "nothing to do" rather than an error.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .auth import CredentialStrategy, DefaultCredentials, is_auth_failure
from .errors import (
    AuthenticationError,
    PreconditionError,
    PublishError,
    VersionControlError,
)
from .logging import get_logger
from .shell import GitCommandError, git

log = get_logger(__name__)

_COMMIT_SEPARATOR = "\x00"


class GitRepository:
    """A local working copy, discovered from any path inside it."""

    def __init__(
        self,
        source: Path | str = ".",
        *,
        remote: str = "origin",
        credentials: CredentialStrategy | None = None,
    ) -> None:
        self.remote = remote
        self.credentials = credentials or DefaultCredentials()
        try:
            top = git("rev-parse", "--show-toplevel", cwd=source)
        except (GitCommandError, OSError) as exc:
            raise VersionControlError(
                f"Not a git repository: {source}",
                stderr=getattr(exc, "stderr", str(exc)),
            ) from exc
        self.root = Path(top)

    def _git(self, *args: str, check: bool = True) -> str:
        return git(*args, cwd=self.root, check=check)

    # Read-only queries

    def current_branch(self) -> str:
        """Short name of the checked-out branch ("HEAD" when detached)."""
        try:
            return self._git("rev-parse", "--abbrev-ref", "HEAD")
        except GitCommandError as exc:
            raise VersionControlError(
                "Failed to get current branch", stderr=exc.stderr
            ) from exc

    def head_commit(self) -> str:
        try:
            return self._git("rev-parse", "--verify", "HEAD^{commit}")
        except GitCommandError as exc:
            raise VersionControlError(
                "Repository has no HEAD commit",
                stderr=exc.stderr,
                hint="Create an initial commit before tagging.",
            ) from exc

    def tag_names(self) -> list[str]:
        out = self._git("tag", "--list")
        return out.splitlines() if out else []

    def tag_commit(self, tag: str) -> str | None:
        """Commit a tag points at, or None when no such tag exists."""
        out = self._git(
            "rev-parse", "--verify", "--quiet", f"refs/tags/{tag}^{{commit}}", check=False
        )
        return out or None

    def commit_log(self, since_commit: str | None) -> str:
        """Messages of commits reachable from HEAD but not from since_commit.

        Returns the whole history when since_commit is None, and an empty
        string when there are no such commits.
        """
        revision = f"{since_commit}..HEAD" if since_commit else "HEAD"
        try:
            out = self._git("log", "--format=%B%x00", revision)
        except GitCommandError as exc:
            raise VersionControlError("Failed to read commit log", stderr=exc.stderr) from exc
        messages = [m.strip() for m in out.split(_COMMIT_SEPARATOR)]
        return "\n".join(m for m in messages if m)

    def has_staged_changes(self) -> bool:
        """True when the index differs from HEAD (or holds files before the first commit)."""
        if self._git("rev-parse", "--verify", "--quiet", "HEAD", check=False):
            result = self._git("diff", "--cached", "--name-only")
        else:
            result = self._git("ls-files", "--cached")
        return bool(result)

    def check_identity(self) -> None:
        """Ensure commits and annotated tags can be signed with a user identity."""
        for key in ("user.name", "user.email"):
            if not self._git("config", "--get", key, check=False).strip():
                raise PreconditionError(
                    f"Git user configuration is missing: {key} is not set",
                    hint=(
                        "Run 'git config --global user.name \"Your Name\"' and "
                        "'git config --global user.email \"you@example.com\"'."
                    ),
                )

    def has_remote(self) -> bool:
        return bool(self._git("remote", "get-url", self.remote, check=False))

    # Local mutations

    def commit_files(self, paths: Sequence[str], message: str) -> str:
        """Stage exactly these paths, commit them, and return the new commit id."""
        try:
            self._git("add", "--", *paths)
            self._git("commit", "-m", message, "--", *paths)
        except GitCommandError as exc:
            raise VersionControlError("Failed to commit version bump", stderr=exc.stderr) from exc
        return self.head_commit()

    def create_tag(self, name: str, message: str) -> None:
        """Create an annotated tag on HEAD."""
        try:
            self._git("tag", "-a", name, "-m", message, "HEAD")
        except GitCommandError as exc:
            raise VersionControlError(f"Failed to create tag {name}", stderr=exc.stderr) from exc

    # Remote operations

    def _remote_git(self, *args: str) -> str:
        return git(
            *self.credentials.git_options(),
            *args,
            cwd=self.root,
            env=self.credentials.env(),
        )

    def fetch_tags(self) -> bool:
        """Fetch all tags from the remote.

        Returns:
            True if tags were fetched, False when there is no remote or the
            fetch failed for a reason other than authentication.

        Raises:
            AuthenticationError: If the remote rejected the credentials.
        """
        if not self.has_remote():
            log.debug("no remote configured, skipping tag fetch", remote=self.remote)
            return False
        try:
            self._remote_git("fetch", self.remote, "refs/tags/*:refs/tags/*")
        except GitCommandError as exc:
            if is_auth_failure(exc.stderr):
                raise AuthenticationError(
                    f"Authentication failed while fetching tags from {self.remote}",
                    stderr=exc.stderr,
                    hint=self.credentials.hint(),
                ) from exc
            log.warning("tag fetch failed, continuing with local tags", error=exc.stderr)
            return False
        return True

    def push(self, refspec: str) -> bool:
        """Push one refspec to the remote.

        Returns:
            True if pushed, False when there is no remote to push to.

        Raises:
            AuthenticationError: If the remote rejected the credentials.
            PublishError: For any other push failure.
        """
        if not self.has_remote():
            log.debug("no remote configured, skipping push", remote=self.remote, ref=refspec)
            return False
        retry = f"Retry with: git push {self.remote} {refspec}"
        try:
            self._remote_git("push", self.remote, refspec)
        except GitCommandError as exc:
            if is_auth_failure(exc.stderr):
                raise AuthenticationError(
                    f"Authentication failed while pushing {refspec}",
                    stderr=exc.stderr,
                    hint=f"{self.credentials.hint()} {retry}",
                ) from exc
            raise PublishError(
                f"Failed to push {refspec} to {self.remote}",
                stderr=exc.stderr,
                hint=f"The local ref already exists and was kept. {retry}",
            ) from exc
        return True
