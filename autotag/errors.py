"""Error hierarchy for autotag.

Every error carries a human-readable message, an optional hint with a
suggested fix, and the process exit code the CLI should use for it.

Categories::

    ConfigurationError   bad regex, bad semver, bad version-file rule
    PreconditionError    staged changes, missing git identity
    VersionControlError  repository / HEAD / commit / tag failures
    RemoteError          fetch or push failures
    AuthenticationError  remote rejected the credentials
    PublishError         push failed after the local tag/commit exists

"No new commits since the last tag" is not an error: it is a successful
no-op reported through TagResult.
"""

from __future__ import annotations


class AutotagError(Exception):
    """Base class for all autotag errors."""

    exit_code = 1

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        if not self.hint:
            return self.message
        return f"{self.message}\nHint: {self.hint}"

    def to_dict(self) -> dict[str, str | None]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "hint": self.hint,
        }


class ConfigurationError(AutotagError):
    """Invalid configuration: aborts before any repository mutation."""

    exit_code = 2


class PreconditionError(AutotagError):
    """The working copy is not in a state that allows tagging."""

    exit_code = 3


class VersionControlError(AutotagError):
    """A local git operation failed.

    Args:
        message: What autotag was trying to do.
        stderr: git's own diagnostic output, if any.
        hint: Optional suggested fix.
    """

    exit_code = 4

    def __init__(
        self, message: str, *, stderr: str = "", hint: str | None = None
    ) -> None:
        self.stderr = stderr
        if stderr:
            message = f"{message}: {stderr}"
        super().__init__(message, hint=hint)


class RemoteError(VersionControlError):
    """A fetch or push against the remote failed."""

    exit_code = 5


class AuthenticationError(RemoteError):
    """The remote rejected our credentials."""

    exit_code = 6


class PublishError(RemoteError):
    """Pushing failed after the local tag or bump commit was created.

    The local state is kept; the recovery path is to retry the push.
    """
