"""Credential strategies for talking to the remote.

git itself performs authentication; a strategy only decides which extra
``-c`` options and environment variables accompany fetch and push, and
which remediation hint to show when the remote rejects us.
"""

from __future__ import annotations

import base64
import re
import shlex
from pathlib import Path

# stderr fragments git prints when the remote refuses our credentials.
_AUTH_FAILURE_RE = re.compile(
    r"permission denied \(publickey|authentication failed|could not read username"
    r"|could not read password|terminal prompts disabled|invalid username or password"
    r"|host key verification failed|http basic: access denied|\b403\b",
    re.IGNORECASE,
)


def is_auth_failure(stderr: str) -> bool:
    """True when git's stderr describes a rejected login rather than a network error."""
    return bool(_AUTH_FAILURE_RE.search(stderr))


class CredentialStrategy:
    """Extra git options and environment used for fetch and push."""

    name = "base"

    def git_options(self) -> list[str]:
        """Arguments placed before the git subcommand (``-c key=value``)."""
        return []

    def env(self) -> dict[str, str]:
        # Never block on an interactive username/password prompt.
        return {"GIT_TERMINAL_PROMPT": "0"}

    def hint(self) -> str:
        raise NotImplementedError


class DefaultCredentials(CredentialStrategy):
    """Rely on the user's own git/ssh configuration."""

    name = "default"

    def hint(self) -> str:
        return (
            "For SSH remotes, make sure your key is loaded in ssh-agent "
            "(ssh-add -l). For HTTPS remotes, configure a git credential helper "
            "or pass a personal access token with --auth token."
        )


class SshKeyCredentials(CredentialStrategy):
    """Authenticate SSH remotes with a specific private key."""

    name = "ssh"

    def __init__(self, key_path: Path | str = "~/.ssh/id_rsa") -> None:
        self.key_path = Path(key_path).expanduser()

    def env(self) -> dict[str, str]:
        command = f"ssh -i {shlex.quote(str(self.key_path))} -o IdentitiesOnly=yes"
        return {**super().env(), "GIT_SSH_COMMAND": command}

    def hint(self) -> str:
        return (
            f"SSH authentication with {self.key_path} was rejected. Check that the "
            "key exists, is readable, and its public half is registered with the "
            "remote host (ssh -T git@<host>), or point --ssh-key at another key."
        )


class CredentialHelperCredentials(CredentialStrategy):
    """Authenticate HTTPS remotes through a git credential helper."""

    name = "helper"

    def __init__(self, helper: str = "store") -> None:
        self.helper = helper

    def git_options(self) -> list[str]:
        return ["-c", f"credential.helper={self.helper}"]

    def hint(self) -> str:
        return (
            f"The credential helper {self.helper!r} did not provide valid "
            "credentials. Run 'git credential fill' to check what it returns, or "
            "store a personal access token in it."
        )


class TokenCredentials(CredentialStrategy):
    """Authenticate HTTPS remotes with a personal access token."""

    name = "token"

    def __init__(self, token: str, username: str = "x-access-token") -> None:
        self.token = token
        self.username = username

    def git_options(self) -> list[str]:
        raw = f"{self.username}:{self.token}".encode()
        header = f"Authorization: Basic {base64.b64encode(raw).decode()}"
        return ["-c", f"http.extraHeader={header}"]

    def hint(self) -> str:
        return (
            "The remote rejected the access token. Check that it has not expired "
            "and has permission to push tags (AUTOTAG_TOKEN / --token)."
        )

    def __repr__(self) -> str:
        return f"TokenCredentials(username={self.username!r}, token=***)"


def resolve_credentials(
    kind: str,
    *,
    ssh_key: Path | str | None = None,
    helper: str | None = None,
    token: str | None = None,
) -> CredentialStrategy:
    """Build a credential strategy from CLI-style settings.

    Raises:
        ValueError: If the strategy is unknown or a token strategy has no token.
    """
    if kind == "default":
        return DefaultCredentials()
    if kind == "ssh":
        return SshKeyCredentials(ssh_key) if ssh_key else SshKeyCredentials()
    if kind == "helper":
        return CredentialHelperCredentials(helper) if helper else CredentialHelperCredentials()
    if kind == "token":
        if not token:
            raise ValueError("--auth token requires --token or AUTOTAG_TOKEN")
        return TokenCredentials(token)
    raise ValueError(f"Unknown credential strategy: {kind}")
