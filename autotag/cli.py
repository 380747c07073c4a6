"""CLI entry point for autotag."""

from __future__ import annotations

import json
from typing import Any

import click
from click.core import ParameterSource

from autotag.auth import resolve_credentials
from autotag.config import load_config
from autotag.errors import AutotagError, ConfigurationError
from autotag.logging import configure_logging
from autotag.models import BumpLevel, TagResult
from autotag.pipeline import run_tag
from autotag.repo import GitRepository

# CLI option name → (config field, conversion)
_CONFIG_OPTIONS: dict[str, tuple[str, Any]] = {
    "default_bump": ("default_bump", lambda v: v),
    "not_with_v": ("with_v", lambda v: not v),
    "release_branches": ("release_branches", lambda v: v),
    "dry_run": ("dry_run", lambda v: v),
    "initial_version": ("initial_version", lambda v: v),
    "prerelease": ("prerelease", lambda v: v),
    "prerelease_suffix": ("prerelease_suffix", lambda v: v),
    "none_string_token": ("none_token", lambda v: v),
    "force_without_change": ("force_without_change", lambda v: v),
    "tag_message": ("tag_message", lambda v: v),
    "not_publish": ("publish", lambda v: not v),
    "bump_files": ("bump_config_files", lambda v: v),
}


class TagCommandError(click.ClickException):
    """Carries an AutotagError's message and exit code through click."""

    def __init__(self, error: AutotagError) -> None:
        super().__init__(str(error))
        self.exit_code = error.exit_code


def _explicit_overrides(ctx: click.Context, params: dict[str, Any]) -> dict[str, Any]:
    """Config values for options the user actually passed on the command line."""
    overrides: dict[str, Any] = {}
    for name, (field, convert) in _CONFIG_OPTIONS.items():
        if ctx.get_parameter_source(name) in (
            ParameterSource.COMMANDLINE,
            ParameterSource.ENVIRONMENT,
        ):
            overrides[field] = convert(params[name])
    return overrides


def _render(result: TagResult, output: str) -> None:
    if output == "json":
        click.echo(json.dumps(result.model_dump(mode="json")))
    elif result.new_tag:
        click.echo(result.new_tag)
    else:
        click.echo(f"No new tag; latest is {result.old_tag}", err=True)


@click.group()
@click.version_option(package_name="autotag")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option("--json-log", is_flag=True, help="Emit log events as JSON lines.")
def cli(verbose: bool, quiet: bool, json_log: bool) -> None:
    """Semantic release tagging from conventional commits."""
    configure_logging(verbose=verbose, quiet=quiet, json_log=json_log)


@cli.command()
@click.option(
    "--default-bump",
    type=click.Choice([b.value for b in BumpLevel if b is not BumpLevel.NONE]),
    default="minor",
    show_default=True,
    help="Bump used when no commit matches a bump pattern.",
)
@click.option("--not-with-v", is_flag=True, help="Create tags without the 'v' prefix.")
@click.option(
    "--release-branches",
    default="master,main",
    show_default=True,
    help="Comma-separated release branches; a trailing '*' matches a prefix.",
)
@click.option(
    "--source",
    type=click.Path(file_okay=False),
    default=".",
    show_default=True,
    help="Repository directory.",
)
@click.option("--dry-run", is_flag=True, help="Compute the tag without creating it.")
@click.option(
    "--initial-version",
    default="0.0.0",
    show_default=True,
    help="Version assumed when no release tag exists.",
)
@click.option("--prerelease", is_flag=True, help="Always create a pre-release tag.")
@click.option(
    "--prerelease-suffix",
    default="beta",
    show_default=True,
    help="Pre-release identifier, e.g. beta → v1.2.0-beta.0.",
)
@click.option(
    "--none-string-token",
    default="#none",
    show_default=True,
    help="Commit text that requests no version bump.",
)
@click.option(
    "--force-without-change",
    is_flag=True,
    help="Tag even when HEAD is already the latest tag.",
)
@click.option("--tag-message", default="", help="Annotated tag message (default: tag name).")
@click.option("--not-publish", is_flag=True, help="Do not push the tag or bump commit.")
@click.option(
    "--bump-files",
    "bump_files",
    is_flag=True,
    help="Rewrite the version in known manifest files and commit them.",
)
@click.option(
    "--output",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Print the bare tag or a JSON record.",
)
@click.option(
    "--auth",
    type=click.Choice(["default", "ssh", "helper", "token"]),
    default="default",
    show_default=True,
    help="How to authenticate against the remote.",
)
@click.option("--ssh-key", type=click.Path(dir_okay=False), help="Private key for --auth ssh.")
@click.option("--credential-helper", help="Credential helper for --auth helper.")
@click.option("--token", envvar="AUTOTAG_TOKEN", help="Access token for --auth token.")
@click.pass_context
def tag(ctx: click.Context, **params: Any) -> None:
    """Compute the next semantic version tag and create it."""
    output = params["output"]
    try:
        try:
            credentials = resolve_credentials(
                params["auth"],
                ssh_key=params["ssh_key"],
                helper=params["credential_helper"],
                token=params["token"],
            )
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        config = load_config(params["source"], _explicit_overrides(ctx, params))
        repo = GitRepository(
            config.source, remote=config.remote, credentials=credentials
        )
        result = run_tag(config, repo)
    except AutotagError as exc:
        if output == "json":
            click.echo(json.dumps({"ok": False, "error": exc.to_dict()}))
            ctx.exit(exc.exit_code)
        raise TagCommandError(exc) from exc

    _render(result, output)


def main() -> None:
    cli()
