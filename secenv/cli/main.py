"""CLI for secenv."""

import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from secenv import __version__
from secenv.core.manifest import DEFAULT_MANIFEST, ManifestError, ManifestLoader
from secenv.core.manifest.loader import write_example_manifest
from secenv.core.runtime import (
    ExecutionError,
    ProfileResolver,
    ResolutionError,
    build_environment,
    cleanup_files,
    materialize_files,
    run_command,
)
from secenv.core.secrets import Backends
from secenv.core.utils.logging import setup_logging

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _fail(error: Exception):
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="secenv")
@click.option(
    "--log-level",
    envvar="SECENV_LOG_LEVEL",
    default="WARNING",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Log level (logs go to stderr)",
)
@click.option(
    "--log-format",
    envvar="SECENV_LOG_FORMAT",
    default="standard",
    type=click.Choice(["standard", "json"]),
    help="Log format",
)
def cli(log_level: str, log_format: str):
    """secenv - resolve declarative secrets into a process environment."""
    setup_logging(level=log_level.upper(), format_style=log_format)


@cli.command()
@click.option(
    "--config", "-c", envvar="SECENV_CONFIG", default=DEFAULT_MANIFEST, help="Manifest file"
)
@click.option("--profile", "-p", envvar="SECENV_PROFILE", default="default", help="Profile to use")
@click.option("--force", is_flag=True, help="Overwrite existing files")
@click.option("--gpg", "gpg_binary", envvar="SECENV_GPG", default="gpg", help="gpg executable")
@click.option(
    "--gcloud", "gcloud_binary", envvar="SECENV_GCLOUD", default="gcloud", help="gcloud executable"
)
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
def unlock(
    config: str, profile: str, force: bool, gpg_binary: str, gcloud_binary: str, command
):
    """Resolve a profile, then run COMMAND with it (or print KEY=VALUE lines).

    Everything is resolved before anything is written: files are created
    only after every variable and file succeeded, and are removed again
    when COMMAND exits.

    Example: secenv unlock -p prod -- ./manage.py migrate
    """
    try:
        manifest = ManifestLoader().load(config)
        backends = Backends.create(gpg_binary=gpg_binary, gcloud_binary=gcloud_binary)
        resolved = ProfileResolver(backends=backends).resolve(manifest.profile(profile))
        written = materialize_files(resolved.files, force=force)
    except (ManifestError, ResolutionError, ExecutionError) as e:
        _fail(e)

    exit_code = 0
    try:
        if command:
            env = build_environment(resolved.env, resolved.keep)
            exit_code = run_command(list(command), env)
        else:
            for name, value in resolved.env.items():
                click.echo(f"{name}={value}")
    except ExecutionError as e:
        _fail(e)
    finally:
        cleanup_files(written)

    if exit_code:
        sys.exit(exit_code)


@cli.command()
@click.option(
    "--config", "-c", envvar="SECENV_CONFIG", default=DEFAULT_MANIFEST, help="Manifest file"
)
@click.option("--force", is_flag=True, help="Overwrite an existing manifest")
def init(config: str, force: bool):
    """Write an example manifest."""
    try:
        path = write_example_manifest(config, force=force)
    except ManifestError as e:
        _fail(e)
    click.echo(f"✓ Created {path}")


@cli.command()
@click.option("--gpg", "gpg_binary", envvar="SECENV_GPG", default="gpg", help="gpg executable")
@click.option(
    "--gcloud", "gcloud_binary", envvar="SECENV_GCLOUD", default="gcloud", help="gcloud executable"
)
def health(gpg_binary: str, gcloud_binary: str):
    """Check that the external backend tools are reachable."""
    backends = Backends.create(gpg_binary=gpg_binary, gcloud_binary=gcloud_binary)
    results = backends.health_check()

    for name, healthy in results.items():
        if healthy:
            click.echo(f"✓ {name} available")
        else:
            click.echo(f"✗ {name} not found")

    if not all(results.values()):
        sys.exit(1)


def main():
    load_dotenv(Path.cwd() / ".env")
    cli()


if __name__ == "__main__":
    main()
