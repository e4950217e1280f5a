"""Manifest / binary version compatibility."""

import logging

import semver

from secenv import __version__
from secenv.core.manifest.exceptions import VersionMismatchError

logger = logging.getLogger(__name__)

DEVELOPMENT_VERSION = "0.0.0"


def check_version(config_version, cli_version: str = __version__) -> None:
    """
    Check that a manifest written for `config_version` can be used.

    Rules:
        - major versions must match
        - a newer minor version only logs a warning
        - otherwise the manifest must not be newer than the binary
        - development builds (0.0.0) accept everything

    Raises:
        VersionMismatchError: If the versions are incompatible
    """
    if cli_version == DEVELOPMENT_VERSION:
        logger.debug("Development build, skipping manifest version check")
        return

    try:
        cli = semver.Version.parse(cli_version)
    except (TypeError, ValueError) as e:
        raise VersionMismatchError(f"Failed to parse CLI version '{cli_version}': {e}") from e

    try:
        config = semver.Version.parse(str(config_version), optional_minor_and_patch=True)
    except (TypeError, ValueError) as e:
        raise VersionMismatchError(
            f"Invalid version format in config: '{config_version}'"
        ) from e

    if config.major != cli.major:
        raise VersionMismatchError(
            f"Config version {config} is incompatible with CLI version {cli}. "
            "Major version mismatch."
        )

    if config.minor > cli.minor:
        logger.warning(
            f"Config version {config} has newer minor version than CLI version {cli}. "
            "Some features may not work."
        )
        return

    if config > cli:
        raise VersionMismatchError(
            f"Config version {config} is newer than CLI version {cli}. Please upgrade the CLI."
        )
