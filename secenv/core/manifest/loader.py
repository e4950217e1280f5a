"""Manifest loader - reads, version-checks and decodes a manifest file."""

import logging
from pathlib import Path
from typing import Union

import yaml

from secenv import __version__
from secenv.core.manifest.exceptions import (
    ConfigDecodeError,
    ManifestError,
    ManifestNotFoundError,
    ManifestParseError,
)
from secenv.core.manifest.manifest import Manifest
from secenv.core.manifest.version import check_version

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST = "secenv.yaml"

EXAMPLE_MANIFEST = f"""\
version: "{__version__}"

profiles:
  default:
    env:
      # keep: ["^PATH$", "^LC_.*"]  # Uncomment to only preserve matching host env vars
      vars:
        # Example: plain literal value
        APP_NAME:
          plain:
            literal: myapp

        # Example: plain base64-encoded value ("localhost")
        # DB_HOST:
        #   plain:
        #     base64: bG9jYWxob3N0

        # Example: secure value using a PGP key from a file
        # SECRET_TOKEN:
        #   secure:
        #     secret:
        #       pgp:
        #         file: /path/to/private.asc
        #     value:
        #       literal: |
        #         -----BEGIN PGP MESSAGE-----
        #         ...

        # Example: secure value using a PGP key stored in GCP Secret Manager
        # API_KEY:
        #   secure:
        #     secret:
        #       pgp:
        #         gcp:
        #           secret: projects/my-project/secrets/my-pgp-key
        #           # version: "3"  # optional, defaults to latest
        #     value:
        #       base64: <base64-encoded ASCII-armored message>

        # Example: secure value decrypted by the local GnuPG keyring
        # DB_PASSWORD:
        #   secure:
        #     secret:
        #       pgp:
        #         gpg:
        #           fingerprint: 0123456789ABCDEF0123456789ABCDEF01234567
        #     value:
        #       literal: |
        #         -----BEGIN PGP MESSAGE-----
        #         ...

    # files:
    #   /tmp/service-account.json:
    #     secure:
    #       secret:
    #         pgp:
    #           file: /path/to/private.asc
    #       value:
    #         literal: |
    #           -----BEGIN PGP MESSAGE-----
    #           ...
"""


class ManifestLoader:
    """
    Loads a YAML manifest.

    Load order:
        1. Parse YAML
        2. Check the manifest version against this binary
        3. Decode profiles into the value model

    Usage:
        loader = ManifestLoader()
        manifest = loader.load("secenv.yaml")
        profile = manifest.profile("default")
    """

    def __init__(self, cli_version: str = __version__):
        self.cli_version = cli_version

    def _load_yaml(self, path: Path) -> dict:
        """Load and parse a YAML file."""
        if not path.exists():
            raise ManifestNotFoundError(f"Manifest file not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                content = yaml.safe_load(f)
                logger.debug(f"Loaded manifest: {path}")
        except yaml.YAMLError as e:
            raise ManifestParseError(f"Invalid YAML in {path}: {e}")
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestParseError(f"Failed to read manifest {path}: {e}")

        if not isinstance(content, dict):
            raise ConfigDecodeError(
                f"manifest must be a map, found {type(content).__name__}", str(path)
            )
        return content

    def load(self, path: Union[str, Path] = DEFAULT_MANIFEST) -> Manifest:
        """
        Load a manifest file.

        Args:
            path: Manifest location

        Returns:
            Decoded manifest

        Raises:
            ManifestNotFoundError: If the file doesn't exist
            ManifestParseError: If the file is not valid YAML
            VersionMismatchError: If the manifest targets another major version
            ConfigDecodeError: If the manifest structure is invalid
        """
        path = Path(path)
        data = self._load_yaml(path)

        if data.get("version") is None:
            raise ConfigDecodeError("missing field `version`", str(path))

        # Before decoding: a newer manifest may use variants this binary doesn't know
        check_version(data["version"], self.cli_version)

        try:
            manifest = Manifest.from_dict(data)
        except ConfigDecodeError as e:
            raise ConfigDecodeError(f"Invalid manifest {path}: {e}") from e

        logger.info(f"Loaded manifest {path} with {len(manifest.profiles)} profile(s)")
        return manifest


def write_example_manifest(path: Union[str, Path], force: bool = False) -> Path:
    """
    Write a commented example manifest.

    Raises:
        ManifestError: If the file exists and `force` is not set
    """
    path = Path(path)
    if path.exists() and not force:
        raise ManifestError(f"Config file '{path}' already exists. Use --force to overwrite.")

    path.write_text(EXAMPLE_MANIFEST, encoding="utf-8")
    logger.info(f"Created example manifest: {path}")
    return path
