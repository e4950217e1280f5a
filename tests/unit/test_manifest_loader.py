"""Tests for manifest loading and version checks."""

import logging

import pytest
import yaml

from secenv.core.manifest.exceptions import (
    ConfigDecodeError,
    ManifestError,
    ManifestNotFoundError,
    ManifestParseError,
    ProfileNotFoundError,
    VersionMismatchError,
)
from secenv.core.manifest.loader import EXAMPLE_MANIFEST, ManifestLoader, write_example_manifest
from secenv.core.manifest.models import (
    Base64Value,
    FileAllocation,
    LiteralValue,
    PgpSecret,
    PlainContent,
    SecureContent,
)
from secenv.core.manifest.version import check_version

MANIFEST = """
version: "1.0.0"
profiles:
  default:
    env:
      keep: ["^PATH$", "^LC_"]
      vars:
        APP_NAME:
          plain:
            literal: myapp
        TOKEN:
          secure:
            secret:
              pgp:
                file: /keys/app.asc
            value:
              base64: LS0tLS0=
    files:
      /tmp/app.conf:
        plain:
          literal: "debug = true"
  staging:
    env:
      vars:
        PORT:
          plain:
            literal: 8080
"""


class TestManifestLoader:
    """Tests for ManifestLoader."""

    def test_load_manifest(self, tmp_path):
        """Should decode profiles, variables and files."""
        # Arrange
        path = tmp_path / "secenv.yaml"
        path.write_text(MANIFEST)
        loader = ManifestLoader(cli_version="1.0.0")

        # Act
        manifest = loader.load(path)

        # Assert
        profile = manifest.profile("default")
        assert manifest.version == "1.0.0"
        assert profile.env.keep == ["^PATH$", "^LC_"]
        assert profile.env.vars["APP_NAME"] == PlainContent(LiteralValue("myapp"))
        assert profile.env.vars["TOKEN"] == SecureContent(
            secret=PgpSecret(FileAllocation("/keys/app.asc")),
            value=Base64Value("LS0tLS0="),
        )
        assert profile.files["/tmp/app.conf"] == PlainContent(LiteralValue("debug = true"))

    def test_variables_keep_manifest_order(self, tmp_path):
        """Should keep variables in the order they are written."""
        # Arrange
        path = tmp_path / "secenv.yaml"
        path.write_text(MANIFEST)

        # Act
        manifest = ManifestLoader(cli_version="1.0.0").load(path)

        # Assert
        assert list(manifest.profile("default").env.vars) == ["APP_NAME", "TOKEN"]

    def test_numbers_become_text(self, tmp_path):
        """Should coerce unquoted numbers to text."""
        # Arrange
        path = tmp_path / "secenv.yaml"
        path.write_text(MANIFEST)

        # Act
        manifest = ManifestLoader(cli_version="1.0.0").load(path)

        # Assert
        assert manifest.profile("staging").env.vars["PORT"] == PlainContent(LiteralValue("8080"))
        assert manifest.profile("staging").env.keep is None

    def test_unquoted_version(self, tmp_path):
        """Should accept a version YAML parses as a number."""
        # Arrange
        path = tmp_path / "secenv.yaml"
        path.write_text("version: 1.0\nprofiles: {}\n")

        # Act
        manifest = ManifestLoader(cli_version="1.0.0").load(path)

        # Assert
        assert manifest.version == "1.0"

    def test_missing_file(self, tmp_path):
        """Should raise ManifestNotFoundError."""
        loader = ManifestLoader()

        with pytest.raises(ManifestNotFoundError):
            loader.load(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Should raise ManifestParseError on bad YAML."""
        path = tmp_path / "secenv.yaml"
        path.write_text("version: [unclosed")

        with pytest.raises(ManifestParseError):
            ManifestLoader().load(path)

    def test_root_must_be_map(self, tmp_path):
        """Should reject a manifest that isn't a map."""
        path = tmp_path / "secenv.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigDecodeError, match="manifest must be a map"):
            ManifestLoader().load(path)

    def test_missing_version(self, tmp_path):
        """Should require a version field."""
        path = tmp_path / "secenv.yaml"
        path.write_text("profiles: {}\n")

        with pytest.raises(ConfigDecodeError, match="missing field `version`"):
            ManifestLoader().load(path)

    def test_major_mismatch_fails_before_decoding(self, tmp_path):
        """Should reject a newer major version even if profiles are undecodable."""
        # Arrange
        path = tmp_path / "secenv.yaml"
        path.write_text(
            "version: 2.0.0\nprofiles:\n  default:\n    env:\n      vars:\n"
            "        X:\n          aws: {}\n"
        )

        # Act / Assert
        with pytest.raises(VersionMismatchError, match="Major version mismatch"):
            ManifestLoader(cli_version="1.0.0").load(path)

    def test_decode_error_names_file_and_node(self, tmp_path):
        """Should report the manifest path and the offending node."""
        # Arrange
        path = tmp_path / "secenv.yaml"
        path.write_text(
            "version: 1.0.0\nprofiles:\n  default:\n    env:\n      vars:\n"
            "        X:\n          encrypted: {}\n"
        )

        # Act
        with pytest.raises(ConfigDecodeError) as exc_info:
            ManifestLoader(cli_version="1.0.0").load(path)

        # Assert
        message = str(exc_info.value)
        assert str(path) in message
        assert "profiles.default.env.vars.X" in message
        assert "unknown variant `encrypted`, expected one of `plain`, `secure`" in message

    def test_invalid_keep_pattern(self, tmp_path):
        """Should reject keep patterns that aren't valid regexes."""
        path = tmp_path / "secenv.yaml"
        path.write_text("version: 1.0.0\nprofiles:\n  default:\n    env:\n      keep: ['(']\n")

        with pytest.raises(ConfigDecodeError, match="profiles.default.env.keep"):
            ManifestLoader(cli_version="1.0.0").load(path)

    def test_profile_not_found_lists_available(self, tmp_path):
        """Should list the available profiles."""
        # Arrange
        path = tmp_path / "secenv.yaml"
        path.write_text(MANIFEST)
        manifest = ManifestLoader(cli_version="1.0.0").load(path)

        # Act / Assert
        with pytest.raises(ProfileNotFoundError, match="Available: default, staging"):
            manifest.profile("prod")

    def test_empty_profile(self, tmp_path):
        """Should treat a profile without env or files as empty."""
        # Arrange
        path = tmp_path / "secenv.yaml"
        path.write_text("version: 1.0.0\nprofiles:\n  empty:\n")

        # Act
        profile = ManifestLoader(cli_version="1.0.0").load(path).profile("empty")

        # Assert
        assert profile.env.vars == {}
        assert profile.files == {}


class TestExampleManifest:
    """Tests for the init template."""

    def test_example_manifest_loads(self, tmp_path):
        """Should write a template that loads with the current version."""
        # Arrange
        path = tmp_path / "secenv.yaml"

        # Act
        write_example_manifest(path)
        manifest = ManifestLoader().load(path)

        # Assert
        assert manifest.profile("default").env.vars["APP_NAME"] == PlainContent(
            LiteralValue("myapp")
        )

    def test_example_is_valid_yaml(self):
        """Should be plain YAML with a version field."""
        assert "version" in yaml.safe_load(EXAMPLE_MANIFEST)

    def test_refuses_to_overwrite(self, tmp_path):
        """Should not overwrite an existing file without force."""
        # Arrange
        path = tmp_path / "secenv.yaml"
        path.write_text("mine")

        # Act / Assert
        with pytest.raises(ManifestError, match="already exists"):
            write_example_manifest(path)
        assert path.read_text() == "mine"

    def test_force_overwrites(self, tmp_path):
        """Should overwrite with force."""
        path = tmp_path / "secenv.yaml"
        path.write_text("mine")

        write_example_manifest(path, force=True)

        assert path.read_text() == EXAMPLE_MANIFEST


class TestCheckVersion:
    """Tests for manifest / binary version compatibility."""

    @pytest.mark.parametrize("config_version", ["1.0.0", "1.2.3", "1.2", "1", "1.0.0-rc.1"])
    def test_compatible_versions(self, config_version):
        """Should accept same-major versions not newer than the binary."""
        check_version(config_version, "1.2.3")

    @pytest.mark.parametrize("config_version", ["2.0.0", "0.9.0", "2"])
    def test_major_mismatch(self, config_version):
        """Should reject a different major version."""
        with pytest.raises(VersionMismatchError, match="Major version mismatch"):
            check_version(config_version, "1.2.3")

    def test_newer_minor_only_warns(self, caplog):
        """Should log a warning for a newer minor version."""
        # Act
        with caplog.at_level(logging.WARNING):
            check_version("1.3.0", "1.2.3")

        # Assert
        assert "newer minor version" in caplog.text

    def test_newer_patch_is_rejected(self):
        """Should ask for an upgrade when only the patch is newer."""
        with pytest.raises(VersionMismatchError, match="Please upgrade"):
            check_version("1.2.4", "1.2.3")

    def test_invalid_config_version(self):
        """Should reject an unparsable version."""
        with pytest.raises(VersionMismatchError, match="Invalid version format"):
            check_version("one.two", "1.2.3")

    def test_numeric_config_version(self):
        """Should accept a version YAML parsed as a float."""
        check_version(1.2, "1.2.3")

    def test_development_build_skips_check(self):
        """Should accept anything on a 0.0.0 build."""
        check_version("9.9.9", "0.0.0")
