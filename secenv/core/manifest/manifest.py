"""Manifest aggregate: version, profiles, variables and files."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from secenv import __version__
from secenv.core.manifest.codec import join_path
from secenv.core.manifest.exceptions import ConfigDecodeError, ProfileNotFoundError
from secenv.core.manifest.models import CONTENT, Content
from secenv.core.manifest.version import check_version


def _mapping(data: Any, path: str) -> dict:
    """Return `data` as a dict; a missing node counts as empty."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigDecodeError(f"expected a map, found {type(data).__name__}", path)
    return data


def _contents(data: Any, path: str) -> Dict[str, Content]:
    return {
        str(name): CONTENT.decode(node, join_path(path, str(name)))
        for name, node in _mapping(data, path).items()
    }


@dataclass(frozen=True)
class ManifestEnv:
    """Environment variables of a profile.

    `keep` lists regular expressions; when set, only host variables whose
    name matches one of them are passed on to the child process.
    """

    keep: Optional[List[str]] = None
    vars: Dict[str, Content] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any, path: str = "env") -> "ManifestEnv":
        data = _mapping(data, path)

        keep = data.get("keep")
        if keep is not None:
            keep_path = join_path(path, "keep")
            if not isinstance(keep, list):
                raise ConfigDecodeError(
                    f"expected a list of patterns, found {type(keep).__name__}", keep_path
                )
            keep = [str(pattern) for pattern in keep]
            for pattern in keep:
                try:
                    re.compile(pattern)
                except re.error as e:
                    raise ConfigDecodeError(f"invalid pattern '{pattern}': {e}", keep_path) from e

        return cls(keep=keep, vars=_contents(data.get("vars"), join_path(path, "vars")))


@dataclass(frozen=True)
class ManifestProfile:
    """A named set of variables and files resolved together."""

    files: Dict[str, Content] = field(default_factory=dict)
    env: ManifestEnv = field(default_factory=ManifestEnv)

    @classmethod
    def from_dict(cls, data: Any, path: str = "profile") -> "ManifestProfile":
        data = _mapping(data, path)
        return cls(
            files=_contents(data.get("files"), join_path(path, "files")),
            env=ManifestEnv.from_dict(data.get("env"), join_path(path, "env")),
        )


@dataclass(frozen=True)
class Manifest:
    """Top-level manifest."""

    version: str
    profiles: Dict[str, ManifestProfile] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Manifest":
        """
        Build a manifest from parsed YAML.

        Raises:
            ConfigDecodeError: If any node has the wrong shape
        """
        data = _mapping(data, "<root>")
        if data.get("version") is None:
            raise ConfigDecodeError("missing field `version`")

        profiles_path = "profiles"
        profiles = {
            str(name): ManifestProfile.from_dict(node, join_path(profiles_path, str(name)))
            for name, node in _mapping(data.get("profiles"), profiles_path).items()
        }
        return cls(version=str(data["version"]), profiles=profiles)

    def profile(self, name: str) -> ManifestProfile:
        """
        Get a profile by name.

        Raises:
            ProfileNotFoundError: If the profile doesn't exist
        """
        if name not in self.profiles:
            available = ", ".join(self.profiles) or "none"
            raise ProfileNotFoundError(
                f"Profile '{name}' not found in manifest. Available: {available}"
            )
        return self.profiles[name]

    def validate_version(self, cli_version: str = __version__) -> None:
        """Check this manifest against the running binary's version."""
        check_version(self.version, cli_version)
