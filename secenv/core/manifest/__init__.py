"""Manifest model, tagged-union codec and loader."""

from secenv.core.manifest.codec import Field, TaggedUnion, Variant
from secenv.core.manifest.exceptions import (
    ConfigDecodeError,
    ManifestError,
    ManifestNotFoundError,
    ManifestParseError,
    ProfileNotFoundError,
    ValueDecodeError,
    VersionMismatchError,
)
from secenv.core.manifest.loader import DEFAULT_MANIFEST, ManifestLoader, write_example_manifest
from secenv.core.manifest.manifest import Manifest, ManifestEnv, ManifestProfile
from secenv.core.manifest.models import (
    CONTENT,
    ENCODED_VALUE,
    SECRET,
    SECRET_ALLOCATION,
    Base64Value,
    FileAllocation,
    GcpAllocation,
    GpgAllocation,
    LiteralAllocation,
    LiteralValue,
    PgpSecret,
    PlainContent,
    SecureContent,
)

__all__ = [
    "Field",
    "TaggedUnion",
    "Variant",
    "ConfigDecodeError",
    "ManifestError",
    "ManifestNotFoundError",
    "ManifestParseError",
    "ProfileNotFoundError",
    "ValueDecodeError",
    "VersionMismatchError",
    "DEFAULT_MANIFEST",
    "ManifestLoader",
    "write_example_manifest",
    "Manifest",
    "ManifestEnv",
    "ManifestProfile",
    "CONTENT",
    "ENCODED_VALUE",
    "SECRET",
    "SECRET_ALLOCATION",
    "Base64Value",
    "FileAllocation",
    "GcpAllocation",
    "GpgAllocation",
    "LiteralAllocation",
    "LiteralValue",
    "PgpSecret",
    "PlainContent",
    "SecureContent",
]
