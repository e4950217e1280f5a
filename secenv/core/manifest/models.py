"""Value model: how a value is stored, obtained and decrypted.

Every sum type is a set of frozen dataclasses plus a `TaggedUnion`
table used to decode it from the manifest:

    EncodedValue      literal | base64
    SecretAllocation  literal | file | gpg | gcp
    Secret            pgp
    Content           plain | secure

Resolution never writes anything; it delegates I/O to the backends and
the PGP engine handed in by the resolution driver.
"""

import base64
import binascii
import logging
import os
from dataclasses import dataclass
from typing import Optional, Union

from secenv.core.manifest.codec import Field, TaggedUnion, Variant
from secenv.core.manifest.exceptions import ValueDecodeError
from secenv.core.secrets.exceptions import SecretBackendError, SecretNotFoundError
from secenv.core.secrets.gcp_backend import GcpSecretRef

logger = logging.getLogger(__name__)


# --- EncodedValue -----------------------------------------------------------


@dataclass(frozen=True)
class LiteralValue:
    """Text stored as-is."""

    value: str

    def resolve(self) -> str:
        return self.value


@dataclass(frozen=True)
class Base64Value:
    """Text stored as standard, padded base64."""

    value: str

    def resolve(self) -> str:
        """
        Decode the base64 payload into UTF-8 text.

        Whitespace is dropped first so that long values can be folded
        over several YAML lines.

        Raises:
            ValueDecodeError: With stage "base64" or "utf-8"
        """
        compact = "".join(self.value.split())
        try:
            raw = base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueDecodeError(f"Failed to decode base64 value: {e}", stage="base64") from e

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValueDecodeError(
                f"Decoded base64 value is not valid UTF-8: {e}", stage="utf-8"
            ) from e


EncodedValue = Union[LiteralValue, Base64Value]

ENCODED_VALUE = TaggedUnion(
    "EncodedValue",
    [
        Variant.newtype("literal", LiteralValue, str),
        Variant.newtype("base64", Base64Value, str),
    ],
)


# --- SecretAllocation -------------------------------------------------------


@dataclass(frozen=True)
class LiteralAllocation:
    """Key material embedded in the manifest."""

    value: EncodedValue

    def resolve(self, backends) -> str:
        return self.value.resolve()


@dataclass(frozen=True)
class FileAllocation:
    """Key material read from a local file."""

    path: str

    def resolve(self, backends) -> str:
        path = os.path.expanduser(self.path)
        logger.debug(f"Reading key material from {path}")
        try:
            with open(path, encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError as e:
            raise SecretNotFoundError(f"Failed to read file: {self.path}: file not found") from e
        except (OSError, UnicodeDecodeError) as e:
            raise SecretBackendError(f"Failed to read file: {self.path}: {e}", backend="file") from e


@dataclass(frozen=True)
class GpgAllocation:
    """Private key held in the local GnuPG keyring."""

    fingerprint: str

    def resolve(self, backends) -> str:
        material = backends.keyring.export_private_key(self.fingerprint)
        if not material or not material.strip():
            raise SecretNotFoundError(
                f"No private key found for fingerprint: {self.fingerprint}. "
                "Make sure the key exists in your GPG keyring."
            )
        return material


@dataclass(frozen=True)
class GcpAllocation:
    """Key material stored in Google Cloud Secret Manager.

    `secret` is the full resource name,
    `projects/<project>/secrets/<name>[/versions/<version>]`.
    """

    secret: str
    version: Optional[str] = None

    def __post_init__(self):
        # Fail at load time, before any gcloud call
        GcpSecretRef.parse(self.secret)

    def resolve(self, backends) -> str:
        return backends.cloud.fetch(self.secret, self.version)


SecretAllocation = Union[LiteralAllocation, FileAllocation, GpgAllocation, GcpAllocation]

SECRET_ALLOCATION = TaggedUnion(
    "SecretAllocation",
    [
        Variant.newtype("literal", LiteralAllocation, ENCODED_VALUE),
        Variant.newtype("file", FileAllocation, str),
        Variant.struct("gpg", GpgAllocation, {"fingerprint": Field(str)}),
        Variant.struct(
            "gcp",
            GcpAllocation,
            {"secret": Field(str), "version": Field(str, optional=True)},
        ),
    ],
)


# --- Secret -----------------------------------------------------------------


@dataclass(frozen=True)
class PgpSecret:
    """OpenPGP private key used to decrypt a message."""

    allocation: SecretAllocation

    def decrypt(self, ciphertext: str, pgp_engine, backends) -> str:
        """
        Decrypt an ASCII-armored message with this secret.

        Keys referenced by keyring fingerprint are never exported: gpg
        decrypts with its own copy. Every other allocation is resolved
        to armored key material and handed to the PGP engine.
        """
        if isinstance(self.allocation, GpgAllocation):
            logger.debug(f"Decrypting with keyring key {self.allocation.fingerprint}")
            return backends.keyring.decrypt(ciphertext)

        key_material = self.allocation.resolve(backends)
        return pgp_engine.unlock_and_decrypt(key_material, ciphertext)


Secret = PgpSecret

SECRET = TaggedUnion("Secret", [Variant.newtype("pgp", PgpSecret, SECRET_ALLOCATION)])


# --- Content ----------------------------------------------------------------


@dataclass(frozen=True)
class PlainContent:
    """Unencrypted value."""

    value: EncodedValue

    def resolve(self, pgp_engine, backends) -> str:
        return self.value.resolve()


@dataclass(frozen=True)
class SecureContent:
    """Ciphertext plus the secret able to decrypt it."""

    secret: Secret
    value: EncodedValue

    def resolve(self, pgp_engine, backends) -> str:
        ciphertext = self.value.resolve()
        return self.secret.decrypt(ciphertext, pgp_engine, backends)


Content = Union[PlainContent, SecureContent]

CONTENT = TaggedUnion(
    "Content",
    [
        Variant.newtype("plain", PlainContent, ENCODED_VALUE),
        Variant.struct(
            "secure",
            SecureContent,
            {"secret": Field(SECRET), "value": Field(ENCODED_VALUE)},
        ),
    ],
)
