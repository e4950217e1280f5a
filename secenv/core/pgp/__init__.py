"""OpenPGP decryption: certificate parsing, key unlocking and message decryption."""

from secenv.core.pgp.engine import KeyCache, PGPEngine, UnlockedKey
from secenv.core.pgp.exceptions import (
    BadPassphraseError,
    KeyParseError,
    MessageParseError,
    NoMatchingKeyError,
    PasswordPromptError,
    PGPError,
    PlaintextDecodeError,
    UnsupportedAlgorithmError,
)
from secenv.core.pgp.keys import Cert, Key, parse_cert
from secenv.core.pgp.policy import KeyPolicy
from secenv.core.pgp.prompt import getpass_prompt

__all__ = [
    "PGPEngine",
    "KeyCache",
    "UnlockedKey",
    "KeyPolicy",
    "Cert",
    "Key",
    "parse_cert",
    "getpass_prompt",
    "PGPError",
    "KeyParseError",
    "MessageParseError",
    "UnsupportedAlgorithmError",
    "BadPassphraseError",
    "NoMatchingKeyError",
    "PasswordPromptError",
    "PlaintextDecodeError",
]
