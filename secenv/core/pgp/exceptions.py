"""Custom exceptions for the PGP decryption engine."""


class PGPError(Exception):
    """Base exception for PGP errors."""

    pass


class KeyParseError(PGPError):
    """Raised when key material is not a usable OpenPGP certificate."""

    pass


class MessageParseError(PGPError):
    """Raised when a ciphertext is not a well-formed encrypted message."""

    pass


class UnsupportedAlgorithmError(PGPError):
    """Raised when a packet uses an algorithm this engine does not implement."""

    pass


class BadPassphraseError(PGPError):
    """Raised when a password does not unlock a secret key."""

    pass


class NoMatchingKeyError(PGPError):
    """Raised when no candidate key recovers the message's session key."""

    def __init__(self, message: str = "unable to decrypt: no matching key found"):
        super().__init__(message)


class PasswordPromptError(PGPError):
    """Raised when a password is needed but cannot be asked for."""

    pass


class PlaintextDecodeError(PGPError):
    """Raised when a decrypted message is not valid UTF-8."""

    pass
