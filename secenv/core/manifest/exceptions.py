"""Manifest-related exceptions."""


class ManifestError(Exception):
    """Base exception for manifest errors."""

    pass


class ManifestNotFoundError(ManifestError):
    """Raised when the manifest file doesn't exist."""

    pass


class ManifestParseError(ManifestError):
    """Raised when the manifest file has invalid YAML."""

    pass


class ConfigDecodeError(ManifestError):
    """Raised when a manifest node doesn't match the expected shape."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class ValueDecodeError(ManifestError):
    """Raised when an encoded value can't be turned into text.

    `stage` names the step that failed: "base64" or "utf-8".
    """

    def __init__(self, message: str, stage: str):
        self.stage = stage
        super().__init__(message)


class VersionMismatchError(ManifestError):
    """Raised when the manifest version is incompatible with this binary."""

    pass


class ProfileNotFoundError(ManifestError):
    """Raised when the requested profile is not in the manifest."""

    pass
