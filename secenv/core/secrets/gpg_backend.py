"""GnuPG keyring backend."""

import logging
import shutil

from secenv.core.secrets.base import KeyringBackend
from secenv.core.secrets.command import run_command
from secenv.core.secrets.exceptions import SecretNotFoundError
from secenv.core.secrets.registry import register_backend
from secenv.core.utils.decorators import log_call

logger = logging.getLogger(__name__)


@register_backend("gpg")
class GpgKeyringBackend(KeyringBackend):
    """
    Uses the local `gpg` executable and the user's keyring.

    gpg itself handles passphrases through its agent and pinentry, so
    keys referenced by fingerprint never pass through our own prompt.

    Examples:
        backend = GpgKeyringBackend()
        armored = backend.export_private_key("1605DD8EC2ADB54362D1D5DB7D093FC79A1E7E2D")
        plaintext = backend.decrypt(ciphertext)
    """

    def __init__(self, binary: str = "gpg"):
        """
        Args:
            binary: gpg executable name or path
        """
        self.binary = binary

    @log_call
    def export_private_key(self, fingerprint: str) -> str:
        args = [
            self.binary,
            "--export-secret-keys",
            "--armor",
            "--batch",
            "--yes",
            "--export-options",
            "export-minimal,export-clean",
            "--rfc4880",
            fingerprint,
        ]
        output = run_command(args, backend=self.name)

        # gpg exits 0 with empty output when nothing matches
        if not output.strip():
            raise SecretNotFoundError(
                f"No private key found for fingerprint: {fingerprint}. "
                "Make sure the key exists in your GPG keyring."
            )

        logger.debug(f"Exported private key {fingerprint} from keyring")
        return output

    @log_call
    def decrypt(self, ciphertext: str) -> str:
        args = [self.binary, "--decrypt", "--batch", "--quiet"]
        plaintext = run_command(args, input_text=ciphertext, backend=self.name)
        logger.debug("Decrypted message with keyring")
        return plaintext

    def health_check(self) -> bool:
        """gpg backend is healthy when the executable is on PATH."""
        return shutil.which(self.binary) is not None
