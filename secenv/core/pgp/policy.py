"""Which keys of a certificate may be used for decryption, and when."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from secenv.core.pgp import algorithms as algos
from secenv.core.pgp.keys import (
    FLAG_ENCRYPT_COMMUNICATIONS,
    FLAG_ENCRYPT_STORAGE,
    SIG_CERTIFICATIONS,
    SIG_DIRECT_KEY,
    SIG_KEY_REVOCATION,
    SIG_SUBKEY_BINDING,
    SIG_SUBKEY_REVOCATION,
    Cert,
    Key,
    Signature,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyPolicy:
    """
    Key validity rules, evaluated at a fixed point in time.

    Signatures are taken at face value: the key material comes from the
    operator, so nothing is cryptographically verified here.

    Args:
        at: Evaluation time; the current time when None
    """

    at: Optional[datetime] = None

    def now(self) -> int:
        if self.at is None:
            return int(time.time())
        return int(self.at.timestamp())

    def _signatures(self, key: Key, types, now: int) -> List[Signature]:
        return [
            sig
            for sig in key.signatures
            if sig.sig_type in types and (sig.created is None or sig.created <= now)
        ]

    def binding(self, key: Key, now: int) -> Optional[Signature]:
        """The newest self-signature describing `key`."""
        if key.is_subkey:
            types = (SIG_SUBKEY_BINDING,)
        else:
            types = SIG_CERTIFICATIONS + (SIG_DIRECT_KEY,)
        candidates = self._signatures(key, types, now)
        if not candidates:
            return None
        return max(candidates, key=lambda sig: sig.created or 0)

    def is_revoked(self, key: Key, now: int) -> bool:
        revocation = SIG_SUBKEY_REVOCATION if key.is_subkey else SIG_KEY_REVOCATION
        return bool(self._signatures(key, (revocation,), now))

    def is_alive(self, key: Key, binding: Optional[Signature], now: int) -> bool:
        if key.created > now:
            return False
        if binding is not None and binding.key_expiration:
            return now < key.created + binding.key_expiration
        return True

    def can_encrypt(self, key: Key, binding: Optional[Signature]) -> bool:
        if binding is not None and binding.key_flags is not None:
            return bool(binding.key_flags & (FLAG_ENCRYPT_COMMUNICATIONS | FLAG_ENCRYPT_STORAGE))
        return key.algorithm in algos.ENCRYPTION_CAPABLE

    def is_cert_valid(self, cert: Cert, now: int) -> bool:
        primary = cert.primary
        if self.is_revoked(primary, now):
            logger.debug(f"Certificate {cert.fingerprint} is revoked")
            return False
        if not self.is_alive(primary, self.binding(primary, now), now):
            logger.debug(f"Certificate {cert.fingerprint} is expired or not yet valid")
            return False
        return True

    def decryption_keys(self, cert: Cert) -> List[Key]:
        """
        Keys of `cert` that may decrypt a message right now.

        A key qualifies when the certificate is valid, the key is bound,
        alive, not revoked, and flagged for (or, without flags, capable
        of) encryption. Whether the secret half is present is left to
        the caller.
        """
        now = self.now()
        if not self.is_cert_valid(cert, now):
            return []

        keys = []
        for key in cert.keys:
            binding = self.binding(key, now)
            if key.is_subkey and binding is None:
                logger.debug(f"Skipping unbound subkey {key.fingerprint}")
                continue
            if self.is_revoked(key, now):
                logger.debug(f"Skipping revoked key {key.fingerprint}")
                continue
            if not self.is_alive(key, binding, now):
                logger.debug(f"Skipping expired key {key.fingerprint}")
                continue
            if self.can_encrypt(key, binding):
                keys.append(key)
        return keys
