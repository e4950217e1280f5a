"""PGP decryption engine with a per-run unlocked key cache."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from cryptography.hazmat.primitives.keywrap import InvalidUnwrap

from secenv.core.pgp import algorithms as algos
from secenv.core.pgp.exceptions import (
    BadPassphraseError,
    NoMatchingKeyError,
    PlaintextDecodeError,
    UnsupportedAlgorithmError,
)
from secenv.core.pgp.keys import Cert, Key, parse_cert
from secenv.core.pgp.message import decrypt_message, parse_message, quick_check
from secenv.core.pgp.policy import KeyPolicy
from secenv.core.pgp.prompt import getpass_prompt
from secenv.core.pgp.protection import SecretValues, unlock_secret
from secenv.core.pgp.session import recover_session_key

logger = logging.getLogger(__name__)

PasswordPrompt = Callable[[str], str]

PROMPT_TEXT = "Enter password for PGP key {fingerprint}: "


@dataclass
class UnlockedKey:
    """A parsed certificate plus the password that unlocks it, if any."""

    cert: Cert
    password: Optional[str] = field(default=None, repr=False)
    _secrets: Dict[str, SecretValues] = field(default_factory=dict, repr=False)

    @property
    def fingerprint(self) -> str:
        return self.cert.fingerprint

    def secret_for(self, key: Key) -> SecretValues:
        """Secret fields of `key`, derived once and then reused."""
        if key.fingerprint not in self._secrets:
            self._secrets[key.fingerprint] = unlock_secret(key, self.password)
        return self._secrets[key.fingerprint]


class KeyCache:
    """Unlocked keys by primary fingerprint, for the lifetime of one run."""

    def __init__(self):
        self._keys: Dict[str, UnlockedKey] = {}

    def get(self, fingerprint: str) -> Optional[UnlockedKey]:
        return self._keys.get(fingerprint)

    def store(self, unlocked: UnlockedKey) -> None:
        self._keys[unlocked.fingerprint] = unlocked

    def clear(self) -> None:
        self._keys.clear()

    def __contains__(self, fingerprint: str) -> bool:
        return fingerprint in self._keys

    def __len__(self) -> int:
        return len(self._keys)


class PGPEngine:
    """
    Unlocks OpenPGP keys and decrypts messages with them.

    Each distinct key asks for its password at most once per engine; the
    password is kept in `cache` and reused by every later unlock of the
    same fingerprint.

    Usage:
        engine = PGPEngine()
        plaintext = engine.unlock_and_decrypt(armored_key, armored_message)

    Args:
        cache: Key cache to use; a fresh one when None
        prompt: Callable asking for a password; terminal getpass when None
        policy: Key validity rules; current time when None
    """

    def __init__(
        self,
        cache: Optional[KeyCache] = None,
        prompt: Optional[PasswordPrompt] = None,
        policy: Optional[KeyPolicy] = None,
    ):
        self.cache = cache if cache is not None else KeyCache()
        self.prompt = prompt or getpass_prompt
        self.policy = policy or KeyPolicy()

    def _candidates(self, cert: Cert) -> List[Key]:
        return [
            key
            for key in self.policy.decryption_keys(cert)
            if key.has_secret and key.algorithm in algos.DECRYPTION_SUPPORTED
        ]

    def unlock(self, key_material: Union[str, bytes]) -> UnlockedKey:
        """
        Parse key material and attach its password.

        Raises:
            KeyParseError: If the material is not a valid certificate
            PasswordPromptError: If a password is needed but cannot be asked for
        """
        cert = parse_cert(key_material)

        cached = self.cache.get(cert.fingerprint)
        if cached is not None:
            logger.debug(f"Using cached key {cert.fingerprint}")
            return cached

        password = None
        if any(key.is_protected for key in self._candidates(cert)):
            password = self.prompt(PROMPT_TEXT.format(fingerprint=cert.fingerprint[:16]))

        unlocked = UnlockedKey(cert=cert, password=password)
        self.cache.store(unlocked)
        logger.debug(f"Unlocked key {cert.fingerprint}")
        return unlocked

    def decrypt(self, unlocked: UnlockedKey, ciphertext: Union[str, bytes]) -> str:
        """
        Decrypt an OpenPGP message with an unlocked key.

        Every valid decryption key is tried against every session key
        packet addressed to it. A key that the cached password does not
        unlock is skipped like any other non-matching key.

        Raises:
            MessageParseError: If the ciphertext is malformed or tampered with
            NoMatchingKeyError: If no key recovers the session key
            PlaintextDecodeError: If the plaintext is not UTF-8
        """
        message = parse_message(ciphertext)

        for key in self._candidates(unlocked.cert):
            pkesks = [pkesk for pkesk in message.pkesks if pkesk.addresses(key)]
            if not pkesks:
                continue

            try:
                secret = unlocked.secret_for(key)
            except BadPassphraseError:
                logger.debug(f"Password does not unlock subkey {key.fingerprint}")
                continue
            except UnsupportedAlgorithmError as e:
                logger.debug(f"Cannot use subkey {key.fingerprint}: {e}")
                continue

            for pkesk in pkesks:
                try:
                    algo_id, session_key = recover_session_key(pkesk, key, secret)
                except (ValueError, InvalidUnwrap, UnsupportedAlgorithmError) as e:
                    logger.debug(f"Subkey {key.fingerprint} did not recover a session key: {e}")
                    continue
                if not quick_check(message, algo_id, session_key):
                    logger.debug(f"Session key from {key.fingerprint} failed the quick check")
                    continue

                logger.debug(f"Decrypting with subkey {key.fingerprint}")
                data = decrypt_message(message, algo_id, session_key)
                try:
                    return data.decode("utf-8")
                except UnicodeDecodeError as e:
                    raise PlaintextDecodeError("decrypted message is not valid UTF-8") from e

        raise NoMatchingKeyError()

    def unlock_and_decrypt(
        self, key_material: Union[str, bytes], ciphertext: Union[str, bytes]
    ) -> str:
        return self.decrypt(self.unlock(key_material), ciphertext)
