"""Recover the secret fields of a (possibly password-protected) key."""

import hashlib
from typing import Optional, Tuple

from secenv.core.pgp import algorithms as algos
from secenv.core.pgp.exceptions import BadPassphraseError, KeyParseError, UnsupportedAlgorithmError
from secenv.core.pgp.keys import S2K_USAGE_SHA1, Key
from secenv.core.pgp.packets import Reader

SecretValues = Tuple[int, ...]


def _secret_field_count(algorithm: int) -> int:
    if algorithm in algos.RSA_ALGORITHMS:
        return 4  # d, p, q, u
    if algorithm in (algos.DSA, algos.ELGAMAL, algos.ECDSA, algos.ECDH, algos.EDDSA):
        return 1
    raise UnsupportedAlgorithmError(f"unsupported secret key algorithm {algorithm}")


def _checksum(data: bytes) -> bytes:
    return (sum(data) & 0xFFFF).to_bytes(2, "big")


def _split_checked(cleartext: bytes, usage: int) -> Optional[bytes]:
    """The secret fields, or None if the integrity check fails."""
    if usage == S2K_USAGE_SHA1:
        fields, digest = cleartext[:-20], cleartext[-20:]
        if len(cleartext) < 20 or hashlib.sha1(fields).digest() != digest:
            return None
        return fields
    fields, checksum = cleartext[:-2], cleartext[-2:]
    if len(cleartext) < 2 or _checksum(fields) != checksum:
        return None
    return fields


def unlock_secret(key: Key, password: Optional[str]) -> SecretValues:
    """
    Decrypt and parse the secret fields of `key`.

    Args:
        key: Key carrying secret material
        password: Password for protected keys; ignored otherwise

    Returns:
        The algorithm's secret integers, in packet order

    Raises:
        BadPassphraseError: If the password is missing or wrong
        KeyParseError: If unprotected secret material is corrupt
        UnsupportedAlgorithmError: For unknown ciphers, S2K types or algorithms
    """
    secret = key.secret
    if secret is None or not secret.is_available:
        raise KeyParseError(f"key {key.fingerprint} has no secret material")

    if secret.is_protected:
        if password is None:
            raise BadPassphraseError(f"key {key.fingerprint} is password protected")
        cipher = algos.symmetric_algorithm(secret.cipher)
        session = secret.s2k.derive(password.encode("utf-8"), cipher.key_size)
        iv, encrypted = secret.data[: cipher.block_size], secret.data[cipher.block_size :]
        cleartext = algos.cfb_decrypt(secret.cipher, session, iv, encrypted)
    else:
        cleartext = secret.data

    fields = _split_checked(cleartext, secret.usage)
    if fields is None:
        if secret.is_protected:
            raise BadPassphraseError(f"wrong password for key {key.fingerprint}")
        raise KeyParseError(f"corrupt secret material in key {key.fingerprint}")

    reader = Reader(fields)
    try:
        return tuple(reader.read_mpi() for _ in range(_secret_field_count(key.algorithm)))
    except ValueError as e:
        if secret.is_protected:
            raise BadPassphraseError(f"wrong password for key {key.fingerprint}") from e
        raise KeyParseError(f"corrupt secret material in key {key.fingerprint}") from e
