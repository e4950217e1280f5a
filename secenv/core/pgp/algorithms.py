"""Algorithm identifiers and the symmetric primitives built on them."""

import hashlib
from dataclasses import dataclass
from typing import Callable, Dict

from cryptography.hazmat.decrepit.ciphers.algorithms import CAST5, Blowfish, TripleDES
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from secenv.core.pgp.exceptions import UnsupportedAlgorithmError

# Public-key algorithms (RFC 4880 9.1, RFC 6637, RFC 9580)
RSA_ENCRYPT_SIGN = 1
RSA_ENCRYPT = 2
RSA_SIGN = 3
ELGAMAL = 16
DSA = 17
ECDH = 18
ECDSA = 19
EDDSA = 22
X25519 = 25
X448 = 26
ED25519 = 27
ED448 = 28

RSA_ALGORITHMS = (RSA_ENCRYPT_SIGN, RSA_ENCRYPT, RSA_SIGN)
ENCRYPTION_CAPABLE = (RSA_ENCRYPT_SIGN, RSA_ENCRYPT, ELGAMAL, ECDH, X25519, X448)
# Algorithms this engine can recover a session key with
DECRYPTION_SUPPORTED = (RSA_ENCRYPT_SIGN, RSA_ENCRYPT, ELGAMAL, ECDH)

# Native public key sizes for the fixed-length algorithms
NATIVE_KEY_SIZES = {X25519: 32, X448: 56, ED25519: 32, ED448: 57}


@dataclass(frozen=True)
class SymmetricAlgorithm:
    name: str
    factory: Callable
    key_size: int
    block_size: int


SYMMETRIC_ALGORITHMS: Dict[int, SymmetricAlgorithm] = {
    2: SymmetricAlgorithm("TripleDES", TripleDES, 24, 8),
    3: SymmetricAlgorithm("CAST5", CAST5, 16, 8),
    4: SymmetricAlgorithm("Blowfish", Blowfish, 16, 8),
    7: SymmetricAlgorithm("AES-128", algorithms.AES, 16, 16),
    8: SymmetricAlgorithm("AES-192", algorithms.AES, 24, 16),
    9: SymmetricAlgorithm("AES-256", algorithms.AES, 32, 16),
    11: SymmetricAlgorithm("Camellia-128", algorithms.Camellia, 16, 16),
    12: SymmetricAlgorithm("Camellia-192", algorithms.Camellia, 24, 16),
    13: SymmetricAlgorithm("Camellia-256", algorithms.Camellia, 32, 16),
}

HASH_ALGORITHMS = {
    1: "md5",
    2: "sha1",
    3: "ripemd160",
    8: "sha256",
    9: "sha384",
    10: "sha512",
    11: "sha224",
}

# Curve OIDs, DER body without tag and length
CURVE25519_OID = bytes.fromhex("2b060104019755010501")

NIST_CURVES = {
    bytes.fromhex("2a8648ce3d030107"): ec.SECP256R1,
    bytes.fromhex("2b81040022"): ec.SECP384R1,
    bytes.fromhex("2b81040023"): ec.SECP521R1,
    bytes.fromhex("2b2403030208010107"): ec.BrainpoolP256R1,
    bytes.fromhex("2b240303020801010b"): ec.BrainpoolP384R1,
    bytes.fromhex("2b240303020801010d"): ec.BrainpoolP512R1,
}


def symmetric_algorithm(algo_id: int) -> SymmetricAlgorithm:
    try:
        return SYMMETRIC_ALGORITHMS[algo_id]
    except KeyError:
        raise UnsupportedAlgorithmError(f"unsupported symmetric algorithm {algo_id}") from None


def new_hash(algo_id: int):
    name = HASH_ALGORITHMS.get(algo_id)
    if name is None:
        raise UnsupportedAlgorithmError(f"unsupported hash algorithm {algo_id}")
    try:
        return hashlib.new(name)
    except ValueError as e:
        raise UnsupportedAlgorithmError(f"hash algorithm {name} is not available") from e


def _xor(left: bytes, right: bytes) -> bytes:
    size = len(left)
    return (int.from_bytes(left, "big") ^ int.from_bytes(right[:size], "big")).to_bytes(
        size, "big"
    )


def cfb_decrypt(algo_id: int, key: bytes, iv: bytes, data: bytes) -> bytes:
    """
    Decrypt full-block CFB as OpenPGP uses it.

    Each plaintext block is the ciphertext block XOR E(previous ciphertext
    block), starting from `iv`, so the keystream for the whole message is
    one ECB pass over IV || C[:-1].
    """
    algo = symmetric_algorithm(algo_id)
    if len(key) != algo.key_size:
        raise ValueError(f"{algo.name} needs a {algo.key_size}-byte key, got {len(key)}")
    if not data:
        return b""

    size = algo.block_size
    blocks = -(-len(data) // size)
    feed = (iv + data)[: blocks * size]
    encryptor = Cipher(algo.factory(key), modes.ECB()).encryptor()
    keystream = encryptor.update(feed) + encryptor.finalize()
    return _xor(data, keystream)
