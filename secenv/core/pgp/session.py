"""Session key recovery from public-key encrypted session key packets."""

from dataclasses import dataclass
from typing import Tuple

from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa, x25519
from cryptography.hazmat.primitives.keywrap import aes_key_unwrap

from secenv.core.pgp import algorithms as algos
from secenv.core.pgp.exceptions import UnsupportedAlgorithmError
from secenv.core.pgp.keys import Key
from secenv.core.pgp.packets import Reader
from secenv.core.pgp.protection import SecretValues

WILDCARD_KEY_ID = b"\x00" * 8
ANONYMOUS_SENDER = b"Anonymous Sender    "


@dataclass(frozen=True)
class PKESK:
    """Version 3 public-key encrypted session key packet."""

    key_id: bytes
    algorithm: int
    fields: bytes

    def addresses(self, key: Key) -> bool:
        if self.algorithm != key.algorithm:
            return False
        return self.key_id in (WILDCARD_KEY_ID, key.key_id)


def parse_pkesk(body: bytes) -> PKESK:
    reader = Reader(body)
    version = reader.read_byte()
    if version != 3:
        raise UnsupportedAlgorithmError(f"unsupported PKESK version {version}")
    key_id = reader.read(8)
    algorithm = reader.read_byte()
    return PKESK(key_id=key_id, algorithm=algorithm, fields=reader.rest())


def _rsa_private_key(key: Key, secret: SecretValues) -> rsa.RSAPrivateKey:
    n, e = key.public.mpis
    d, p, q, _ = secret
    numbers = rsa.RSAPrivateNumbers(
        p=p,
        q=q,
        d=d,
        dmp1=rsa.rsa_crt_dmp1(d, p),
        dmq1=rsa.rsa_crt_dmq1(d, q),
        iqmp=rsa.rsa_crt_iqmp(p, q),
        public_numbers=rsa.RSAPublicNumbers(e, n),
    )
    return numbers.private_key()


def _rsa_decrypt(pkesk: PKESK, key: Key, secret: SecretValues) -> bytes:
    encrypted = Reader(pkesk.fields).read_mpi_bytes()
    modulus_size = (key.public.mpis[0].bit_length() + 7) // 8
    private_key = _rsa_private_key(key, secret)
    return private_key.decrypt(encrypted.rjust(modulus_size, b"\x00"), padding.PKCS1v15())


def _eme_pkcs1_unpad(block: bytes) -> bytes:
    if len(block) < 11 or block[:2] != b"\x00\x02":
        raise ValueError("invalid PKCS#1 v1.5 padding")
    separator = block.find(b"\x00", 2)
    if separator < 10:
        raise ValueError("invalid PKCS#1 v1.5 padding")
    return block[separator + 1 :]


def _elgamal_decrypt(pkesk: PKESK, key: Key, secret: SecretValues) -> bytes:
    p = key.public.mpis[0]
    (x,) = secret
    reader = Reader(pkesk.fields)
    c1, c2 = reader.read_mpi(), reader.read_mpi()
    if not 0 < c1 < p or not 0 < c2 < p:
        raise ValueError("ElGamal ciphertext out of range")
    # c1^-x == c1^(p-1-x) mod p
    message = pow(c1, p - 1 - x, p) * c2 % p
    return _eme_pkcs1_unpad(message.to_bytes((p.bit_length() + 7) // 8, "big"))


def _ecdh_shared_secret(key: Key, secret: SecretValues, ephemeral: bytes) -> bytes:
    oid = key.public.oid
    if oid == algos.CURVE25519_OID:
        if len(ephemeral) != 33 or ephemeral[0] != 0x40:
            raise ValueError("malformed Curve25519 ephemeral point")
        # Stored big-endian; X25519 wants the native little-endian scalar
        scalar = secret[0].to_bytes(32, "big")[::-1]
        private_key = x25519.X25519PrivateKey.from_private_bytes(scalar)
        return private_key.exchange(x25519.X25519PublicKey.from_public_bytes(ephemeral[1:]))

    curve_class = algos.NIST_CURVES.get(oid)
    if curve_class is None:
        raise UnsupportedAlgorithmError(f"unsupported ECDH curve {oid.hex()}")
    curve = curve_class()
    private_key = ec.derive_private_key(secret[0], curve)
    public_key = ec.EllipticCurvePublicKey.from_encoded_point(curve, ephemeral)
    return private_key.exchange(ec.ECDH(), public_key)


def _ecdh_decrypt(pkesk: PKESK, key: Key, secret: SecretValues) -> bytes:
    reader = Reader(pkesk.fields)
    ephemeral = reader.read_mpi_bytes()
    wrapped = reader.read(reader.read_byte())

    shared = _ecdh_shared_secret(key, secret, ephemeral)

    public = key.public
    kek_algo = algos.symmetric_algorithm(public.kdf_cipher)
    param = (
        bytes([len(public.oid)])
        + public.oid
        + bytes([algos.ECDH, 3, 1, public.kdf_hash, public.kdf_cipher])
        + ANONYMOUS_SENDER
        + key.fingerprint_bytes
    )
    digest = algos.new_hash(public.kdf_hash)
    digest.update(b"\x00\x00\x00\x01" + shared + param)
    kek = digest.digest()[: kek_algo.key_size]

    padded = aes_key_unwrap(kek, wrapped)
    pad = padded[-1]
    if not 0 < pad <= len(padded) or padded[-pad:] != bytes([pad]) * pad:
        raise ValueError("invalid session key padding")
    return padded[:-pad]


def _split_session_key(decoded: bytes) -> Tuple[int, bytes]:
    if len(decoded) < 4:
        raise ValueError("session key too short")
    algo_id, session_key, checksum = decoded[0], decoded[1:-2], decoded[-2:]
    if (sum(session_key) & 0xFFFF).to_bytes(2, "big") != checksum:
        raise ValueError("session key checksum mismatch")
    algo = algos.SYMMETRIC_ALGORITHMS.get(algo_id)
    if algo is None or len(session_key) != algo.key_size:
        raise ValueError(f"invalid session key for symmetric algorithm {algo_id}")
    return algo_id, session_key


def recover_session_key(pkesk: PKESK, key: Key, secret: SecretValues) -> Tuple[int, bytes]:
    """
    Decrypt the session key in `pkesk` with an unlocked RSA, Elgamal or ECDH key.

    Returns:
        (symmetric algorithm id, session key)

    Raises:
        ValueError: If this key does not recover a valid session key
        InvalidUnwrap: If the ECDH key wrap does not open
        UnsupportedAlgorithmError: If the key's algorithm or curve is not supported
    """
    if key.algorithm in (algos.RSA_ENCRYPT_SIGN, algos.RSA_ENCRYPT):
        decoded = _rsa_decrypt(pkesk, key, secret)
    elif key.algorithm == algos.ECDH:
        decoded = _ecdh_decrypt(pkesk, key, secret)
    elif key.algorithm == algos.ELGAMAL:
        decoded = _elgamal_decrypt(pkesk, key, secret)
    else:
        raise UnsupportedAlgorithmError(f"cannot decrypt with public key algorithm {key.algorithm}")
    return _split_session_key(decoded)
