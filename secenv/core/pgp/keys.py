"""OpenPGP certificates: v4 keys, subkeys and their self-signatures."""

import hashlib
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from secenv.core.pgp import algorithms as algos
from secenv.core.pgp.armor import to_binary
from secenv.core.pgp.exceptions import KeyParseError, PGPError, UnsupportedAlgorithmError
from secenv.core.pgp.packets import (
    TAG_PUBLIC_KEY,
    TAG_PUBLIC_SUBKEY,
    TAG_SECRET_KEY,
    TAG_SECRET_SUBKEY,
    TAG_SIGNATURE,
    TAG_USER_ATTRIBUTE,
    TAG_USER_ID,
    Reader,
    iter_packets,
)

logger = logging.getLogger(__name__)

PRIMARY_KEY_TAGS = (TAG_SECRET_KEY, TAG_PUBLIC_KEY)
SUBKEY_TAGS = (TAG_SECRET_SUBKEY, TAG_PUBLIC_SUBKEY)
SECRET_TAGS = (TAG_SECRET_KEY, TAG_SECRET_SUBKEY)

# Signature types
SIG_CERTIFICATIONS = (0x10, 0x11, 0x12, 0x13)
SIG_SUBKEY_BINDING = 0x18
SIG_DIRECT_KEY = 0x1F
SIG_KEY_REVOCATION = 0x20
SIG_SUBKEY_REVOCATION = 0x28

# Signature subpackets
SUBPACKET_CREATED = 2
SUBPACKET_KEY_EXPIRATION = 9
SUBPACKET_ISSUER = 16
SUBPACKET_KEY_FLAGS = 27
SUBPACKET_ISSUER_FINGERPRINT = 33

# Key flags
FLAG_ENCRYPT_COMMUNICATIONS = 0x04
FLAG_ENCRYPT_STORAGE = 0x08

# S2K usage conventions
S2K_USAGE_NONE = 0
S2K_USAGE_SHA1 = 254
S2K_USAGE_CHECKSUM = 255

S2K_SIMPLE = 0
S2K_SALTED = 1
S2K_ITERATED = 3
S2K_GNU = 101

# Bytes hashed per update when iterating an S2K
_S2K_CHUNK = 65536


@dataclass(frozen=True)
class S2K:
    """String-to-key specifier (RFC 4880 3.7)."""

    s2k_type: int
    hash_algo: int
    salt: bytes = b""
    count: int = 0
    gnu_mode: Optional[int] = None

    @property
    def is_gnu(self) -> bool:
        return self.s2k_type == S2K_GNU

    def derive(self, password: bytes, size: int) -> bytes:
        """Stretch `password` into `size` bytes of key material."""
        if self.is_gnu:
            raise UnsupportedAlgorithmError("key material is not stored in this key")
        if self.s2k_type not in (S2K_SIMPLE, S2K_SALTED, S2K_ITERATED):
            raise UnsupportedAlgorithmError(f"unsupported S2K type {self.s2k_type}")

        output = b""
        preload = 0
        while len(output) < size:
            digest = algos.new_hash(self.hash_algo)
            digest.update(b"\x00" * preload)
            data = self.salt + password
            if self.s2k_type == S2K_ITERATED:
                _hash_iterated(digest, data, self.count)
            else:
                digest.update(data)
            output += digest.digest()
            preload += 1
        return output[:size]


def _hash_iterated(digest, data: bytes, count: int) -> None:
    if not data:
        return
    count = max(count, len(data))
    block = data * max(1, _S2K_CHUNK // len(data))
    while count >= len(block):
        digest.update(block)
        count -= len(block)
    whole, rest = divmod(count, len(data))
    digest.update(data * whole + data[:rest])


def s2k_count(coded: int) -> int:
    return (16 + (coded & 15)) << ((coded >> 4) + 6)


def parse_s2k(reader: Reader) -> S2K:
    s2k_type = reader.read_byte()
    hash_algo = reader.read_byte()
    if s2k_type == S2K_SIMPLE:
        return S2K(s2k_type, hash_algo)
    if s2k_type == S2K_SALTED:
        return S2K(s2k_type, hash_algo, salt=reader.read(8))
    if s2k_type == S2K_ITERATED:
        salt = reader.read(8)
        return S2K(s2k_type, hash_algo, salt=salt, count=s2k_count(reader.read_byte()))
    if s2k_type == S2K_GNU:
        if reader.read(3) != b"GNU":
            raise ValueError("malformed GNU S2K extension")
        return S2K(s2k_type, hash_algo, gnu_mode=reader.read_byte())
    raise UnsupportedAlgorithmError(f"unsupported S2K type {s2k_type}")


@dataclass(frozen=True)
class PublicParams:
    """Algorithm-specific public key fields."""

    mpis: Tuple[int, ...] = ()
    oid: bytes = b""
    point: bytes = b""
    kdf_hash: Optional[int] = None
    kdf_cipher: Optional[int] = None


@dataclass(frozen=True)
class SecretKeyData:
    """The secret half of a key packet, still encrypted when protected.

    `data` holds the IV (when protected) followed by the secret fields
    and their checksum.
    """

    usage: int
    cipher: Optional[int] = None
    s2k: Optional[S2K] = None
    data: bytes = b""

    @property
    def is_protected(self) -> bool:
        return self.usage != S2K_USAGE_NONE

    @property
    def is_available(self) -> bool:
        """False for gpg stubs whose secret lives elsewhere (offline, smartcard)."""
        return not (self.s2k is not None and self.s2k.is_gnu)


@dataclass(frozen=True)
class Signature:
    """The parts of a signature this engine evaluates; it never verifies one."""

    sig_type: int
    created: Optional[int] = None
    key_expiration: Optional[int] = None
    key_flags: Optional[int] = None
    issuer: Optional[bytes] = None


@dataclass
class Key:
    algorithm: int
    created: int
    public: PublicParams
    fingerprint: str
    secret: Optional[SecretKeyData] = None
    is_subkey: bool = False
    signatures: List[Signature] = field(default_factory=list)

    @property
    def key_id(self) -> bytes:
        return bytes.fromhex(self.fingerprint)[-8:]

    @property
    def fingerprint_bytes(self) -> bytes:
        return bytes.fromhex(self.fingerprint)

    @property
    def has_secret(self) -> bool:
        return self.secret is not None and self.secret.is_available

    @property
    def is_protected(self) -> bool:
        return self.has_secret and self.secret.is_protected


@dataclass
class Cert:
    """A primary key with its user IDs and subkeys."""

    primary: Key
    subkeys: List[Key] = field(default_factory=list)
    user_ids: List[str] = field(default_factory=list)

    @property
    def fingerprint(self) -> str:
        return self.primary.fingerprint

    @property
    def keys(self) -> List[Key]:
        return [self.primary] + self.subkeys

    @property
    def has_secrets(self) -> bool:
        return any(key.has_secret for key in self.keys)


def _read_public_params(reader: Reader, algorithm: int) -> PublicParams:
    if algorithm in algos.RSA_ALGORITHMS:
        return PublicParams(mpis=(reader.read_mpi(), reader.read_mpi()))
    if algorithm == algos.DSA:
        return PublicParams(mpis=tuple(reader.read_mpi() for _ in range(4)))
    if algorithm == algos.ELGAMAL:
        return PublicParams(mpis=tuple(reader.read_mpi() for _ in range(3)))
    if algorithm in (algos.ECDSA, algos.EDDSA, algos.ECDH):
        oid = reader.read(reader.read_byte())
        point = reader.read_mpi_bytes()
        if algorithm != algos.ECDH:
            return PublicParams(oid=oid, point=point)
        kdf = reader.read(reader.read_byte())
        if len(kdf) < 3:
            raise ValueError("truncated ECDH KDF parameters")
        return PublicParams(oid=oid, point=point, kdf_hash=kdf[1], kdf_cipher=kdf[2])
    if algorithm in algos.NATIVE_KEY_SIZES:
        return PublicParams(point=reader.read(algos.NATIVE_KEY_SIZES[algorithm]))
    raise UnsupportedAlgorithmError(f"unsupported public key algorithm {algorithm}")


def _read_secret(reader: Reader) -> SecretKeyData:
    usage = reader.read_byte()
    if usage == S2K_USAGE_NONE:
        return SecretKeyData(usage, data=reader.rest())
    if usage in (S2K_USAGE_SHA1, S2K_USAGE_CHECKSUM):
        cipher = reader.read_byte()
        s2k = parse_s2k(reader)
        return SecretKeyData(usage, cipher=cipher, s2k=s2k, data=reader.rest())
    # Legacy form: the usage octet is the cipher, keyed with plain MD5
    return SecretKeyData(usage, cipher=usage, s2k=S2K(S2K_SIMPLE, 1), data=reader.rest())


def parse_key(body: bytes, tag: int) -> Key:
    reader = Reader(body)
    version = reader.read_byte()
    if version != 4:
        raise UnsupportedAlgorithmError(f"unsupported key version {version}")
    created = reader.read_u32()
    algorithm = reader.read_byte()
    public = _read_public_params(reader, algorithm)

    public_body = body[: reader.offset]
    fingerprint = hashlib.sha1(
        b"\x99" + len(public_body).to_bytes(2, "big") + public_body
    ).hexdigest().upper()

    secret = _read_secret(reader) if tag in SECRET_TAGS else None
    return Key(
        algorithm=algorithm,
        created=created,
        public=public,
        fingerprint=fingerprint,
        secret=secret,
        is_subkey=tag in SUBKEY_TAGS,
    )


def _subpacket_length(reader: Reader) -> int:
    first = reader.read_byte()
    if first < 192:
        return first
    if first < 255:
        return ((first - 192) << 8) + reader.read_byte() + 192
    return reader.read_u32()


def _read_subpackets(data: bytes, sig: dict) -> None:
    reader = Reader(data)
    while reader.remaining():
        length = _subpacket_length(reader)
        if length == 0:
            raise ValueError("empty signature subpacket")
        sub = Reader(reader.read(length))
        kind = sub.read_byte() & 0x7F
        if kind == SUBPACKET_CREATED:
            sig["created"] = sub.read_u32()
        elif kind == SUBPACKET_KEY_EXPIRATION:
            sig["key_expiration"] = sub.read_u32()
        elif kind == SUBPACKET_KEY_FLAGS:
            flags = sub.rest()
            sig["key_flags"] = flags[0] if flags else 0
        elif kind == SUBPACKET_ISSUER:
            sig.setdefault("issuer", sub.read(8))
        elif kind == SUBPACKET_ISSUER_FINGERPRINT:
            sub.read_byte()
            sig["issuer"] = sub.rest()[-8:]


def parse_signature(body: bytes) -> Optional[Signature]:
    """Parse a v3 or v4 signature; other versions are ignored."""
    reader = Reader(body)
    version = reader.read_byte()
    if version == 3:
        reader.read_byte()
        sig_type = reader.read_byte()
        created = reader.read_u32()
        return Signature(sig_type, created=created, issuer=reader.read(8))
    if version != 4:
        return None

    sig_type = reader.read_byte()
    reader.read(2)
    fields = {}
    # Hashed values win over unhashed ones
    unhashed = {}
    _read_subpackets(reader.read(reader.read_u16()), fields)
    _read_subpackets(reader.read(reader.read_u16()), unhashed)
    if "issuer" in unhashed and "issuer" not in fields:
        fields["issuer"] = unhashed["issuer"]
    return Signature(sig_type, **fields)


def _is_self_signature(sig: Signature, primary: Key) -> bool:
    return sig.issuer is None or sig.issuer == primary.key_id


def parse_cert_packets(data: bytes) -> Cert:
    cert = None
    current = None
    for packet in iter_packets(data):
        if packet.tag in PRIMARY_KEY_TAGS:
            if cert is not None:
                logger.debug("Ignoring additional certificates in key material")
                break
            primary = parse_key(packet.body, packet.tag)
            cert = Cert(primary=primary)
            current = primary
        elif cert is None:
            raise ValueError("expected a primary key packet")
        elif packet.tag in SUBKEY_TAGS:
            current = parse_key(packet.body, packet.tag)
            cert.subkeys.append(current)
        elif packet.tag == TAG_USER_ID:
            cert.user_ids.append(packet.body.decode("utf-8", errors="replace"))
            current = cert.primary
        elif packet.tag == TAG_USER_ATTRIBUTE:
            current = cert.primary
        elif packet.tag == TAG_SIGNATURE:
            sig = parse_signature(packet.body)
            if sig is not None and _is_self_signature(sig, cert.primary):
                current.signatures.append(sig)

    if cert is None:
        raise ValueError("no key packets found")
    return cert


def parse_cert(key_material: Union[str, bytes]) -> Cert:
    """
    Parse an armored or binary transferable key into a Cert.

    Raises:
        KeyParseError: If the material is not a v4 OpenPGP certificate
    """
    try:
        return parse_cert_packets(to_binary(key_material))
    except (ValueError, PGPError) as e:
        raise KeyParseError(f"invalid key material: {e}") from e
