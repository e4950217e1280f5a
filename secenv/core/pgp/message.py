"""Encrypted message containers: SEIPD, compressed and literal data."""

import bz2
import hashlib
import logging
import zlib
from dataclasses import dataclass, field
from typing import List, Union

from secenv.core.pgp import algorithms as algos
from secenv.core.pgp.armor import to_binary
from secenv.core.pgp.exceptions import (
    MessageParseError,
    PGPError,
    UnsupportedAlgorithmError,
)
from secenv.core.pgp.packets import (
    TAG_AEAD,
    TAG_COMPRESSED,
    TAG_LITERAL,
    TAG_MARKER,
    TAG_ONE_PASS_SIGNATURE,
    TAG_PADDING,
    TAG_PKESK,
    TAG_SEIPD,
    TAG_SIGNATURE,
    TAG_SKESK,
    TAG_SYMMETRIC_DATA,
    Reader,
    iter_packets,
)
from secenv.core.pgp.session import PKESK, parse_pkesk

logger = logging.getLogger(__name__)

MDC_HEADER = b"\xd3\x14"
MDC_LENGTH = 22
MAX_NESTING = 8

SKIPPED_TAGS = (TAG_MARKER, TAG_PADDING)
SKIPPED_INNER_TAGS = (TAG_ONE_PASS_SIGNATURE, TAG_SIGNATURE, TAG_MARKER, TAG_PADDING)


@dataclass(frozen=True)
class EncryptedMessage:
    """Session key packets plus the SEIPD v1 body they unlock."""

    pkesks: List[PKESK] = field(default_factory=list)
    encrypted: bytes = b""


def parse_message(ciphertext: Union[str, bytes]) -> EncryptedMessage:
    """
    Split an armored or binary OpenPGP message into its outer packets.

    Raises:
        MessageParseError: If the message is malformed or not integrity protected
        UnsupportedAlgorithmError: For AEAD or SEIPD v2 containers
    """
    try:
        packets = list(iter_packets(to_binary(ciphertext)))
    except ValueError as e:
        raise MessageParseError(f"invalid message: {e}") from e

    pkesks = []
    for packet in packets:
        if packet.tag == TAG_PKESK:
            try:
                pkesks.append(parse_pkesk(packet.body))
            except UnsupportedAlgorithmError as e:
                logger.debug(f"Skipping session key packet: {e}")
            except ValueError as e:
                raise MessageParseError(f"invalid session key packet: {e}") from e
        elif packet.tag == TAG_SKESK:
            logger.debug("Skipping password-encrypted session key packet")
        elif packet.tag in SKIPPED_TAGS:
            continue
        elif packet.tag == TAG_SEIPD:
            if not packet.body or packet.body[0] != 1:
                raise UnsupportedAlgorithmError("unsupported encrypted data packet version")
            return EncryptedMessage(pkesks=pkesks, encrypted=packet.body[1:])
        elif packet.tag == TAG_SYMMETRIC_DATA:
            raise MessageParseError("message is not integrity protected")
        elif packet.tag == TAG_AEAD:
            raise UnsupportedAlgorithmError("AEAD encrypted messages are not supported")
        else:
            raise MessageParseError(f"unexpected packet with tag {packet.tag} in message")

    raise MessageParseError("message has no encrypted data packet")


def quick_check(message: EncryptedMessage, algo_id: int, session_key: bytes) -> bool:
    """Whether the session key decrypts the repeated prefix bytes correctly."""
    size = algos.symmetric_algorithm(algo_id).block_size
    if len(message.encrypted) < size + 2:
        return False
    prefix = algos.cfb_decrypt(
        algo_id, session_key, b"\x00" * size, message.encrypted[: size + 2]
    )
    return prefix[size - 2 : size] == prefix[size : size + 2]


def decrypt_data(message: EncryptedMessage, algo_id: int, session_key: bytes) -> bytes:
    """
    Decrypt the SEIPD body and verify its modification detection code.

    Returns:
        The packets protected by the container

    Raises:
        MessageParseError: If the MDC is missing or does not match
    """
    size = algos.symmetric_algorithm(algo_id).block_size
    plaintext = algos.cfb_decrypt(algo_id, session_key, b"\x00" * size, message.encrypted)
    if len(plaintext) < size + 2 + MDC_LENGTH:
        raise MessageParseError("encrypted data is truncated")

    mdc = plaintext[-MDC_LENGTH:]
    if mdc[:2] != MDC_HEADER or hashlib.sha1(plaintext[:-20]).digest() != mdc[2:]:
        raise MessageParseError("message integrity check failed")
    return plaintext[size + 2 : -MDC_LENGTH]


def _decompress(body: bytes) -> bytes:
    reader = Reader(body)
    algorithm = reader.read_byte()
    data = reader.rest()
    try:
        if algorithm == 0:
            return data
        if algorithm == 1:
            inflater = zlib.decompressobj(-15)
            inflated = inflater.decompress(data) + inflater.flush()
            if not inflater.eof:
                raise MessageParseError("failed to decompress message: truncated stream")
            return inflated
        if algorithm == 2:
            return zlib.decompress(data)
        if algorithm == 3:
            return bz2.decompress(data)
    except (zlib.error, OSError, ValueError) as e:
        raise MessageParseError(f"failed to decompress message: {e}") from e
    raise UnsupportedAlgorithmError(f"unsupported compression algorithm {algorithm}")


def _literal_body(body: bytes) -> bytes:
    reader = Reader(body)
    reader.read_byte()  # format
    reader.read(reader.read_byte())  # file name
    reader.read_u32()  # date
    return reader.rest()


def literal_data(packets: bytes, depth: int = 0) -> bytes:
    """
    Extract the literal data from decrypted packets.

    Signatures are skipped without verification; compressed packets are
    unpacked recursively.
    """
    if depth > MAX_NESTING:
        raise MessageParseError("message nests compressed data too deeply")

    try:
        for packet in iter_packets(packets):
            if packet.tag == TAG_LITERAL:
                return _literal_body(packet.body)
            if packet.tag == TAG_COMPRESSED:
                return literal_data(_decompress(packet.body), depth + 1)
            if packet.tag not in SKIPPED_INNER_TAGS:
                raise MessageParseError(f"unexpected packet with tag {packet.tag} in message")
    except ValueError as e:
        raise MessageParseError(f"invalid message contents: {e}") from e

    raise MessageParseError("message has no literal data")


def decrypt_message(message: EncryptedMessage, algo_id: int, session_key: bytes) -> bytes:
    """Decrypt, verify and unpack a message with a recovered session key."""
    try:
        return literal_data(decrypt_data(message, algo_id, session_key))
    except PGPError:
        raise
    except ValueError as e:
        raise MessageParseError(f"failed to decrypt message: {e}") from e
