"""OpenPGP ASCII armor (RFC 4880 section 6)."""

import base64
import binascii
from typing import Union

CRC24_INIT = 0xB704CE
CRC24_POLY = 0x1864CFB

BEGIN_PREFIX = "-----BEGIN PGP "
END_PREFIX = "-----END PGP "


def crc24(data: bytes) -> int:
    crc = CRC24_INIT
    for byte in data:
        crc ^= byte << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= CRC24_POLY
    return crc & 0xFFFFFF


def is_armored(data: Union[str, bytes]) -> bool:
    if isinstance(data, bytes):
        return BEGIN_PREFIX.encode("ascii") in data
    return BEGIN_PREFIX in data


def dearmor(text: Union[str, bytes]) -> bytes:
    """
    Decode the first armored block in `text`.

    Armor headers are skipped. The CRC-24 checksum line is optional, but
    must match when present.

    Raises:
        ValueError: If the armor is missing, truncated or corrupt
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("ascii")
        except UnicodeDecodeError as e:
            raise ValueError("armored data is not ASCII") from e

    lines = [line.strip() for line in text.splitlines()]
    try:
        start = next(i for i, line in enumerate(lines) if line.startswith(BEGIN_PREFIX))
    except StopIteration:
        raise ValueError("no armor header line found") from None

    i = start + 1
    # Headers run up to the first blank line; gpg may omit them entirely
    while i < len(lines) and lines[i] and ":" in lines[i]:
        i += 1
    if i < len(lines) and not lines[i]:
        i += 1

    body = []
    checksum = None
    for line in lines[i:]:
        if line.startswith(END_PREFIX):
            break
        if line.startswith("=") and len(line) == 5:
            checksum = line[1:]
            continue
        if line:
            body.append(line)
    else:
        raise ValueError("armor tail line not found")

    try:
        data = base64.b64decode("".join(body), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"invalid armor body: {e}") from e

    if checksum is not None:
        try:
            expected = int.from_bytes(base64.b64decode(checksum, validate=True), "big")
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"invalid armor checksum: {e}") from e
        if crc24(data) != expected:
            raise ValueError("armor checksum mismatch")

    return data


def to_binary(data: Union[str, bytes]) -> bytes:
    """Binary packet data from armored text or raw bytes."""
    if is_armored(data):
        return dearmor(data)
    if isinstance(data, str):
        raise ValueError("expected ASCII-armored data")
    return data
