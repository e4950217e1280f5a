"""OpenPGP packet framing (RFC 4880 section 4).

Low-level parsing raises ValueError; callers turn it into KeyParseError
or MessageParseError depending on what they were reading.
"""

from dataclasses import dataclass
from typing import Iterator, List

# Packet tags used by this engine
TAG_PKESK = 1
TAG_SIGNATURE = 2
TAG_SKESK = 3
TAG_ONE_PASS_SIGNATURE = 4
TAG_SECRET_KEY = 5
TAG_PUBLIC_KEY = 6
TAG_SECRET_SUBKEY = 7
TAG_COMPRESSED = 8
TAG_SYMMETRIC_DATA = 9
TAG_MARKER = 10
TAG_LITERAL = 11
TAG_USER_ID = 13
TAG_PUBLIC_SUBKEY = 14
TAG_USER_ATTRIBUTE = 17
TAG_SEIPD = 18
TAG_AEAD = 20
TAG_PADDING = 21


class Reader:
    """Cursor over a packet body with bounds-checked reads."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = data
        self.offset = offset

    def remaining(self) -> int:
        return len(self.data) - self.offset

    def read(self, n: int) -> bytes:
        if n < 0 or self.offset + n > len(self.data):
            raise ValueError("truncated packet")
        chunk = self.data[self.offset : self.offset + n]
        self.offset += n
        return chunk

    def read_byte(self) -> int:
        return self.read(1)[0]

    def read_u16(self) -> int:
        return int.from_bytes(self.read(2), "big")

    def read_u32(self) -> int:
        return int.from_bytes(self.read(4), "big")

    def read_mpi(self) -> int:
        bits = self.read_u16()
        return int.from_bytes(self.read((bits + 7) // 8), "big")

    def read_mpi_bytes(self) -> bytes:
        bits = self.read_u16()
        return self.read((bits + 7) // 8)

    def rest(self) -> bytes:
        chunk = self.data[self.offset :]
        self.offset = len(self.data)
        return chunk


@dataclass(frozen=True)
class Packet:
    tag: int
    body: bytes


def _new_format_length(reader: Reader):
    """Returns (length, is_partial)."""
    first = reader.read_byte()
    if first < 192:
        return first, False
    if first < 224:
        return ((first - 192) << 8) + reader.read_byte() + 192, False
    if first == 255:
        return reader.read_u32(), False
    return 1 << (first & 0x1F), True


def _read_packet(reader: Reader) -> Packet:
    ctb = reader.read_byte()
    if not ctb & 0x80:
        raise ValueError(f"invalid packet header 0x{ctb:02x}")

    if ctb & 0x40:
        tag = ctb & 0x3F
        length, partial = _new_format_length(reader)
        chunks = [reader.read(length)]
        while partial:
            length, partial = _new_format_length(reader)
            chunks.append(reader.read(length))
        return Packet(tag, b"".join(chunks))

    tag = (ctb >> 2) & 0x0F
    length_type = ctb & 0x03
    if length_type == 3:
        # Indeterminate length runs to the end of the data
        return Packet(tag, reader.rest())
    length = int.from_bytes(reader.read(1 << length_type), "big")
    return Packet(tag, reader.read(length))


def iter_packets(data: bytes) -> Iterator[Packet]:
    reader = Reader(data)
    while reader.remaining():
        yield _read_packet(reader)


def parse_packets(data: bytes) -> List[Packet]:
    return list(iter_packets(data))
