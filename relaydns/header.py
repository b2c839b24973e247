"""DNS message header parsing and encoding."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass

log = logging.getLogger(__name__)

QR_BIT = 15
OPCODE_BIT = 11
AA_BIT = 10
TC_BIT = 9
RD_BIT = 8
RA_BIT = 7
Z_BIT = 4
RCODE_BIT = 0

HEADER_SIZE = 12
_HEADER = struct.Struct("!6H")


class DNSError(Exception):
    """Base class for errors reported while handling a DNS message."""

    default_message = "DNS error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class FormatError(DNSError):
    default_message = "the server was unable to interpret the query"


class ServerFailure(DNSError):
    default_message = (
        "the name server was unable to process this query due to a problem with the name server"
    )


class NameErrorResponse(DNSError):
    default_message = "the domain name referenced in the query does not exist"


class NotImplementedQuery(DNSError):
    default_message = "the name server doesn't support the requested kind of query"


class Refused(DNSError):
    default_message = (
        "the name server refuses to perform the specified operation for policy reasons"
    )


class UnsupportedRcode(DNSError):
    default_message = "the unsupported option opcode (reserved for future)"


class MalformedHeader(DNSError):
    default_message = "malformed DNS header"


_RCODE_ERRORS: dict[int, type[DNSError]] = {
    1: FormatError,
    2: ServerFailure,
    3: NameErrorResponse,
    4: NotImplementedQuery,
    5: Refused,
}


@dataclass(frozen=True)
class Flags:
    """The individual fields of the header flags word."""

    qr: int = 0
    opcode: int = 0
    aa: int = 0
    tc: int = 0
    rd: int = 0
    ra: int = 0
    z: int = 0
    rcode: int = 0

    @classmethod
    def from_int(cls, value: int) -> Flags:
        return cls(
            qr=(value >> QR_BIT) & 0x1,
            opcode=(value >> OPCODE_BIT) & 0xF,
            aa=(value >> AA_BIT) & 0x1,
            tc=(value >> TC_BIT) & 0x1,
            rd=(value >> RD_BIT) & 0x1,
            ra=(value >> RA_BIT) & 0x1,
            z=(value >> Z_BIT) & 0x7,
            rcode=value & 0xF,
        )

    def to_int(self) -> int:
        value = (
            (self.qr << QR_BIT)
            | ((self.opcode & 0xF) << OPCODE_BIT)
            | (self.aa << AA_BIT)
            | (self.tc << TC_BIT)
            | (self.rd << RD_BIT)
            | (self.ra << RA_BIT)
            | ((self.z & 0x7) << Z_BIT)
            | (self.rcode & 0xF)
        )
        return value & 0xFFFF


@dataclass
class Header:
    """The fixed twelve-byte DNS header."""

    id: int = 0
    flags: int = 0
    qdcount: int = 0
    ancount: int = 0
    nscount: int = 0
    arcount: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> Header:
        """Decode the header fields without validating them."""
        if len(data) < HEADER_SIZE:
            raise MalformedHeader("DNS message is too short")
        return cls(*_HEADER.unpack_from(data))

    def flag_fields(self) -> Flags:
        return Flags.from_int(self.flags)

    def set_flags(self, qr, opcode, aa, tc, rd, ra, z, rcode) -> None:
        self.flags = Flags(qr, opcode, aa, tc, rd, ra, z, rcode).to_int()

    def encode(self) -> bytes:
        return _HEADER.pack(
            self.id, self.flags, self.qdcount, self.ancount, self.nscount, self.arcount
        )


def parse_header(data: bytes) -> Header:
    """Decode and validate a query header, raising the error its codes imply."""
    header = Header.from_bytes(data)
    flags = header.flag_fields()

    if header.qdcount == 0:
        raise MalformedHeader("QDCOUNT is 0")

    rcode = 4 if flags.opcode != 0 else flags.rcode
    log.debug("header flags %s, effective rcode %d", flags, rcode)

    if rcode in _RCODE_ERRORS:
        raise _RCODE_ERRORS[rcode]()
    if rcode >= 6:
        raise UnsupportedRcode()
    return header