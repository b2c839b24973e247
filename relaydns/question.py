"""Question section parsing and domain name decoding."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

from relaydns.header import HEADER_SIZE

if TYPE_CHECKING:
    from relaydns.cache import Cache

log = logging.getLogger(__name__)


class QType(IntEnum):
    A = 1
    NS = 2
    MD = 3
    MF = 4
    CNAME = 5
    SOA = 6
    MB = 7
    MG = 8
    MR = 9
    NULL = 10
    WKS = 11
    PTR = 12
    HINFO = 13
    MINFO = 14
    MX = 15
    TXT = 16
    AAAA = 28


class QClass(IntEnum):
    IN = 1
    CS = 2
    CH = 3
    HS = 4


class NameDecodeError(ValueError):
    """Raised when a name or question cannot be decoded."""


@dataclass(frozen=True)
class Question:
    name: str
    qtype: int
    qclass: int


def _as_enum(enum_type, value: int) -> int:
    try:
        return enum_type(value)
    except ValueError:
        return value


def _read_name(data: bytes, offset: int, visited: frozenset[int]) -> tuple[str, int]:
    labels: list[str] = []
    while offset < len(data):
        length = data[offset]
        if length == 0:
            return ".".join(labels), offset + 1

        if length & 0xC0 == 0xC0:
            if offset + 1 >= len(data):
                raise NameDecodeError("invalid compression pointer")
            ptr = int.from_bytes(data[offset:offset + 2], "big") & 0x3FFF
            if ptr in visited:
                raise NameDecodeError("compression is cycled")
            target, _ = _read_name(data, ptr, visited | {ptr})
            labels.append(target)
            return ".".join(labels), offset + 2

        end = offset + 1 + length
        if end > len(data):
            raise NameDecodeError("invalid label length")
        labels.append(data[offset + 1:end].decode("utf-8", "surrogateescape"))
        offset = end
    raise NameDecodeError("unexpected EOF")


def read_name(data: bytes, offset: int) -> tuple[str, int]:
    """Decode a possibly compressed name at ``offset``; return it and the next offset."""
    return _read_name(data, offset, frozenset())


def parse_questions(data: bytes, qdcount: int) -> list[Question]:
    """Decode ``qdcount`` questions that follow the header."""
    questions = []
    offset = HEADER_SIZE
    for _ in range(qdcount):
        name, offset = read_name(data, offset)
        if offset + 4 > len(data):
            raise NameDecodeError("unexpected EOF")
        qtype, qclass = struct.unpack_from("!HH", data, offset)
        offset += 4
        questions.append(Question(name, _as_enum(QType, qtype), _as_enum(QClass, qclass)))
    return questions


def handle_questions(data: bytes, qdcount: int, cache: Cache) -> list[Question]:
    """Return the questions of a query that the cache can answer."""
    questions = parse_questions(data, qdcount)
    log.debug("questions: %s", questions)
    return [q for q in questions if cache.get(int(q.qtype), q.name) is not None]