"""Building answers from cached records."""

from __future__ import annotations

import logging
import struct

from relaydns.cache import Cache
from relaydns.compress import Compressor
from relaydns.header import HEADER_SIZE, Header
from relaydns.question import Question

log = logging.getLogger(__name__)

_QUESTION_POINTER = bytes([0xC0, 0x0C])


def build_response(header: Header, question: Question, cache: Cache) -> bytes:
    """Encode a reply to ``question`` from the cache, counting it in ``header``."""
    header.ancount += 1

    out = bytearray(header.encode())
    compressor = Compressor()
    compressor.add_name("", HEADER_SIZE)
    log.debug("response header: %s", header)

    qtype, qclass = int(question.qtype), int(question.qclass)
    out += compressor.encode_name(question.name, len(out))
    out += struct.pack("!HH", qtype, qclass)
    log.debug("response question: %s", question)

    record = cache.get(qtype, question.name)
    ttl = record.exp.second if record else 0
    length = record.length if record else 0

    out += _QUESTION_POINTER
    out += struct.pack("!HHIH", qtype, qclass, ttl, length)
    if record:
        out += record.ip
    return bytes(out)