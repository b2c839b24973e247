"""Forwarding queries to public resolvers and caching their answers."""

from __future__ import annotations

import logging
import socket
import struct
from typing import Iterable

from relaydns.cache import Cache
from relaydns.header import HEADER_SIZE, DNSError, parse_header
from relaydns.question import NameDecodeError, QType, read_name

log = logging.getLogger(__name__)

DEFAULT_SERVERS: tuple[tuple[str, int], ...] = (
    ("8.8.8.8", 53),
    ("8.8.4.4", 53),
    ("1.1.1.1", 53),
    ("8.8.8.8", 853),
)

_RR_HEADER = struct.Struct("!HHIH")
_CACHEABLE = (int(QType.A), int(QType.AAAA))


class UpstreamError(Exception):
    """Raised when an upstream resolver cannot be used or answers badly."""


class UpstreamResolver:
    """Sends raw queries to the first reachable upstream server."""

    def __init__(
        self,
        cache: Cache,
        edns: bool = False,
        servers: Iterable[tuple[str, int]] = DEFAULT_SERVERS,
        timeout: float = 5.0,
    ) -> None:
        self.cache = cache
        self.edns = edns
        self.servers = tuple(servers)
        self.timeout = timeout

    @property
    def network(self) -> str:
        return "tcp" if self.edns else "udp"

    @property
    def msg_size(self) -> int:
        return 4096 if self.edns else 512

    def _connect(self) -> socket.socket:
        last_error: OSError | None = None
        for host, port in self.servers:
            try:
                if self.edns:
                    return socket.create_connection((host, port), timeout=self.timeout)
                sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
                try:
                    sock.settimeout(self.timeout)
                    sock.connect((host, port))
                except OSError:
                    sock.close()
                    raise
                return sock
            except OSError as exc:
                last_error = exc
        raise UpstreamError(f"no upstream server reachable: {last_error}")

    def query(self, request: bytes) -> bytes:
        """Forward ``request``, cache the answers, and return the raw reply."""
        with self._connect() as sock:
            try:
                sock.sendall(request)
            except OSError as exc:
                log.warning("error sending request upstream: %s", exc)
                raise UpstreamError(f"error sending request upstream: {exc}") from exc
            try:
                data = sock.recv(self.msg_size)
            except OSError as exc:
                log.warning("error reading answer from upstream: %s", exc)
                raise UpstreamError(f"error reading answer from upstream: {exc}") from exc

        self.parse_response(data)
        return data

    def parse_response(self, data: bytes) -> int:
        """Cache the A and AAAA answers in ``data``; return how many were stored."""
        try:
            header = parse_header(data[:HEADER_SIZE])
            offset = HEADER_SIZE
            for _ in range(header.qdcount):
                _, offset = read_name(data, offset)
                offset += 4

            stored = 0
            for _ in range(header.ancount):
                name, offset = read_name(data, offset)
                if offset + _RR_HEADER.size > len(data):
                    raise UpstreamError("wrong answer's format")
                rtype, rclass, ttl, length = _RR_HEADER.unpack_from(data, offset)
                offset += _RR_HEADER.size
                log.debug("answer %s type=%d class=%d ttl=%d len=%d", name, rtype, rclass, ttl, length)

                if rtype not in _CACHEABLE:
                    raise UpstreamError("unsupported type of record")
                if offset + length > len(data):
                    raise UpstreamError("wrong answer's format")
                self.cache.set(data[offset:offset + length], name, rclass, rtype, length, ttl)
                offset += length
                stored += 1
            return stored
        except (DNSError, NameDecodeError) as exc:
            raise UpstreamError(f"error parsing answer from upstream: {exc}") from exc