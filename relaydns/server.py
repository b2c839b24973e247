"""UDP DNS server answering from the cache or from upstream."""

from __future__ import annotations

import logging
import socket
import threading

from relaydns.cache import Cache
from relaydns.header import HEADER_SIZE, DNSError, parse_header
from relaydns.limiter import Limiter
from relaydns.question import NameDecodeError, handle_questions
from relaydns.response import build_response
from relaydns.upstream import UpstreamError, UpstreamResolver

log = logging.getLogger(__name__)

_POLL_INTERVAL = 0.5


class DNSServer:
    """Serves DNS queries over UDP with rate limiting and caching."""

    def __init__(
        self,
        address: tuple[str, int],
        rate: int = 20,
        *,
        cache: Cache | None = None,
        resolver: UpstreamResolver | None = None,
        edns: bool = False,
    ) -> None:
        self.address = address
        self.cache = cache if cache is not None else Cache()
        self.limiter = Limiter(rate)
        self.edns = edns
        self.buf_size = 4096 if edns else 512
        self.resolver = resolver if resolver is not None else UpstreamResolver(self.cache, edns=edns)
        self._sock: socket.socket | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def bound_address(self) -> tuple[str, int]:
        """The address the socket is bound to, or the configured one."""
        if self._sock is not None:
            return self._sock.getsockname()
        return self.address

    def handle_datagram(self, data: bytes, client_ip: str) -> bytes:
        """Return the reply to one datagram received from ``client_ip``."""
        reason = self.limiter.process_ip(client_ip)
        if reason is not None:
            return reason.encode()

        try:
            header = parse_header(data[:HEADER_SIZE])
        except DNSError as exc:
            return str(exc).encode()
        log.debug("request header: %s", header)

        try:
            questions = handle_questions(data, header.qdcount, self.cache)
        except NameDecodeError as exc:
            return str(exc).encode()
        log.debug("cached questions: %d", len(questions))

        if not questions:
            try:
                return self.resolver.query(data)
            except UpstreamError as exc:
                return str(exc).encode()

        header.set_flags(1, 0, 0, 0, 0, 0, 0, 0)
        header.qdcount = len(questions)
        if len(questions) == 1:
            header.ancount = 0
            header.nscount = 0
            header.arcount = 0
        return b"".join(build_response(header, q, self.cache) for q in questions)

    def start_udp(self) -> None:
        """Bind the socket and serve in a background thread."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(self.address)
        except OSError:
            sock.close()
            raise
        sock.settimeout(_POLL_INTERVAL)
        self._sock = sock
        self._stop.clear()
        self.limiter.start()
        self.cache.start_cleaner()
        self._thread = threading.Thread(target=self.serve_forever, daemon=True)
        self._thread.start()

    def serve_forever(self) -> None:
        """Answer datagrams until ``close_udp`` is called."""
        sock = self._sock
        if sock is None:
            raise RuntimeError("server is not started")
        while not self._stop.is_set():
            try:
                data, remote = sock.recvfrom(self.buf_size)
            except TimeoutError:
                continue
            except OSError as exc:
                if self._stop.is_set():
                    break
                log.warning("receive failed: %s", exc)
                continue
            reply = self.handle_datagram(data, remote[0])
            try:
                sock.sendto(reply, remote)
            except OSError as exc:
                log.warning("send to %s failed: %s", remote, exc)

    def close_udp(self) -> None:
        """Stop serving and release the socket."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        self.limiter.stop()
        self.cache.stop_cleaner()