from contextlib import contextmanager
from datetime import datetime, timedelta
import socket
import threading

import pytest

from relaydns.cache import Cache
from relaydns.upstream import UpstreamError, UpstreamResolver

DNS_QUERY = bytes(
    [
        0x12, 0x34,  # ID
        0x01, 0x00,  # Flags
        0x00, 0x01,  # Questions
        0x00, 0x00,  # Answers
        0x00, 0x00,  # Authorities
        0x00, 0x00,  # Additional
        0x07, *b"youtube",
        0x03, *b"com",
        0x00,
        0x00, 0x01, 0x00, 0x01,
    ]
)
ANSWER_IP = bytes([142, 250, 0, 1])


def make_response(flags=(0x81, 0x80), rtype=1):
    return (
        DNS_QUERY[:2]
        + bytes([*flags, 0, 1, 0, 1, 0, 0, 0, 0])
        + DNS_QUERY[12:]
        + bytes([0xC0, 0x0C, 0, rtype, 0, 1, 0, 0, 0x01, 0x2C, 0, 4])
        + ANSWER_IP
    )


NOW = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def cache():
    return Cache(clock=lambda: NOW)


@contextmanager
def fake_upstream(reply):
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(5)
    received = []

    def serve():
        try:
            data, addr = sock.recvfrom(4096)
        except OSError:
            return
        received.append(data)
        if reply is not None:
            sock.sendto(reply, addr)

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    try:
        yield sock.getsockname(), received
    finally:
        thread.join(6)
        sock.close()


def test_request_to_upstream(cache):
    response = make_response()
    with fake_upstream(response) as (address, received):
        resolver = UpstreamResolver(cache, servers=[address], timeout=3)
        answer = resolver.query(DNS_QUERY)
    assert received == [DNS_QUERY]
    assert answer == response
    item = cache.get(1, "youtube.com")
    assert item.ip == ANSWER_IP
    assert item.exp == NOW + timedelta(seconds=300)


def test_silent_upstream_times_out(cache):
    with fake_upstream(None) as (address, _):
        resolver = UpstreamResolver(cache, servers=[address], timeout=0.2)
        with pytest.raises(UpstreamError, match="error reading answer"):
            resolver.query(DNS_QUERY)


def test_unreachable_tcp_servers(cache):
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    resolver = UpstreamResolver(cache, edns=True, servers=[("127.0.0.1", port)], timeout=1)
    with pytest.raises(UpstreamError, match="no upstream server reachable"):
        resolver.query(DNS_QUERY)


def test_network_and_size_follow_edns(cache):
    assert UpstreamResolver(cache).network == "udp"
    assert UpstreamResolver(cache).msg_size == 512
    assert UpstreamResolver(cache, edns=True).network == "tcp"
    assert UpstreamResolver(cache, edns=True).msg_size == 4096


def test_parse_response_caches_answer(cache):
    resolver = UpstreamResolver(cache)
    assert resolver.parse_response(make_response()) == 1
    item = cache.get(1, "youtube.com")
    assert (item.qclass, item.qtype, item.length) == (1, 1, 4)


def test_parse_response_rejects_unsupported_type(cache):
    resolver = UpstreamResolver(cache)
    with pytest.raises(UpstreamError, match="unsupported type of record"):
        resolver.parse_response(make_response(rtype=5))
    assert len(cache) == 0


def test_parse_response_rejects_truncated_answer(cache):
    resolver = UpstreamResolver(cache)
    with pytest.raises(UpstreamError, match="wrong answer's format"):
        resolver.parse_response(make_response()[:-8])


def test_parse_response_reports_error_rcode(cache):
    resolver = UpstreamResolver(cache)
    with pytest.raises(UpstreamError, match="does not exist"):
        resolver.parse_response(make_response(flags=(0x81, 0x83)))


def test_parse_response_rejects_short_message(cache):
    resolver = UpstreamResolver(cache)
    with pytest.raises(UpstreamError, match="too short"):
        resolver.parse_response(b"\x12\x34")