"""Command-line entry point that runs the DNS server."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Mapping, Sequence

from dotenv import load_dotenv

from relaydns.server import DNSServer

log = logging.getLogger(__name__)

PORT_VARIABLE = "udp_port"


def load_port(environ: Mapping[str, str]) -> int:
    """Read the UDP port from ``environ``."""
    raw = environ.get(PORT_VARIABLE)
    if raw is None:
        raise ValueError(f"{PORT_VARIABLE} is not set")
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"invalid {PORT_VARIABLE}: {raw!r}") from None


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server until SIGINT or SIGTERM; return the exit status."""
    parser = argparse.ArgumentParser(prog="relaydns", description="Caching DNS relay over UDP.")
    parser.add_argument("--env-file", default=".env", help="file holding udp_port")
    parser.add_argument("--rate", type=int, default=20, help="requests per second per client")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    env_path = Path(args.env_file)
    if not env_path.is_file():
        log.error("cannot open %s", env_path)
        return 1
    load_dotenv(env_path, override=False)

    try:
        port = load_port(os.environ)
    except ValueError as exc:
        log.error("%s", exc)
        return 1

    server = DNSServer(("0.0.0.0", port), args.rate)
    try:
        server.start_udp()
    except OSError as exc:
        log.error("failed to listen udp address: %s", exc)
        return 1
    log.info("DNS is running on udp: %d", port)

    stop = threading.Event()
    previous = {
        sig: signal.signal(sig, lambda *_: stop.set()) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        while not stop.wait(0.5):
            pass
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        server.close_udp()
    return 0