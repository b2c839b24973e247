"""Per-address request rate limiting with temporary bans."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta
from typing import Callable

BAN_TIME = timedelta(minutes=5)
ERR_BAN_IP = "access denied"
ERR_EXCEED_RPS = "exceed req/sec"

_WINDOW = timedelta(seconds=1)

Clock = Callable[[], datetime]


class RPSCounter:
    """Counts the requests one address made in the current second."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._count = 0
        self.last_request = self._clock()

    def increment(self) -> int:
        """Count one request and return the new total."""
        with self._lock:
            self._count += 1
            self.last_request = self._clock()
            return self._count

    def reset(self) -> None:
        """Start a new counting window."""
        with self._lock:
            self._count = 0

    def rps(self) -> int:
        """Requests counted in the current window."""
        with self._lock:
            return self._count


class Limiter:
    """Refuses addresses that exceed a request rate, banning them for a while."""

    def __init__(
        self,
        rps: int,
        clock: Clock | None = None,
        incoming_interval: float = 1.0,
        banned_interval: float = 10.0,
    ) -> None:
        self.limit = rps
        self._clock = clock or datetime.now
        self._incoming: dict[str, RPSCounter] = {}
        self._banned: dict[str, datetime] = {}
        self._lock = threading.Lock()
        self._incoming_interval = incoming_interval
        self._banned_interval = banned_interval
        self._stop: threading.Event | None = None
        self._thread: threading.Thread | None = None

    def process_ip(self, ip: str) -> str | None:
        """Count a request from ``ip``; return the reason if it is refused."""
        with self._lock:
            now = self._clock()
            expiry = self._banned.get(ip)
            if expiry is not None and expiry > now:
                return f"{ERR_BAN_IP} for {expiry}"

            counter = self._incoming.get(ip)
            if counter is None:
                counter = self._incoming[ip] = RPSCounter(self._clock)
            rps = counter.increment()

            if rps > self.limit:
                self._banned[ip] = now + BAN_TIME
                return f"{ERR_EXCEED_RPS}: {rps}"
        return None

    def clean_incoming(self) -> int:
        """Forget idle addresses and reset the rest; return how many were forgotten."""
        with self._lock:
            threshold = self._clock() - _WINDOW
            stale = [ip for ip, c in self._incoming.items() if c.last_request < threshold]
            for ip in stale:
                del self._incoming[ip]
            for counter in self._incoming.values():
                counter.reset()
        return len(stale)

    def clean_banned(self) -> int:
        """Lift bans that have run out; return how many were lifted."""
        with self._lock:
            now = self._clock()
            lifted = [ip for ip, expiry in self._banned.items() if expiry <= now]
            for ip in lifted:
                del self._banned[ip]
        return len(lifted)

    def start(self) -> None:
        """Run the periodic cleanup in a daemon thread."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            stop = threading.Event()
            self._stop = stop
            self._thread = threading.Thread(target=self._run, args=(stop,), daemon=True)
            self._thread.start()

    def stop(self) -> None:
        """Stop the periodic cleanup if it is running."""
        with self._lock:
            stop, thread = self._stop, self._thread
            self._stop = None
            self._thread = None
        if stop is not None:
            stop.set()
        if thread is not None:
            thread.join()

    def _run(self, stop: threading.Event) -> None:
        next_banned = time.monotonic() + self._banned_interval
        while not stop.wait(self._incoming_interval):
            self.clean_incoming()
            if time.monotonic() >= next_banned:
                self.clean_banned()
                next_banned = time.monotonic() + self._banned_interval