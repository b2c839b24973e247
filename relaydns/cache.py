"""In-memory record cache with expiry times."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable


@dataclass(frozen=True)
class Item:
    """A cached resource record."""

    qclass: int
    qtype: int
    length: int
    ip: bytes
    name: str
    exp: datetime


class Cache:
    """Thread-safe cache of resource records keyed by domain name."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or datetime.now
        self._items: dict[str, Item] = {}
        self._lock = threading.RLock()
        self._stop: threading.Event | None = None
        self._thread: threading.Thread | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._items

    def set(self, ip: bytes, name: str, qclass: int, qtype: int, length: int, ttl: int) -> None:
        """Store a record for ``name``, replacing any previous one."""
        item = Item(
            qclass=qclass,
            qtype=qtype,
            length=length,
            ip=bytes(ip),
            name=name,
            exp=self._clock() + timedelta(seconds=ttl),
        )
        with self._lock:
            self._items[name] = item

    def get(self, qtype: int, name: str) -> Item | None:
        """Return the live record for ``name`` of type ``qtype``, or None."""
        with self._lock:
            item = self._items.get(name)
            if item is not None and item.qtype == qtype and item.exp > self._clock():
                return item
        return None

    def clean_expired(self) -> int:
        """Drop records whose expiry lies in the past; return how many went."""
        with self._lock:
            now = self._clock()
            expired = [name for name, item in self._items.items() if item.exp < now]
            for name in expired:
                del self._items[name]
        return len(expired)

    def start_cleaner(self, interval: float = 10.0) -> None:
        """Run ``clean_expired`` every ``interval`` seconds in a daemon thread."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            stop = threading.Event()
            self._stop = stop
            self._thread = threading.Thread(
                target=self._run_cleaner, args=(interval, stop), daemon=True
            )
            self._thread.start()

    def stop_cleaner(self) -> None:
        """Stop the background cleaner if it is running."""
        with self._lock:
            stop, thread = self._stop, self._thread
            self._stop = None
            self._thread = None
        if stop is not None:
            stop.set()
        if thread is not None:
            thread.join()

    def _run_cleaner(self, interval: float, stop: threading.Event) -> None:
        while not stop.wait(interval):
            self.clean_expired()