"""Domain name encoding with message compression pointers."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace


@dataclass
class NameInfo:
    """Where a name was first written and how often it was pointed to."""

    pointer: int = 0
    offset: int = 0


class Compressor:
    """Remembers written names and emits pointers for repeats."""

    def __init__(self) -> None:
        self._names: dict[str, NameInfo] = {}
        self._lock = threading.Lock()

    def add_name(self, name: str, offset: int) -> None:
        """Record ``name`` at ``offset`` unless it is already known."""
        with self._lock:
            self._names.setdefault(name, NameInfo(pointer=0, offset=offset))

    def info(self, name: str) -> NameInfo | None:
        """Return a copy of what is known about ``name``, or None."""
        with self._lock:
            found = self._names.get(name)
            return replace(found) if found is not None else None

    def encode_name(self, name: str, curr_offset: int) -> bytes:
        """Encode ``name`` as labels, or as a pointer if written earlier."""
        with self._lock:
            known = self._names.get(name)
            if known is not None and known.offset < curr_offset:
                known.pointer += 1
                return ((0xC000 | known.offset) & 0xFFFF).to_bytes(2, "big")

            out = bytearray()
            for label in name.split("."):
                raw = label.encode("utf-8", "surrogateescape")
                if raw:
                    out.append(len(raw) & 0xFF)
                    out += raw
            out.append(0)
            self._names.setdefault(name, NameInfo(pointer=0, offset=curr_offset))
            return bytes(out)