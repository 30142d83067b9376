"""Namers for CERTSUITE."""

import random
import string
import threading

from ulid import monotonic

from certsuite.interfaces.namer import Namer

# pylint: disable=too-few-public-methods


class ULIDNamer(Namer):
    """Thread-safe namer backed by monotonic ULIDs.

    ULIDs are unique across processes and strictly increasing within one, so
    names never collide even when many cases run in parallel. This namer uses
    the `ulid-py` library; its Crockford base32 output is lowercased to be
    DNS-safe.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def random_string(self, length: int) -> str:
        """Return ``length`` characters drawn from fresh ULIDs.

        Each ULID is reversed so its fastest-changing characters come first;
        that keeps short prefixes unique under the monotonic increment.
        """
        chunks: list[str] = []
        size = 0
        with self._lock:
            while size < length:
                chunk = str(monotonic.new()).lower()[::-1]
                chunks.append(chunk)
                size += len(chunk)
        return "".join(chunks)[:length]


class SeededNamer(Namer):
    """Deterministic namer seeded from `random.Random`.

    Produces lowercase letters only.
    Values already handed out are remembered and never repeated.

    Note:
        Meant for tests and reproducible runs; names are predictable.
    """

    ALPHABET = string.ascii_lowercase

    def __init__(self, seed: int = 0) -> None:
        self._random = random.Random(seed)
        self._lock = threading.Lock()
        self._issued: set[str] = set()

    def random_string(self, length: int) -> str:
        """Return ``length`` random lowercase letters not returned before."""
        with self._lock:
            while True:
                value = "".join(self._random.choices(self.ALPHABET, k=length))
                if value not in self._issued:
                    self._issued.add(value)
                    return value
