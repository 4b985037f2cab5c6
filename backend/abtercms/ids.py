"""ID generation utilities.

Identifiers are ULIDs: a 48-bit millisecond timestamp followed by 80 random bits,
encoded as 26 Crockford base32 characters so that string order follows time order.
"""

from __future__ import annotations

import os
import random
import threading
import time

from ulid import ULID

_RANDOM_BYTES = 10
_TIMESTAMP_BYTES = 6
_MAX_TIMESTAMP = (1 << 48) - 1


class IdGenerator:
    """Mints time-ordered identifiers.

    One instance may be shared between threads. Without overrides the ULID library
    supplies both clock and entropy; an injected `random.Random` is used under a lock.
    """

    def __init__(self, *, entropy: random.Random | None = None, fixed_time_ms: int | None = None):
        self._entropy = entropy
        self._lock = threading.Lock()
        self._fixed_time_ms = fixed_time_ms

    def _random_bytes(self) -> bytes:
        if self._entropy is None:
            return os.urandom(_RANDOM_BYTES)
        with self._lock:
            return self._entropy.randbytes(_RANDOM_BYTES)

    def new(self) -> ULID:
        if self._entropy is None and self._fixed_time_ms is None:
            return ULID.from_timestamp(time.time())

        ms = int(self._fixed_time_ms) if self._fixed_time_ms is not None else time.time_ns() // 1_000_000
        if not 0 <= ms <= _MAX_TIMESTAMP:
            raise ValueError(f"timestamp out of range for ULID: {ms}")
        return ULID.from_bytes(ms.to_bytes(_TIMESTAMP_BYTES, "big") + self._random_bytes())

    def new_string(self) -> str:
        return str(self.new())
