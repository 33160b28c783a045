"""Idempotency tokens for ECS create requests."""

import os
import threading
import time

_lock = threading.Lock()
_last_ns = 0


def time_ordered_uuid() -> str:
    """Return a UUID-shaped token whose string order follows creation order.

    The first 64 bits are a nanosecond timestamp, bumped when the clock does
    not advance so that every token in the process is strictly greater than
    the previous one. The last 64 bits are random.
    """
    global _last_ns
    with _lock:
        now = time.time_ns()
        if now <= _last_ns:
            now = _last_ns + 1
        _last_ns = now

    ts = f"{now:016x}"
    rnd = os.urandom(8).hex()
    return f"{ts[:8]}-{ts[8:12]}-{ts[12:16]}-{rnd[:4]}-{rnd[4:16]}"
