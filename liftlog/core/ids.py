"""Identifier generation and the deterministic ordering rules used by every store.

Ids are UUIDv7-style: a 48-bit millisecond timestamp followed by a 12-bit
sequence that is monotonic within this process, so ids generated here sort in
creation order. Every ordering in the system uses the id as the final
tie-break, which makes each ordering total.
"""

from __future__ import annotations

import secrets
import threading
import time
import uuid
from datetime import datetime, timezone

_lock = threading.Lock()
_last_ms = 0
_seq = 0
_SEQ_MAX = 0xFFF


def new_id() -> uuid.UUID:
    """Return a fresh time-ordered UUID (version 7 layout)."""
    global _last_ms, _seq
    with _lock:
        now_ms = time.time_ns() // 1_000_000
        if now_ms > _last_ms:
            _last_ms = now_ms
            # Random start leaves headroom for the rest of the millisecond
            _seq = secrets.randbits(10)
        else:
            # Same millisecond, or the clock stepped back: keep counting
            _seq += 1
            if _seq > _SEQ_MAX:
                _last_ms += 1
                _seq = 0
        ts_ms, seq = _last_ms, _seq
    value = (
        (ts_ms & 0xFFFF_FFFF_FFFF) << 80
        | 0x7 << 76
        | seq << 64
        | 0b10 << 62
        | secrets.randbits(62)
    )
    return uuid.UUID(int=value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so aware and naive values compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Sort keys. Each store orders by exactly these keys so results agree across backends.

def exercise_order_key(order_index: int, item_id: uuid.UUID) -> tuple[int, uuid.UUID]:
    """Workout exercises: ascending order_index, then id."""
    return (order_index, item_id)


def set_order_key(created_at: datetime, set_id: uuid.UUID) -> tuple[datetime, uuid.UUID]:
    """Sets: creation order (created_at, then id)."""
    return (as_utc(created_at), set_id)


def history_order_key(performed_at: datetime, entry_id: uuid.UUID) -> tuple[datetime, uuid.UUID]:
    """History: used with reverse=True for (performed_at DESC, id DESC)."""
    return (as_utc(performed_at), entry_id)


def clamp_limit(limit: int | None, default: int, maximum: int) -> int:
    """Clamp a page size into [1, maximum]; None means default."""
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))
