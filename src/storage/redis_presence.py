# src/storage/redis_presence.py
from __future__ import annotations
from typing import Any, Iterable, List, Optional, Tuple
from redis.asyncio import Redis

from presence.tracker.store import ACTIVE_WINDOW_MS
from presence.utils.types import PresenceEntry

NAMESPACE = "presence"

def key(namespace: str = NAMESPACE) -> str:
    # {NS}:active  (sorted set: member=client_id, score=last_seen_ms)
    return f"{namespace}:active"

async def write_heartbeat(
    r: Redis,
    client_id: str,
    now_ms: int,
    *,
    window_ms: int = ACTIVE_WINDOW_MS,
    zset: str = key(),
) -> None:
    """
    Upsert one heartbeat and sweep everything older than the window, in a
    single pipeline. PEXPIRE drops the whole set if no instance writes for a
    full window.
    """
    p = r.pipeline()
    p.execute_command("ZADD", zset, int(now_ms), client_id)
    # exclusive bound: keep entries with now - ts <= window
    p.execute_command("ZREMRANGEBYSCORE", zset, "-inf", f"({int(now_ms) - window_ms}")
    p.execute_command("PEXPIRE", zset, window_ms)
    await p.execute()

def _pairs(data: Iterable[Any]) -> Iterable[Tuple[Any, Any]]:
    items = list(data)
    if items and isinstance(items[0], (list, tuple)):
        # RESP3 / callback-shaped reply: [[member, score], ...]
        for it in items:
            if len(it) == 2:
                yield it[0], it[1]
        return
    # RESP2 flat reply: [member, score, member, score, ...]
    for i in range(0, len(items) - 1, 2):
        yield items[i], items[i + 1]

def _text(v: Any) -> str:
    return v.decode("utf-8") if isinstance(v, (bytes, bytearray)) else str(v)

async def read_active(
    r: Redis,
    now_ms: int,
    *,
    window_ms: int = ACTIVE_WINDOW_MS,
    zset: str = key(),
) -> List[PresenceEntry]:
    """
    Entries with now - last_seen <= window across every instance writing to `zset`.
    Read-only; stale members are left for the next write to sweep.
    """
    data: Optional[list] = await r.execute_command(
        "ZRANGEBYSCORE", zset, int(now_ms) - window_ms, "+inf", "WITHSCORES"
    )
    if not data:
        return []
    out: List[PresenceEntry] = []
    for member, score in _pairs(data):
        try:
            out.append(PresenceEntry(client_id=_text(member), last_seen_ms=int(float(_text(score)))))
        except (TypeError, ValueError):
            # skip malformed members
            continue
    return out
