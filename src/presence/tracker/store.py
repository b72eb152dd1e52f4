from __future__ import annotations

import threading
from typing import Optional

from presence.ingest.client_id import UNKNOWN_CLIENT
from presence.utils.time import age_ms
from presence.utils.types import PresenceEntry

ACTIVE_WINDOW_MS = 120_000  # 2 minutes, fixed

class PresenceStore:
    """
    In-process map of client id -> last heartbeat (epoch ms).

    Eviction is two-tier:
      - record_heartbeat() sweeps the whole map after writing (O(n))
      - list_active() only filters a snapshot and never deletes

    So an entry can stay physically present after it went stale, until some
    client's next heartbeat. It is never returned by list_active() once
    now - last_seen > ACTIVE_WINDOW_MS.

    One instance lives for the whole process. The lock makes write+sweep and
    the read snapshot atomic under threads; under the asyncio server every
    call already runs without a suspension point.

    State is local to this process: several instances behind a balancer each
    see only their own traffic (see RedisPresenceMirror for a shared view).
    """
    __slots__ = ("_seen", "_lock")

    def __init__(self):
        self._seen: dict[str, int] = {}  # client_id -> last_seen_ms
        self._lock = threading.Lock()

    @property
    def window_ms(self) -> int:
        return ACTIVE_WINDOW_MS

    def record_heartbeat(self, client_id: str, now_ms: int) -> None:
        # last write wins, even if now_ms is older than what we hold
        cid = client_id or UNKNOWN_CLIENT
        with self._lock:
            self._seen[cid] = int(now_ms)
            self._sweep(int(now_ms))

    def list_active(self, now_ms: int) -> list[PresenceEntry]:
        with self._lock:
            snapshot = list(self._seen.items())
        return [
            PresenceEntry(client_id=cid, last_seen_ms=ts)
            for cid, ts in snapshot
            if age_ms(ts, now_ms) <= ACTIVE_WINDOW_MS
        ]

    def get(self, client_id: str) -> Optional[int]:
        with self._lock:
            return self._seen.get(client_id)

    def __len__(self) -> int:
        return len(self._seen)

    def _sweep(self, now_ms: int) -> int:
        # caller holds the lock
        stale = [cid for cid, ts in self._seen.items() if age_ms(ts, now_ms) > ACTIVE_WINDOW_MS]
        for cid in stale:
            del self._seen[cid]
        return len(stale)
