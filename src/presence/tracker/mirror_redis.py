from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
import structlog

from presence.utils.backoff import Backoff
from presence.utils.types import PresenceEntry
from storage import redis_presence

log = structlog.get_logger("redis_mirror")

@dataclass(slots=True)
class MirrorStats:
    enq_ok: int = 0
    enq_drop: int = 0
    written: int = 0
    errors: int = 0

class RedisPresenceMirror:
    """
    Optional Redis mirror of heartbeats, shared by every instance pointing at
    the same key. Non-blocking best-effort writes: the request path only
    enqueues, a background task does the I/O and drops on failure.
    """
    def __init__(
        self,
        url: str,
        *,
        key: str = redis_presence.key(),
        enabled: bool = False,
        queue_maxsize: int = 5000,
        initial_backoff_s: float = 0.25,
        max_backoff_s: float = 10.0,
    ):
        self.enabled = enabled
        self.url = url
        self.key = key
        self.stats = MirrorStats()
        self._r: Optional[redis.Redis] = None
        self._q: asyncio.Queue = asyncio.Queue(maxsize=queue_maxsize)
        self._task: Optional[asyncio.Task] = None
        self._backoff = Backoff(initial=initial_backoff_s, cap=max_backoff_s)

    async def start(self):
        if not self.enabled:
            return
        self._r = redis.from_url(self.url, decode_responses=True)
        self._task = asyncio.create_task(self._writer_loop(), name="redis-presence-mirror")
        log.info("redis_mirror_started", url=self.url, key=self.key)

    async def stop(self):
        if not self.enabled:
            return
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                # writer died on a non-Redis error; keep shutting down
                log.error("redis_mirror_writer_crashed", err=repr(e))
            self._task = None
        if self._r:
            await self._r.aclose()
            self._r = None
        log.info("redis_mirror_stopped", **self._stats_dict())

    def record(self, client_id: str, now_ms: int) -> None:
        """
        Enqueue a best-effort heartbeat write. Never blocks, drops when full.
        """
        if not self.enabled:
            return
        try:
            self._q.put_nowait((client_id, int(now_ms)))
            self.stats.enq_ok += 1
        except asyncio.QueueFull:
            # drop under pressure
            self.stats.enq_drop += 1

    async def read_active(self, now_ms: int) -> list[PresenceEntry]:
        if not self.enabled or self._r is None:
            raise RuntimeError("redis presence mirror is not running")
        return await redis_presence.read_active(self._r, now_ms, zset=self.key)

    async def _writer_loop(self):
        assert self._r is not None
        r = self._r
        try:
            while True:
                client_id, now_ms = await self._q.get()
                try:
                    await redis_presence.write_heartbeat(r, client_id, now_ms, zset=self.key)
                except RedisError as e:
                    # mirror only; this heartbeat is lost
                    self.stats.errors += 1
                    log.warning(
                        "redis_mirror_write_failed",
                        err=str(e),
                        backoff_s=round(self._backoff.current, 3),
                    )
                    await self._backoff.sleep()
                    continue
                self.stats.written += 1
                self._backoff.reset()
        except asyncio.CancelledError:
            return

    def _stats_dict(self) -> dict[str, int]:
        s = self.stats
        return {"enq_ok": s.enq_ok, "enq_drop": s.enq_drop, "written": s.written, "errors": s.errors}
