from __future__ import annotations

import asyncio
from typing import Callable, Optional

import aiohttp
import structlog
from dotenv import load_dotenv

from presence.config import WatchConfig, watch_config_from_env
from presence.utils.backoff import Backoff
from presence.utils.log import configure_logging
from presence.utils.types import ActiveUsersPayload
from presence.watch.formatting import format_active_users

log = structlog.get_logger("watch")

class WatchFetchError(RuntimeError):
    """Non-200 answer from the active-users endpoint."""

class ActiveUsersWatcher:
    """
    Poll GET /active-users on a fixed interval and print a snapshot each time,
    the console counterpart of the admin "active user" panel.
    Network/HTTP failures are logged and retried with capped backoff.
    """
    def __init__(self, cfg: WatchConfig, print_fn: Optional[Callable[[str], None]] = None):
        self.cfg = cfg
        self._print = print_fn or (lambda text: print(text, flush=True))
        self._session: Optional[aiohttp.ClientSession] = None
        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()
        self._backoff = Backoff(initial=cfg.initial_backoff_s, cap=cfg.max_backoff_s)
        self.last_payload: Optional[ActiveUsersPayload] = None

    async def start(self):
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
        self._stop.clear()
        self._task = asyncio.create_task(self._loop(), name="active-users-watch")

    async def stop(self):
        self._stop.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._session:
            await self._session.close()
            self._session = None

    async def wait(self):
        if self._task:
            await self._task

    async def fetch_once(self) -> ActiveUsersPayload:
        assert self._session is not None
        async with self._session.get(self.cfg.url) as resp:
            if resp.status != 200:
                raise WatchFetchError(f"GET {self.cfg.url} -> {resp.status}")
            data = await resp.json()
        if not isinstance(data, dict):
            raise WatchFetchError(f"GET {self.cfg.url} -> expected a JSON object, got {type(data).__name__}")
        users = data.get("users") or []
        if not isinstance(users, list):
            raise WatchFetchError(f"GET {self.cfg.url} -> \"users\" is not a list")
        return {"count": int(data.get("count", len(users))), "users": users}

    async def _loop(self):
        try:
            while not self._stop.is_set():
                try:
                    payload = await self.fetch_once()
                except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, WatchFetchError) as e:
                    log.warning("watch_fetch_failed", url=self.cfg.url, err=str(e),
                                backoff_s=round(self._backoff.current, 3))
                    await self._backoff.sleep()
                    continue
                self._backoff.reset()
                self.last_payload = payload
                self._print(format_active_users(payload, self.cfg.tz_name))
                await asyncio.sleep(self.cfg.interval_s)
        except asyncio.CancelledError:
            return

async def main():
    load_dotenv()
    cfg = watch_config_from_env()
    configure_logging(cfg.log_level)
    watcher = ActiveUsersWatcher(cfg)
    log.info("watch_started", url=cfg.url, interval_s=cfg.interval_s)
    await watcher.start()
    try:
        await watcher.wait()
    finally:
        await watcher.stop()

def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    run()
