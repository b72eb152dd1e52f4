from __future__ import annotations

from typing import Callable, Optional

from aiohttp import web

from presence.tracker.mirror_redis import RedisPresenceMirror
from presence.tracker.store import PresenceStore
from presence.utils.time import utc_now_ms
from presence.web import handlers
from presence.web.keys import CLOCK_KEY, MIRROR_KEY, STORE_KEY


def create_app(
    store: Optional[PresenceStore] = None,
    *,
    clock: Callable[[], int] = utc_now_ms,
    mirror: Optional[RedisPresenceMirror] = None,
) -> web.Application:
    """
    Build the active-users application.

    The store is created here when not given, once per application, and lives
    as long as the app. `clock` returns epoch ms; tests pass a fake.
    A disabled mirror is installed when none is given.
    """
    app = web.Application(middlewares=[handlers.error_middleware])
    app[STORE_KEY] = store if store is not None else PresenceStore()
    app[CLOCK_KEY] = clock
    app[MIRROR_KEY] = mirror if mirror is not None else RedisPresenceMirror(url="", enabled=False)

    app.router.add_post("/active-users/heartbeat", handlers.post_heartbeat)
    app.router.add_get("/active-users", handlers.get_active_users)
    app.router.add_get("/active-users/cluster", handlers.get_cluster_active_users)

    app.on_startup.append(_start_mirror)
    app.on_cleanup.append(_stop_mirror)
    return app


async def _start_mirror(app: web.Application) -> None:
    await app[MIRROR_KEY].start()


async def _stop_mirror(app: web.Application) -> None:
    await app[MIRROR_KEY].stop()
