from __future__ import annotations

from typing import Callable

from aiohttp import web

from presence.tracker.mirror_redis import RedisPresenceMirror
from presence.tracker.store import PresenceStore

# Handles threaded through request.app; no module-level singletons.
STORE_KEY = web.AppKey("presence_store", PresenceStore)
CLOCK_KEY = web.AppKey("presence_clock", Callable[[], int])  # -> epoch ms
MIRROR_KEY = web.AppKey("presence_mirror", RedisPresenceMirror)
