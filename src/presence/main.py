# src/presence/main.py
import asyncio

import structlog
from aiohttp import web
from dotenv import load_dotenv

from presence.config import PresenceConfig, config_from_env
from presence.tracker.mirror_redis import RedisPresenceMirror
from presence.tracker.store import PresenceStore
from storage import redis_presence
from presence.utils.log import configure_logging
from presence.web.app import create_app

log = structlog.get_logger()


def build_app(cfg: PresenceConfig) -> web.Application:
    """One store and one mirror per process, owned by the application."""
    store = PresenceStore()
    mirror = RedisPresenceMirror(
        url=cfg.redis_url,
        key=redis_presence.key(cfg.redis_namespace),
        enabled=cfg.redis_enabled,
        queue_maxsize=cfg.mirror_queue_maxsize,
    )
    return create_app(store, mirror=mirror)


async def main():
    load_dotenv()
    cfg = config_from_env()
    configure_logging(cfg.log_level)

    app = build_app(cfg)
    runner = web.AppRunner(app, access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, cfg.host, cfg.port)
    await site.start()
    log.info(
        "server_started",
        host=cfg.host,
        port=cfg.port,
        redis_mirror=cfg.redis_enabled,
    )

    try:
        # serve until cancelled (Ctrl-C / SIGTERM via asyncio.run)
        await asyncio.Event().wait()
    finally:
        # graceful shutdown: runs on_cleanup (mirror stop) before exit
        await runner.cleanup()
        log.info("server_stopped")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
