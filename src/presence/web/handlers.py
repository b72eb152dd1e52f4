from __future__ import annotations

import structlog
from aiohttp import web

from presence.ingest.client_id import client_id_from_headers
from presence.utils.types import HeartbeatAck, active_users_payload
from presence.web.keys import CLOCK_KEY, MIRROR_KEY, STORE_KEY

log = structlog.get_logger("http")


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Uniform failure shape: log it, answer a generic 500."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        log.error("handler_error", method=request.method, path=request.path, err=str(e))
        return web.json_response({"error": "Internal server error"}, status=500)


async def post_heartbeat(request: web.Request) -> web.Response:
    # no body expected; identity comes from forwarded-address headers
    client_id = client_id_from_headers(request.headers)
    now_ms = request.app[CLOCK_KEY]()
    request.app[STORE_KEY].record_heartbeat(client_id, now_ms)
    request.app[MIRROR_KEY].record(client_id, now_ms)
    log.debug("heartbeat_recorded", client_id=client_id, ts_ms=now_ms)
    ack: HeartbeatAck = {"success": True}
    return web.json_response(ack)


async def get_active_users(request: web.Request) -> web.Response:
    now_ms = request.app[CLOCK_KEY]()
    entries = request.app[STORE_KEY].list_active(now_ms)
    return web.json_response(active_users_payload(entries))


async def get_cluster_active_users(request: web.Request) -> web.Response:
    """Active users across every instance sharing the Redis mirror."""
    mirror = request.app[MIRROR_KEY]
    if not mirror.enabled:
        return web.json_response({"error": "Cluster presence is disabled"}, status=404)
    now_ms = request.app[CLOCK_KEY]()
    entries = await mirror.read_active(now_ms)
    return web.json_response(active_users_payload(entries))
