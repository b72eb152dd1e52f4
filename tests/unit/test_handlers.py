import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

import presence.tracker.mirror_redis as mr
from presence.config import PresenceConfig
from presence.main import build_app
from presence.tracker.mirror_redis import RedisPresenceMirror
from presence.tracker.store import PresenceStore
from presence.web.app import create_app
from presence.web.keys import CLOCK_KEY, MIRROR_KEY, STORE_KEY
from tests.helpers.fake_redis import FakeRedisModule


class FakeClock:
    def __init__(self, now_ms=0):
        self.now_ms = now_ms

    def __call__(self):
        return self.now_ms


async def _beat(client, ip=None):
    headers = {"X-Forwarded-For": ip} if ip else {}
    resp = await client.post("/active-users/heartbeat", headers=headers)
    assert resp.status == 200
    assert await resp.json() == {"success": True}


@pytest.mark.asyncio
async def test_heartbeat_and_list_scenario():
    clock = FakeClock(0)
    async with TestClient(TestServer(create_app(clock=clock))) as client:
        await _beat(client, "1.2.3.4")
        clock.now_ms = 60_000
        await _beat(client, "5.6.7.8, 10.0.0.1")

        clock.now_ms = 90_000
        resp = await client.get("/active-users")
        assert resp.status == 200
        body = await resp.json()
        assert body["count"] == 2 == len(body["users"])
        assert sorted(body["users"], key=lambda u: u["ip"]) == [
            {"ip": "1.2.3.4", "lastSeen": 0},
            {"ip": "5.6.7.8", "lastSeen": 60_000},
        ]

        clock.now_ms = 130_000
        body = await (await client.get("/active-users")).json()
        assert body == {"count": 1, "users": [{"ip": "5.6.7.8", "lastSeen": 60_000}]}


@pytest.mark.asyncio
async def test_headerless_clients_collapse_to_unknown():
    clock = FakeClock(1_000)
    app = create_app(clock=clock)
    async with TestClient(TestServer(app)) as client:
        await _beat(client)
        clock.now_ms = 2_000
        await _beat(client)
        body = await (await client.get("/active-users")).json()
    assert body == {"count": 1, "users": [{"ip": "unknown", "lastSeen": 2_000}]}
    assert len(app[STORE_KEY]) == 1


@pytest.mark.asyncio
async def test_heartbeat_sweeps_shared_store():
    store = PresenceStore()
    clock = FakeClock(0)
    async with TestClient(TestServer(create_app(store, clock=clock))) as client:
        await _beat(client, "1.1.1.1")
        clock.now_ms = 200_000
        await _beat(client, "2.2.2.2")
    assert store.get("1.1.1.1") is None
    assert [e.client_id for e in store.list_active(200_000)] == ["2.2.2.2"]


@pytest.mark.asyncio
async def test_empty_store_lists_nothing():
    async with TestClient(TestServer(create_app(clock=FakeClock(5)))) as client:
        body = await (await client.get("/active-users")).json()
    assert body == {"count": 0, "users": []}


class _BrokenStore(PresenceStore):
    def list_active(self, now_ms):
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_unexpected_error_becomes_500():
    async with TestClient(TestServer(create_app(_BrokenStore(), clock=FakeClock()))) as client:
        resp = await client.get("/active-users")
        assert resp.status == 500
        assert await resp.json() == {"error": "Internal server error"}
        # framework errors pass through untouched
        resp = await client.get("/nope")
        assert resp.status == 404


@pytest.mark.asyncio
async def test_cluster_endpoint_disabled_returns_404():
    async with TestClient(TestServer(create_app(clock=FakeClock()))) as client:
        resp = await client.get("/active-users/cluster")
        assert resp.status == 404
        assert "error" in await resp.json()


@pytest.mark.asyncio
async def test_cluster_endpoint_reads_mirror(monkeypatch):
    fake_mod = FakeRedisModule()
    monkeypatch.setattr(mr, "redis", fake_mod)

    mirror = RedisPresenceMirror(url="redis://x", enabled=True)
    clock = FakeClock(10_000)
    app = create_app(clock=clock, mirror=mirror)
    async with TestClient(TestServer(app)) as client:
        await _beat(client, "3.3.3.3")
        # give the writer loop time to flush
        await asyncio.sleep(0.05)
        resp = await client.get("/active-users/cluster")
        assert resp.status == 200
        body = await resp.json()
    assert body == {"count": 1, "users": [{"ip": "3.3.3.3", "lastSeen": 10_000}]}
    # cleanup stopped the mirror and closed its client
    assert fake_mod.instance.closed


def test_build_app_wires_one_store_and_mirror():
    app = build_app(PresenceConfig(redis_enabled=False, redis_namespace="site"))
    assert isinstance(app, web.Application)
    assert isinstance(app[STORE_KEY], PresenceStore)
    assert app[MIRROR_KEY].enabled is False
    assert app[MIRROR_KEY].key == "site:active"
    assert isinstance(app[CLOCK_KEY](), int)
