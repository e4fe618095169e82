import contextlib

import pytest
from aiohttp import test_utils

from subathon.core.config import TimerConfig
from subathon.core.control_server import ControlServer
from subathon.core.runtime import SubathonRuntime

from .conftest import RecordingSink

pytestmark = pytest.mark.integration


@contextlib.asynccontextmanager
async def control_client(runtime):
    server = ControlServer(runtime)
    client = test_utils.TestClient(test_utils.TestServer(server.app))
    await client.start_server()
    try:
        yield client
    finally:
        await client.close()
        await runtime.stop()


class TestBeforeLoad:
    @pytest.mark.asyncio
    async def test_health_reports_starting(self, store, clock):
        async with control_client(SubathonRuntime(store, clock=clock)) as client:
            resp = await client.get("/health")
            assert resp.status == 200
            data = await resp.json()
            assert data["status"] == "starting"
            assert data["state"] == "uninitialized"

    @pytest.mark.asyncio
    async def test_state_is_unavailable(self, store, clock):
        async with control_client(SubathonRuntime(store, clock=clock)) as client:
            resp = await client.get("/state")
            assert resp.status == 503
            resp = await client.post("/add", json={"seconds": 10})
            assert resp.status == 503

    @pytest.mark.asyncio
    async def test_events_are_accepted_but_dropped(self, store, clock):
        async with control_client(SubathonRuntime(store, clock=clock)) as client:
            resp = await client.post("/events", json={"type": "cheer", "data": {"amount": 100}})
            assert resp.status == 200
            data = await resp.json()
            assert data == {"handled": False, "event": "Cheer", "feedback": None}


class TestLoaded:
    @pytest.mark.asyncio
    async def test_root_and_health(self, store, clock):
        runtime = SubathonRuntime(store, clock=clock)
        await runtime.load(TimerConfig())
        async with control_client(runtime) as client:
            resp = await client.get("/")
            assert (await resp.json())["service"] == "subathon-timer"
            resp = await client.get("/health")
            assert (await resp.json())["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_add_reset_toggle(self, store, clock):
        runtime = SubathonRuntime(store, clock=clock)
        await runtime.load(TimerConfig(start_seconds=60))
        async with control_client(runtime) as client:
            resp = await client.post("/add", json={"seconds": 30})
            assert resp.status == 200
            assert (await resp.json())["remaining_seconds"] == 90

            resp = await client.post("/toggle")
            assert (await resp.json())["is_running"] is False

            resp = await client.post("/reset")
            data = await resp.json()
            assert data["remaining_seconds"] == 60
            assert data["formatted"] == "0:01:00"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"seconds": -5}, {"seconds": "ten"}, {}])
    async def test_add_rejects_bad_seconds(self, store, clock, body):
        runtime = SubathonRuntime(store, clock=clock)
        await runtime.load(TimerConfig())
        async with control_client(runtime) as client:
            resp = await client.post("/add", json=body)
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_bad_json(self, store, clock):
        runtime = SubathonRuntime(store, clock=clock)
        await runtime.load(TimerConfig())
        async with control_client(runtime) as client:
            resp = await client.post(
                "/events", data="{oops", headers={"Content-Type": "application/json"}
            )
            assert resp.status == 400
            resp = await client.post("/events", json=[1, 2])
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_chat_event_returns_feedback(self, store, clock):
        sink = RecordingSink()
        runtime = SubathonRuntime(store, sinks=[sink], clock=clock)
        await runtime.load(TimerConfig(start_seconds=0))
        async with control_client(runtime) as client:
            resp = await client.post(
                "/events",
                json={
                    "type": "message",
                    "data": {"text": "!addtime 90s", "displayName": "Mod", "role": "moderator"},
                },
            )
            data = await resp.json()
            assert data["event"] == "ChatMessage"
            assert data["feedback"] == "Mod added 1m 30s → 0:01:30"
            assert sink.feedback[0][0] == data["feedback"]

    @pytest.mark.asyncio
    async def test_unknown_event(self, store, clock):
        runtime = SubathonRuntime(store, clock=clock)
        await runtime.load(TimerConfig())
        async with control_client(runtime) as client:
            resp = await client.post("/events", json={"type": "follower", "data": {}})
            assert await resp.json() == {"handled": False}

    @pytest.mark.asyncio
    async def test_load_field_data(self, store, clock):
        async with control_client(SubathonRuntime(store, clock=clock)) as client:
            resp = await client.post(
                "/load", json={"fieldData": {"startSeconds": 42, "storageKey": "other"}}
            )
            assert resp.status == 200
            data = await resp.json()
            assert data["remaining_seconds"] == 42
            assert data["storage_key"] == "other"
            assert "other" in store.data
