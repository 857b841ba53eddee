from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from tank_monitor.schemas.events import EventType, delete_event, snapshot_event, tank_event
from tank_monitor.schemas.tank import Tank
from tank_monitor.sync.client import ClientSynchronizer, ConnectionState


def _tank(tank_id: int, fill_level: float = 50.0) -> Tank:
    return Tank(id=tank_id, name=f"Tank {tank_id}", fill_level=fill_level, last_updated="2024-01-01T00:00:00+00:00")


async def _wait_for(predicate, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_reconnects_and_resynchronises_after_server_closes() -> None:
    connections = 0

    async def tank_stream(request: web.Request) -> web.WebSocketResponse:
        nonlocal connections
        connections += 1
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        if connections == 1:
            await ws.send_json(snapshot_event([_tank(1), _tank(2)]).to_wire())
            await ws.send_json(tank_event(EventType.tank_update, _tank(1, 30.0)).to_wire())
            await ws.send_str("not json")
            await ws.close()
            return ws
        await ws.send_json(snapshot_event([_tank(2, 77.0), _tank(3)]).to_wire())
        await ws.send_json(delete_event(3).to_wire())
        async for _ in ws:
            pass
        return ws

    app = web.Application()
    app.router.add_get("/ws", tank_stream)
    server = test_utils.TestServer(app)
    await server.start_server()

    synchronizer = ClientSynchronizer(str(server.make_url("/ws")), reconnect_delay=0.05)
    states: list[ConnectionState] = []
    messages: list[dict] = []
    synchronizer.add_state_listener(states.append)
    synchronizer.add_message_listener(messages.append)

    synchronizer.start()
    try:
        await _wait_for(
            lambda: synchronizer.connect_attempts >= 2
            and synchronizer.state == ConnectionState.connected
            and [tank.id for tank in synchronizer.mirror.tanks] == [2]
        )
        assert synchronizer.mirror.get(2).fill_level == 77.0
    finally:
        await synchronizer.stop()
        await server.close()

    assert states == [
        ConnectionState.connecting,
        ConnectionState.connected,
        ConnectionState.disconnected,
        ConnectionState.connecting,
        ConnectionState.connected,
        ConnectionState.disconnected,
    ]
    assert [message["type"] for message in messages] == [
        "INITIAL_DATA",
        "TANK_UPDATE",
        "INITIAL_DATA",
        "TANK_DELETE",
    ]
    assert synchronizer.state == ConnectionState.disconnected


@pytest.mark.asyncio
async def test_keeps_retrying_while_the_server_is_down() -> None:
    synchronizer = ClientSynchronizer("ws://127.0.0.1:1/ws", reconnect_delay=0.01)
    seen: set[ConnectionState] = set()
    synchronizer.add_state_listener(seen.add)

    synchronizer.start()
    try:
        await _wait_for(lambda: synchronizer.connect_attempts >= 3)
    finally:
        await synchronizer.stop()

    assert ConnectionState.connected not in seen
    assert synchronizer.state == ConnectionState.disconnected
    assert len(synchronizer.mirror) == 0


@pytest.mark.asyncio
async def test_stop_interrupts_the_reconnect_wait() -> None:
    synchronizer = ClientSynchronizer("ws://127.0.0.1:1/ws", reconnect_delay=60.0)

    synchronizer.start()
    await _wait_for(lambda: synchronizer.connect_attempts >= 1 and synchronizer.state == ConnectionState.disconnected)
    await asyncio.wait_for(synchronizer.stop(), timeout=2.0)

    assert synchronizer.connect_attempts == 1


@pytest.mark.asyncio
async def test_failing_listeners_do_not_stop_the_reconnect_loop() -> None:
    async def tank_stream(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        await ws.send_json(snapshot_event([_tank(1)]).to_wire())
        await ws.close()
        return ws

    app = web.Application()
    app.router.add_get("/ws", tank_stream)
    server = test_utils.TestServer(app)
    await server.start_server()

    def broken_message_listener(message: dict) -> None:
        raise ValueError("cannot render snapshot")

    def broken_state_listener(state: ConnectionState) -> None:
        raise RuntimeError("display detached")

    snapshots: list[dict] = []
    synchronizer = ClientSynchronizer(str(server.make_url("/ws")), reconnect_delay=0.01)
    synchronizer.add_message_listener(broken_message_listener)
    synchronizer.add_message_listener(snapshots.append)
    synchronizer.add_state_listener(broken_state_listener)

    task = synchronizer.start()
    try:
        await _wait_for(lambda: synchronizer.connect_attempts >= 3 and len(snapshots) >= 2)
        assert not task.done()
    finally:
        await synchronizer.stop()
        await server.close()

    assert [tank.id for tank in synchronizer.mirror.tanks] == [1]
    assert {message["type"] for message in snapshots} == {"INITIAL_DATA"}
