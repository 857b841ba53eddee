from __future__ import annotations

import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect, WebSocketState

from tank_monitor.schemas.events import EventType, delete_event, snapshot_event, tank_event
from tank_monitor.schemas.tank import Tank
from tank_monitor.services.broadcast import BroadcastHub


class FakeWebSocket:
    def __init__(self, fail_with: Exception | None = None) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict] = []
        self.fail_with = fail_with

    async def send_json(self, message: dict) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(message)


def _tank(tank_id: int, fill_level: float = 50.0) -> Tank:
    return Tank(id=tank_id, name=f"Tank {tank_id}", fill_level=fill_level, last_updated="2024-01-01T00:00:00+00:00")


async def _drain(*subscribers) -> None:
    for _ in range(50):
        if all(subscriber.pending == 0 for subscriber in subscribers):
            break
        await asyncio.sleep(0)
    await asyncio.sleep(0)


def test_events_use_type_and_camel_case_payload() -> None:
    assert tank_event(EventType.tank_create, _tank(3)).to_wire() == {
        "type": "TANK_CREATE",
        "payload": {
            "id": 3,
            "name": "Tank 3",
            "fillLevel": 50.0,
            "temperature": 20.0,
            "capacity": 1000.0,
            "status": "online",
            "location": None,
            "group": None,
            "alertThreshold": 15.0,
            "temperatureThreshold": None,
            "maintenanceIntervalDays": None,
            "lastMaintenance": None,
            "nextMaintenance": None,
            "manufacturer": None,
            "lastUpdated": "2024-01-01T00:00:00+00:00",
        },
    }
    assert delete_event(3).to_wire() == {"type": "TANK_DELETE", "payload": {"id": 3}}
    assert snapshot_event([]).to_wire() == {"type": "INITIAL_DATA", "payload": []}


@pytest.mark.asyncio
async def test_publish_reaches_every_open_connection_in_order() -> None:
    hub = BroadcastHub()
    first, second = FakeWebSocket(), FakeWebSocket()
    subscribers = [hub.register(first), hub.register(second)]
    senders = [asyncio.create_task(subscriber.run(snapshot_event([_tank(1)]))) for subscriber in subscribers]

    assert hub.publish(tank_event(EventType.tank_update, _tank(1, 40.0))) == 2
    assert hub.publish(tank_event(EventType.tank_update, _tank(1, 35.0))) == 2
    assert hub.publish(delete_event(1)) == 2
    await _drain(*subscribers)

    for websocket in (first, second):
        assert [message["type"] for message in websocket.sent] == [
            "INITIAL_DATA",
            "TANK_UPDATE",
            "TANK_UPDATE",
            "TANK_DELETE",
        ]
        assert [message["payload"].get("fillLevel") for message in websocket.sent[1:3]] == [40.0, 35.0]

    for sender in senders:
        sender.cancel()
    await asyncio.gather(*senders, return_exceptions=True)


@pytest.mark.asyncio
async def test_snapshot_goes_out_before_events_published_while_it_was_read() -> None:
    hub = BroadcastHub()
    websocket = FakeWebSocket()
    subscriber = hub.register(websocket)

    # published after registering but before the sender starts
    hub.publish(tank_event(EventType.tank_create, _tank(2)))
    sender = asyncio.create_task(subscriber.run(snapshot_event([_tank(1)])))
    await _drain(subscriber)

    assert [message["type"] for message in websocket.sent] == ["INITIAL_DATA", "TANK_CREATE"]
    sender.cancel()
    await asyncio.gather(sender, return_exceptions=True)


@pytest.mark.asyncio
async def test_closed_connections_are_skipped() -> None:
    hub = BroadcastHub()
    open_socket, closed_socket = FakeWebSocket(), FakeWebSocket()
    hub.register(open_socket)
    closed = hub.register(closed_socket)
    closed_socket.client_state = WebSocketState.DISCONNECTED

    assert hub.publish(delete_event(9)) == 1
    assert closed.pending == 0

    hub.unregister(closed)
    assert len(hub) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [WebSocketDisconnect(code=1006), RuntimeError("socket closed"), OSError("reset")])
async def test_failed_send_closes_the_subscriber_without_raising(error: Exception) -> None:
    hub = BroadcastHub()
    subscriber = hub.register(FakeWebSocket(fail_with=error))

    await subscriber.run(snapshot_event([]))

    assert not subscriber.is_open
    assert hub.publish(delete_event(1)) == 0


def test_unregister_is_idempotent() -> None:
    hub = BroadcastHub()
    subscriber = hub.register(FakeWebSocket())

    hub.unregister(subscriber)
    hub.unregister(subscriber)

    assert len(hub) == 0
    assert not subscriber.is_open


@pytest.mark.asyncio
async def test_connection_that_falls_behind_is_dropped() -> None:
    hub = BroadcastHub(max_pending=2)
    slow, fast = FakeWebSocket(), FakeWebSocket()
    lagging = hub.register(slow)
    keeping_up = hub.register(fast)
    sender = asyncio.create_task(keeping_up.run())

    delivered = []
    for fill_level in (40.0, 35.0, 30.0):
        delivered.append(hub.publish(tank_event(EventType.tank_update, _tank(1, fill_level))))
        await _drain(keeping_up)

    assert delivered == [2, 2, 1]
    assert lagging.overflowed
    assert not lagging.is_open
    assert hub.publish(delete_event(1)) == 1
    await _drain(keeping_up)
    assert len(fast.sent) == 4

    # lo que ya estaba en cola no se envia a una conexion descartada
    await lagging.run()
    assert slow.sent == []

    sender.cancel()
    await asyncio.gather(sender, return_exceptions=True)
