"""
ConnectionRegistry fan-out, exercised with stand-in WebSocket objects.
"""
import json

import pytest
from starlette.websockets import WebSocketState

from services.notification_service import ConnectionRegistry


class FakeConnection:
    def __init__(self, fail=False):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent = []
        self.closed = False
        self.fail = fail

    async def send_text(self, data):
        if self.fail:
            raise RuntimeError('socket gone')
        self.sent.append(json.loads(data))

    async def close(self, code=1000):
        self.closed = True
        self.application_state = WebSocketState.DISCONNECTED


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.mark.asyncio
async def test_every_connection_of_a_user_receives_the_push(registry):
    first, second = FakeConnection(), FakeConnection()
    registry.register('u1', first)
    registry.register('u1', second)

    delivered = await registry.push_to_user('u1', {'type': 'alert_updated', 'alertId': 'a1'})

    assert delivered == 2
    assert first.sent == [{'type': 'alert_updated', 'alertId': 'a1'}]
    assert second.sent == first.sent
    assert registry.connection_count('u1') == 2


@pytest.mark.asyncio
async def test_unregistering_last_connection_drops_the_user(registry):
    connection = FakeConnection()
    registry.register('u1', connection)
    registry.unregister('u1', connection)

    assert 'u1' not in registry.connected_users()
    assert registry.connection_count() == 0
    assert await registry.push_to_user('u1', {'type': 'new_alert'}) == 0
    assert connection.sent == []


@pytest.mark.asyncio
async def test_push_to_unknown_user_is_a_noop(registry):
    assert await registry.push_to_user('nobody', {'type': 'new_alert'}) == 0


def test_unregister_unknown_connection_is_harmless(registry):
    registry.unregister('ghost', FakeConnection())
    kept = FakeConnection()
    registry.register('u1', kept)
    registry.unregister('u1', FakeConnection())
    assert registry.connection_count('u1') == 1


@pytest.mark.asyncio
async def test_closed_and_failing_connections_are_skipped(registry):
    open_conn = FakeConnection()
    closing = FakeConnection()
    closing.client_state = WebSocketState.DISCONNECTED
    broken = FakeConnection(fail=True)
    for connection in (open_conn, closing, broken):
        registry.register('u1', connection)

    delivered = await registry.push_to_user('u1', {'type': 'chat_message'})

    assert delivered == 1
    assert open_conn.sent == [{'type': 'chat_message'}]
    assert closing.sent == []


@pytest.mark.asyncio
async def test_failed_send_drops_the_connection(registry):
    healthy, broken = FakeConnection(), FakeConnection(fail=True)
    registry.register('u1', healthy)
    registry.register('u1', broken)

    await registry.push_to_user('u1', {'type': 'alert_updated'})
    assert registry.connection_count('u1') == 1

    registry.register('u2', FakeConnection(fail=True))
    assert await registry.push_to_user('u2', {'type': 'alert_updated'}) == 0
    assert 'u2' not in registry.connected_users()


@pytest.mark.asyncio
async def test_push_to_all_and_close_all(registry):
    a, b = FakeConnection(), FakeConnection()
    registry.register('u1', a)
    registry.register('u2', b)

    assert await registry.push_to_all({'type': 'ping'}) == 2
    assert sorted(registry.connected_users()) == ['u1', 'u2']

    await registry.close_all()
    assert a.closed and b.closed
    assert registry.connection_count() == 0
