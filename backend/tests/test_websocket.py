import pytest
from unittest.mock import AsyncMock

from kube_context.api.websocket import ConnectionManager


@pytest.mark.asyncio
async def test_broadcast_reaches_every_connection():
    manager = ConnectionManager()
    first, second = AsyncMock(), AsyncMock()
    await manager.connect(first)
    await manager.connect(second)
    await manager.broadcast({"type": "store_updated", "data": {"kind": "Pod"}})
    first.send_json.assert_awaited_once_with({"type": "store_updated", "data": {"kind": "Pod"}})
    second.send_json.assert_awaited_once()


@pytest.mark.asyncio
async def test_transient_send_failure_is_retried():
    manager = ConnectionManager()
    flaky = AsyncMock()
    flaky.send_json.side_effect = [RuntimeError("busy"), None]
    await manager.connect(flaky)
    await manager.broadcast({"type": "anomaly", "data": {}})
    assert flaky.send_json.await_count == 2
    assert manager.active_connections == [flaky]


@pytest.mark.asyncio
async def test_dead_connection_is_dropped():
    manager = ConnectionManager()
    dead, alive = AsyncMock(), AsyncMock()
    dead.send_json.side_effect = RuntimeError("closed")
    await manager.connect(dead)
    await manager.connect(alive)
    await manager.broadcast({"type": "anomaly", "data": {}})
    assert manager.active_connections == [alive]
    alive.send_json.assert_awaited_once()
