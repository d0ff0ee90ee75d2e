"""Tests for the realtime order feed."""
import asyncio
from unittest.mock import AsyncMock

from pos_api.services.realtime_service import ConnectionManager, update_message


def receive_update(ws):
    message = ws.receive_json()
    assert message["type"] == "orders:update"
    return message["data"]


def test_connect_sends_hello_then_snapshot(client, make_product, make_order):
    tea = make_product()
    order = make_order((tea, 1))

    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json() == {"type": "hello", "data": {"version": "1"}}
        snapshot = receive_update(ws)

    assert snapshot["finished"] == []
    assert snapshot["preparing"] == [{
        "id": order["id"],
        "number": 1,
        "status": "preparing",
        "createdAt": order["createdAt"],
    }]


def test_order_mutations_push_snapshots(client, make_product, make_order):
    tea = make_product()

    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        assert receive_update(ws) == {"preparing": [], "finished": []}

        order = make_order((tea, 1))
        created = receive_update(ws)
        assert [o["id"] for o in created["preparing"]] == [order["id"]]

        client.patch(f"/api/orders/{order['id']}/finish")
        finished = receive_update(ws)
        assert finished["preparing"] == []
        assert [o["status"] for o in finished["finished"]] == ["finished"]

        client.delete(f"/api/orders/{order['id']}")
        assert receive_update(ws) == {"preparing": [], "finished": []}


def test_client_messages_are_ignored(client, make_product, make_order):
    tea = make_product()

    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        receive_update(ws)
        ws.send_text("ping")
        ws.send_bytes(b"\x00\x01")

        make_order((tea, 1))
        assert len(receive_update(ws)["preparing"]) == 1


def test_import_pushes_snapshot(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        receive_update(ws)

        client.post("/api/orders/import", json={"orders": [{
            "id": "o1",
            "number": 9,
            "status": "preparing",
            "createdAt": "2024-01-01T00:00:00Z",
            "items": [{"productId": "x", "name": "Cake", "price": 4, "quantity": 1}],
        }]})

        assert [o["number"] for o in receive_update(ws)["preparing"]] == [9]


def test_broadcast_skips_failing_clients():
    manager = ConnectionManager()
    healthy = AsyncMock()
    broken = AsyncMock()
    broken.send_text.side_effect = RuntimeError("connection reset")
    manager.active_connections = [broken, healthy]

    delivered = asyncio.run(manager.broadcast(update_message({"preparing": [], "finished": []})))

    assert delivered == 1
    healthy.send_text.assert_awaited_once()
    assert manager.active_connections == [healthy]


def test_broadcast_failure_does_not_fail_request(client, make_product, monkeypatch):
    from pos_api.services import realtime_service

    async def explode(snapshot):
        raise RuntimeError("socket layer down")

    monkeypatch.setattr(realtime_service.manager, "broadcast_snapshot", explode)
    tea = make_product()

    response = client.post(
        "/api/orders/",
        json={"items": [{"productId": tea["id"], "price": 1, "quantity": 1}]}
    )

    assert response.status_code == 201
