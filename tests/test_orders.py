"""Tests for Order API endpoints."""
from sqlalchemy import func

from pos_api.models.order import Order


def test_create_order_success(client, make_product):
    """Test creating an order successfully."""
    tea = make_product(name="Tea", price=10.0)
    cake = make_product(name="Cake", price=4.5, category="Food")

    response = client.post(
        "/api/orders/",
        json={
            "items": [
                {"productId": tea["id"], "name": "Tea", "price": 10, "quantity": 2},
                {"productId": cake["id"], "price": 4.5, "quantity": 1},
            ]
        }
    )

    assert response.status_code == 201
    data = response.json()
    assert data["number"] == 1
    assert data["status"] == "preparing"
    assert data["hidden"] is False
    assert "createdAt" in data
    assert data["items"] == [
        {"productId": tea["id"], "name": "Tea", "price": 10.0, "quantity": 2},
        # name falls back to the product id when not sent
        {"productId": cake["id"], "name": cake["id"], "price": 4.5, "quantity": 1},
    ]


def test_create_order_empty_items(client, db_session):
    """An order without items is rejected and nothing is stored."""
    response = client.post("/api/orders/", json={"items": []})
    assert response.status_code == 400
    assert response.json()["detail"] == "Items are required"

    response = client.post("/api/orders/", json={})
    assert response.status_code == 400

    assert db_session.query(func.count(Order.id)).scalar() == 0


def test_create_order_invalid_quantity(client, make_product):
    tea = make_product()

    response = client.post(
        "/api/orders/",
        json={"items": [{"productId": tea["id"], "price": 1, "quantity": 0}]}
    )

    assert response.status_code == 400


def test_create_order_unknown_product(client, db_session):
    response = client.post(
        "/api/orders/",
        json={"items": [{"productId": "ghost", "price": 1, "quantity": 1}]}
    )

    assert response.status_code == 400
    assert "ghost" in response.json()["detail"]
    assert db_session.query(func.count(Order.id)).scalar() == 0


def test_order_numbers_strictly_increase(client, make_product, make_order):
    tea = make_product()

    numbers = [make_order((tea, 1))["number"] for _ in range(5)]

    assert numbers == [1, 2, 3, 4, 5]


def test_order_number_continues_after_hidden_and_finished(client, make_product, make_order):
    tea = make_product()
    first = make_order((tea, 1))
    second = make_order((tea, 1))
    client.patch(f"/api/orders/{first['id']}/finish")
    client.delete(f"/api/orders/{second['id']}")

    third = make_order((tea, 1))

    assert third["number"] == 3


def test_item_price_is_a_snapshot(client, make_product, make_order):
    tea = make_product(name="Tea", price=10)
    first = make_order((tea, 2))

    updated = client.put(f"/api/products/{tea['id']}", json={"price": 15}).json()
    second = make_order((updated, 1))

    stored_first = client.get(f"/api/orders/{first['id']}").json()
    assert stored_first["items"][0]["price"] == 10
    assert second["items"][0]["price"] == 15


def test_list_active_orders(client, make_product, make_order):
    tea = make_product()
    first = make_order((tea, 1))
    second = make_order((tea, 1))
    client.patch(f"/api/orders/{first['id']}/finish")

    active = client.get("/api/orders/?status=active").json()
    default = client.get("/api/orders/").json()

    assert [o["id"] for o in active] == [second["id"]]
    assert default == active
    assert active[0]["items"][0]["productId"] == tea["id"]


def test_list_finished_orders_newest_first(client, make_product, make_order):
    tea = make_product()
    orders = [make_order((tea, 1)) for _ in range(3)]
    for order in orders:
        client.patch(f"/api/orders/{order['id']}/finish")

    finished = client.get("/api/orders/?status=finished").json()

    assert [o["number"] for o in finished] == [3, 2, 1]
    assert all(o["status"] == "finished" for o in finished)


def test_list_finished_orders_is_capped(client, make_product, make_order, monkeypatch):
    from pos_api.services import order_service

    monkeypatch.setattr(order_service.settings, "FINISHED_ORDERS_LIMIT", 2)
    tea = make_product()
    for _ in range(3):
        order = make_order((tea, 1))
        client.patch(f"/api/orders/{order['id']}/finish")

    finished = client.get("/api/orders/?status=finished").json()

    assert [o["number"] for o in finished] == [3, 2]


def test_find_finished_honours_explicit_limit(client, make_product, make_order, db_session):
    from pos_api.services.order_service import OrderService

    tea = make_product()
    for _ in range(3):
        order = make_order((tea, 1))
        client.patch(f"/api/orders/{order['id']}/finish")

    service = OrderService(db_session)

    assert service.find_finished(limit=0) == []
    assert [o.number for o in service.find_finished(limit=1)] == [3]
    assert len(service.find_finished()) == 3


def test_list_orders_rejects_unknown_status(client):
    response = client.get("/api/orders/?status=cancelled")

    assert response.status_code == 400


def test_get_order(client, make_product, make_order):
    """Test getting an order by ID."""
    tea = make_product()
    order = make_order((tea, 3))

    response = client.get(f"/api/orders/{order['id']}")

    assert response.status_code == 200
    assert response.json() == order


def test_get_order_not_found(client):
    response = client.get("/api/orders/missing")

    assert response.status_code == 404


def test_finish_order_is_idempotent(client, make_product, make_order):
    tea = make_product()
    order = make_order((tea, 1))

    first = client.patch(f"/api/orders/{order['id']}/finish")
    second = client.patch(f"/api/orders/{order['id']}/finish")

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["status"] == "finished"
    assert second.json()["status"] == "finished"
    assert second.json()["items"] == order["items"]


def test_finish_order_not_found(client):
    response = client.patch("/api/orders/missing/finish")

    assert response.status_code == 404


def test_finished_status_visible_to_later_reads(client, make_product, make_order):
    tea = make_product()
    order = make_order((tea, 1))

    client.patch(f"/api/orders/{order['id']}/finish")
    reads = [client.get("/api/orders/?status=active").json() for _ in range(2)]

    assert all(order["id"] not in [o["id"] for o in read] for read in reads)
    finished = client.get("/api/orders/?status=finished").json()
    assert [o["id"] for o in finished] == [order["id"]]


def test_delete_order_hides_it(client, make_product, make_order, db_session):
    tea = make_product()
    order = make_order((tea, 1))

    response = client.delete(f"/api/orders/{order['id']}")
    assert response.status_code == 204

    assert client.get("/api/orders/").json() == []
    with_hidden = client.get("/api/orders/?includeHidden=1").json()
    assert [o["id"] for o in with_hidden] == [order["id"]]
    assert with_hidden[0]["hidden"] is True

    by_id = client.get(f"/api/orders/{order['id']}")
    assert by_id.status_code == 200
    assert by_id.json()["hidden"] is True
    assert db_session.query(func.count(Order.id)).scalar() == 1


def test_delete_order_hides_finished_orders(client, make_product, make_order):
    tea = make_product()
    order = make_order((tea, 1))
    client.patch(f"/api/orders/{order['id']}/finish")
    client.delete(f"/api/orders/{order['id']}")

    assert client.get("/api/orders/?status=finished").json() == []
    hidden = client.get("/api/orders/?status=finished&includeHidden=true").json()
    assert [o["id"] for o in hidden] == [order["id"]]


def test_delete_order_not_found(client):
    response = client.delete("/api/orders/missing")

    assert response.status_code == 404
