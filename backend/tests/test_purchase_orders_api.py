from datetime import date

import pytest

pytestmark = pytest.mark.anyio


@pytest.fixture
async def vendor(client):
    resp = await client.post("/vendors/", json={"name": "Hillside Orchards"})
    return resp.json()


def _order(vendor, **overrides):
    payload = {
        "vendor_id": vendor["id"],
        "order_date": "2025-09-15",
        "items": [
            {"material_type": "basefruit", "name": "Dabinett", "quantity": 500, "unit": "kg", "unit_cost": 0.8},
            {"material_type": "juice", "name": "Pressed juice", "quantity": 100, "unit": "L", "unit_cost": 2.5},
        ],
    }
    payload.update(overrides)
    return payload


async def test_create_computes_totals(client, vendor):
    resp = await client.post("/purchase-orders/", json=_order(vendor))
    assert resp.status_code == 201, resp.text
    order = resp.json()
    assert order["status"] == "DRAFT"
    assert order["vendor_name"] == "Hillside Orchards"
    assert order["total_cost"] == 650.0
    apples = next(i for i in order["items"] if i["material_type"] == "basefruit")
    assert apples["fruit_type"] == "apple"
    assert apples["line_total"] == 400.0


async def test_item_validation(client, vendor):
    empty = await client.post("/purchase-orders/", json=_order(vendor, items=[]))
    assert empty.status_code == 422

    juice_with_fruit = await client.post(
        "/purchase-orders/",
        json=_order(
            vendor,
            items=[{"material_type": "juice", "name": "Juice", "fruit_type": "apple", "quantity": 1, "unit": "L"}],
        ),
    )
    assert juice_with_fruit.status_code == 422


async def test_deleted_vendor_rejected(client, vendor):
    await client.delete(f"/vendors/{vendor['id']}")
    resp = await client.post("/purchase-orders/", json=_order(vendor))
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Vendor not found"


async def test_status_transitions(client, vendor):
    order = (await client.post("/purchase-orders/", json=_order(vendor))).json()

    ordered = await client.patch(f"/purchase-orders/{order['id']}", json={"status": "ORDERED"})
    assert ordered.json()["status"] == "ORDERED"

    back = await client.patch(f"/purchase-orders/{order['id']}", json={"status": "DRAFT"})
    assert back.status_code == 409
    assert back.json()["detail"] == "Cannot change status from ORDERED to DRAFT"

    items = await client.patch(
        f"/purchase-orders/{order['id']}",
        json={"items": [{"material_type": "additive", "name": "Yeast", "quantity": 1, "unit": "units"}]},
    )
    assert items.status_code == 409

    received = await client.post(f"/purchase-orders/{order['id']}/receive", json={"received_date": "2025-09-20"})
    assert received.json()["status"] == "RECEIVED"
    assert received.json()["received_date"] == "2025-09-20"

    again = await client.post(f"/purchase-orders/{order['id']}/receive", json={})
    assert again.status_code == 409
    assert again.json()["detail"] == "Cannot receive a RECEIVED purchase order"

    delete = await client.delete(f"/purchase-orders/{order['id']}")
    assert delete.status_code == 409


async def test_receive_defaults_to_today(client, vendor):
    order = (await client.post("/purchase-orders/", json=_order(vendor))).json()
    received = await client.post(f"/purchase-orders/{order['id']}/receive")
    assert received.json()["received_date"] == date.today().isoformat()


async def test_draft_items_can_be_replaced_and_deleted(client, vendor):
    order = (await client.post("/purchase-orders/", json=_order(vendor))).json()
    resp = await client.patch(
        f"/purchase-orders/{order['id']}",
        json={"items": [{"material_type": "packaging", "name": "Crown caps", "quantity": 1000, "unit": "units", "unit_cost": 0.03}]},
    )
    assert [i["name"] for i in resp.json()["items"]] == ["Crown caps"]
    assert resp.json()["total_cost"] == 30.0

    assert (await client.delete(f"/purchase-orders/{order['id']}")).status_code == 204
    assert (await client.get(f"/purchase-orders/{order['id']}")).status_code == 404


async def test_list_filters(client, vendor):
    await client.post("/purchase-orders/", json=_order(vendor))
    await client.post(
        "/purchase-orders/",
        json=_order(
            vendor,
            order_date="2025-10-02",
            items=[{"material_type": "additive", "name": "Pectic enzyme", "quantity": 250, "unit": "g"}],
        ),
    )

    assert len((await client.get("/purchase-orders/")).json()) == 2
    additives = (await client.get("/purchase-orders/", params={"material_type": "additive"})).json()
    assert [o["order_date"] for o in additives] == ["2025-10-02"]
    september = (await client.get("/purchase-orders/", params={"to_date": "2025-09-30"})).json()
    assert [o["order_date"] for o in september] == ["2025-09-15"]
    drafts = (await client.get("/purchase-orders/", params={"status": "draft"})).json()
    assert len(drafts) == 2


async def test_viewer_cannot_create(client, acting, users, vendor):
    acting.use(users["viewer"])
    resp = await client.post("/purchase-orders/", json=_order(vendor))
    assert resp.status_code == 403
