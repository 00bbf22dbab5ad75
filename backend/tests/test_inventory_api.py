import asyncio

import pytest

pytestmark = pytest.mark.anyio


@pytest.fixture
async def lot(client, vessel, batch):
    """100 x 750 ml from Batch 24, priced 8.50 retail / 5.25 wholesale."""
    resp = await client.post(
        "/packaging/runs",
        json={
            "batch_id": batch["id"],
            "vessel_id": str(vessel.id),
            "package_size_ml": 750,
            "units_produced": 100,
            "volume_taken_l": 76,
            "retail_price": 8.5,
            "wholesale_price": 5.25,
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["inventory_item_id"]


async def test_distribution_uses_channel_price(client, lot, channels):
    retail = await client.post(
        f"/inventory/finished-goods/{lot}/distribute",
        json={"quantity": 10, "sales_channel_id": str(channels["tasting_room"])},
    )
    assert retail.status_code == 201
    assert retail.json()["change"] == -10
    assert retail.json()["unit_price"] == 8.5
    assert retail.json()["sales_channel_code"] == "tasting_room"

    wholesale = await client.post(
        f"/inventory/finished-goods/{lot}/distribute",
        json={"quantity": 24, "sales_channel_id": str(channels["wholesale"])},
    )
    assert wholesale.json()["unit_price"] == 5.25

    override = await client.post(
        f"/inventory/finished-goods/{lot}/distribute",
        json={"quantity": 1, "sales_channel_id": str(channels["wholesale"]), "unit_price": 4.99},
    )
    assert override.json()["unit_price"] == 4.99

    details = (await client.get(f"/inventory/finished-goods/{lot}")).json()
    assert details["current_quantity"] == 65
    assert details["volume_on_hand_l"] == 48.75
    assert details["volume_on_hand_gallons"] == pytest.approx(12.878, abs=0.001)


async def test_cannot_distribute_more_than_on_hand(client, lot, channels):
    resp = await client.post(
        f"/inventory/finished-goods/{lot}/distribute",
        json={"quantity": 101, "sales_channel_id": str(channels["tasting_room"])},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Insufficient stock for lot")

    details = (await client.get(f"/inventory/finished-goods/{lot}")).json()
    assert details["current_quantity"] == 100


async def test_concurrent_distributions_cannot_oversell(client, lot, channels):
    body = {"quantity": 60, "sales_channel_id": str(channels["wholesale"])}
    first, second = await asyncio.gather(
        client.post(f"/inventory/finished-goods/{lot}/distribute", json=body),
        client.post(f"/inventory/finished-goods/{lot}/distribute", json=body),
    )
    assert sorted([first.status_code, second.status_code]) == [201, 400]

    details = (await client.get(f"/inventory/finished-goods/{lot}")).json()
    assert details["current_quantity"] == 40
    assert sum(m["change"] for m in details["movements"]) == 40


async def test_unknown_channel(client, lot):
    resp = await client.post(
        f"/inventory/finished-goods/{lot}/distribute",
        json={"quantity": 1, "sales_channel_id": "00000000-0000-0000-0000-000000000000"},
    )
    assert resp.status_code == 404


async def test_adjustments(client, lot):
    broke = await client.post(
        f"/inventory/finished-goods/{lot}/adjust",
        json={"change": -3, "adjustment_type": "breakage", "reason": "dropped case"},
    )
    assert broke.status_code == 201
    assert broke.json()["kind"] == "ADJUSTMENT"

    found = await client.post(
        f"/inventory/finished-goods/{lot}/adjust",
        json={"change": 1, "adjustment_type": "correction", "reason": "recount"},
    )
    assert found.status_code == 201

    blank = await client.post(
        f"/inventory/finished-goods/{lot}/adjust",
        json={"change": -1, "adjustment_type": "sample", "reason": "  "},
    )
    assert blank.status_code == 422

    details = (await client.get(f"/inventory/finished-goods/{lot}")).json()
    assert details["current_quantity"] == 98


async def test_pricing_update_and_clear(client, lot):
    resp = await client.patch(f"/inventory/finished-goods/{lot}/pricing", json={"retail_price": 9.0})
    assert resp.json()["retail_price"] == 9.0
    assert resp.json()["wholesale_price"] == 5.25

    cleared = await client.patch(f"/inventory/finished-goods/{lot}/pricing", json={"wholesale_price": None})
    assert cleared.json()["wholesale_price"] is None


async def test_list_finished_goods_and_movements(client, lot, channels):
    await client.post(
        f"/inventory/finished-goods/{lot}/distribute",
        json={"quantity": 100, "sales_channel_id": str(channels["wholesale"])},
    )

    listed = (await client.get("/inventory/finished-goods", params={"search": "batch 24"})).json()
    assert listed["total"] == 1
    in_stock = (await client.get("/inventory/finished-goods", params={"in_stock_only": True})).json()
    assert in_stock["items"] == []

    distributions = (await client.get("/inventory/movements", params={"kind": "DISTRIBUTION"})).json()
    assert [m["change"] for m in distributions] == [-100]
    assert distributions[0]["sales_channel_code"] == "wholesale"

    everything = (await client.get("/inventory/movements", params={"inventory_item_id": lot})).json()
    assert sorted(m["kind"] for m in everything) == ["DISTRIBUTION", "PACKAGED"]


async def test_viewer_can_read_but_not_distribute(client, acting, users, lot, channels):
    acting.use(users["viewer"])
    assert (await client.get(f"/inventory/finished-goods/{lot}")).status_code == 200
    resp = await client.post(
        f"/inventory/finished-goods/{lot}/distribute",
        json={"quantity": 1, "sales_channel_id": str(channels["wholesale"])},
    )
    assert resp.status_code == 403


async def test_sales_channels_listing(client, channels):
    listed = (await client.get("/sales-channels/")).json()
    assert {c["code"] for c in listed} == {"tasting_room", "wholesale"}


async def test_only_admins_add_sales_channels(client, acting, users, channels):
    created = await client.post("/sales-channels/", json={"code": "Farmers Market", "name": "Farmers market"})
    assert created.status_code == 201
    dup = await client.post("/sales-channels/", json={"code": "wholesale", "name": "Wholesale again"})
    assert dup.status_code == 409

    acting.use(users["operator"])
    resp = await client.post("/sales-channels/", json={"code": "events", "name": "Events"})
    assert resp.status_code == 403
