import asyncio
import uuid
from datetime import datetime, timedelta

import pytest

pytestmark = pytest.mark.anyio


def _run_payload(batch, vessel, **overrides):
    payload = {
        "batch_id": batch["id"],
        "vessel_id": str(vessel.id),
        "package_size_ml": 750,
        "units_produced": 100,
        "volume_taken_l": 76,
        "abv_at_packaging": 6.2,
        "retail_price": 8.5,
        "wholesale_price": 5.25,
    }
    payload.update(overrides)
    return payload


async def _package(client, batch, vessel, **overrides):
    resp = await client.post("/packaging/runs", json=_run_payload(batch, vessel, **overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_packaging_run_moves_cider_into_inventory(client, vessel, batch):
    created = await _package(client, batch, vessel)
    assert created["loss_l"] == 1.0
    assert created["loss_percentage"] == pytest.approx(1.32, abs=0.01)
    assert created["vessel_status"] == "fermenting"
    assert created["lot_code"].startswith("BATCH-24-")
    assert created["lot_code"].endswith("-01")

    detail = (await client.get(f"/packaging/runs/{created['run_id']}")).json()
    assert detail["status"] == "completed"
    assert detail["run_sequence"] == 1
    assert detail["batch_name"] == "Batch 24"
    [item] = detail["inventory"]
    assert item["id"] == created["inventory_item_id"]
    assert item["current_quantity"] == 100
    assert item["retail_price"] == 8.5
    assert item["wholesale_price"] == 5.25

    remaining = (await client.get(f"/batches/{batch['id']}")).json()
    assert remaining["current_volume_l"] == 324


async def test_taking_everything_sends_vessel_to_cleaning(client, vessel, batch):
    created = await _package(client, batch, vessel, package_size_ml=19550, units_produced=20, volume_taken_l=400)
    assert created["vessel_status"] == "cleaning"

    again = await client.post("/packaging/runs", json=_run_payload(batch, vessel, volume_taken_l=1, units_produced=1))
    assert again.status_code == 400
    assert again.json()["detail"] == "Vessel FV-1 is not ready for packaging (status: cleaning)"


async def test_packaging_guards(client, vessel, batch):
    over = await client.post("/packaging/runs", json=_run_payload(batch, vessel, volume_taken_l=500))
    assert over.status_code == 400
    assert over.json()["detail"].startswith("Insufficient volume in vessel. Available: 400.0L")

    too_many_units = await client.post("/packaging/runs", json=_run_payload(batch, vessel, volume_taken_l=70))
    assert too_many_units.status_code == 400

    future = await client.post(
        "/packaging/runs",
        json=_run_payload(batch, vessel, packaged_at=(datetime.now() + timedelta(days=2)).isoformat()),
    )
    assert future.status_code == 400
    assert "future" in future.json()["detail"]

    strong = await client.post("/packaging/runs", json=_run_payload(batch, vessel, abv_at_packaging=30))
    assert strong.status_code == 400

    wrong_batch = await client.post(
        "/packaging/runs", json=_run_payload(batch, vessel, batch_id=str(uuid.uuid4()))
    )
    assert wrong_batch.status_code == 404
    assert wrong_batch.json()["detail"] == "Batch not found in this vessel"


async def test_discarded_batch_cannot_be_packaged(client, vessel, batch):
    await client.patch(f"/batches/{batch['id']}", json={"status": "discarded"})
    # discarding frees the vessel, so put it back in use to reach the batch check
    await client.patch(f"/vessels/{vessel.id}", json={"status": "in_use"})
    resp = await client.post("/packaging/runs", json=_run_payload(batch, vessel))
    assert resp.status_code == 400
    assert "discarded" in resp.json()["detail"]


async def test_concurrent_runs_cannot_overdraw_the_batch(client, vessel, batch):
    body = _run_payload(batch, vessel, units_produced=300, volume_taken_l=250)
    first, second = await asyncio.gather(
        client.post("/packaging/runs", json=body),
        client.post("/packaging/runs", json=body),
    )
    assert sorted([first.status_code, second.status_code]) == [201, 400]

    left = (await client.get(f"/batches/{batch['id']}")).json()
    assert left["current_volume_l"] == 150


async def test_list_runs_filters(client, vessel, batch):
    await _package(client, batch, vessel)
    await _package(client, batch, vessel, package_size_ml=19550, units_produced=2, volume_taken_l=40)

    everything = (await client.get("/packaging/runs")).json()
    assert everything["total"] == 2

    kegs = (await client.get("/packaging/runs", params={"package_type": "keg"})).json()
    assert [r["units_produced"] for r in kegs["runs"]] == [2]

    paged = (await client.get("/packaging/runs", params={"limit": 1})).json()
    assert paged["has_more"] is True


async def test_qa_update(client, users, vessel, batch):
    created = await _package(client, batch, vessel)
    run_id = created["run_id"]

    resp = await client.patch(
        f"/packaging/runs/{run_id}/qa",
        json={"fill_check": "pass", "carbonation_level": "sparkling", "qa_technician_id": str(users["operator"].id)},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["fill_check"] == "pass"
    assert body["qa_technician_id"] == str(users["operator"].id)

    unknown = await client.patch(f"/packaging/runs/{run_id}/qa", json={"qa_technician_id": str(uuid.uuid4())})
    assert unknown.status_code == 404


async def test_void_returns_volume_and_zeroes_stock(client, vessel, batch):
    created = await _package(client, batch, vessel, units_produced=12, volume_taken_l=9.2)
    run_id = created["run_id"]

    voided = await client.post(f"/packaging/runs/{run_id}/void", json={"reason": "wrong labels"})
    assert voided.status_code == 200
    assert voided.json()["status"] == "voided"
    assert voided.json()["void_reason"] == "wrong labels"

    item = (await client.get(f"/inventory/finished-goods/{created['inventory_item_id']}")).json()
    assert item["current_quantity"] == 0
    assert sorted(m["kind"] for m in item["movements"]) == ["PACKAGED", "VOID"]
    assert item["run_status"] == "voided"

    restored = (await client.get(f"/batches/{batch['id']}")).json()
    assert restored["current_volume_l"] == 400

    twice = await client.post(f"/packaging/runs/{run_id}/void", json={"reason": "again"})
    assert twice.status_code == 409

    # lot codes keep counting past voided runs
    next_run = await _package(client, batch, vessel)
    assert next_run["lot_code"].endswith("-02")

    qa = await client.patch(f"/packaging/runs/{run_id}/qa", json={"fill_check": "fail"})
    assert qa.status_code == 409


async def test_void_fully_drained_vessel_reopens_it(client, vessel, batch):
    created = await _package(client, batch, vessel, package_size_ml=19550, units_produced=20, volume_taken_l=400)
    await client.post(f"/packaging/runs/{created['run_id']}/void", json={"reason": "keg washer fault"})
    vessel_now = (await client.get(f"/vessels/{vessel.id}")).json()
    assert vessel_now["status"] == "fermenting"


async def test_cannot_void_after_units_left(client, vessel, batch, channels):
    created = await _package(client, batch, vessel)
    await client.post(
        f"/inventory/finished-goods/{created['inventory_item_id']}/distribute",
        json={"quantity": 5, "sales_channel_id": str(channels["tasting_room"])},
    )
    resp = await client.post(f"/packaging/runs/{created['run_id']}/void", json={"reason": "oops"})
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Cannot void a run whose units have already left inventory"


async def test_viewer_cannot_package(client, acting, users, vessel, batch):
    acting.use(users["viewer"])
    resp = await client.post("/packaging/runs", json=_run_payload(batch, vessel))
    assert resp.status_code == 403


async def test_package_sizes(client, acting, users):
    first = await client.post(
        "/packaging/package-sizes",
        json={"size_ml": 750, "display_name": "750 ml bottle", "package_type": "bottle", "sort_order": 2},
    )
    assert first.status_code == 201
    keg = await client.post("/packaging/package-sizes", json={"size_ml": 19550, "display_name": "1/6 bbl keg"})
    assert keg.json()["package_type"] == "keg"
    await client.post(
        "/packaging/package-sizes",
        json={"size_ml": 355, "display_name": "12 oz can", "package_type": "can", "sort_order": 1},
    )

    dup = await client.post(
        "/packaging/package-sizes", json={"size_ml": 750, "display_name": "Again", "package_type": "bottle"}
    )
    assert dup.status_code == 409

    listed = (await client.get("/packaging/package-sizes")).json()
    assert [s["size_ml"] for s in listed] == [19550, 355, 750]

    acting.use(users["operator"])
    forbidden = await client.post("/packaging/package-sizes", json={"size_ml": 500, "display_name": "500 ml"})
    assert forbidden.status_code == 403
    assert forbidden.json()["detail"] == "Admin access required"
