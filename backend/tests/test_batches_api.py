import uuid
from datetime import datetime, timedelta

import pytest

pytestmark = pytest.mark.anyio


async def _vessel_status(client, vessel_id):
    resp = await client.get(f"/vessels/{vessel_id}")
    return resp.json()["status"]


async def test_create_batch_claims_vessel(client, vessel, batch):
    assert batch["status"] == "fermentation"
    assert batch["vessel_name"] == "FV-1"
    assert batch["current_volume_l"] == 400
    assert await _vessel_status(client, vessel.id) == "fermenting"


async def test_busy_vessel_and_duplicate_name(client, vessel, batch):
    dup = await client.post("/batches/", json={"name": "batch 24", "initial_volume": 10})
    assert dup.status_code == 409

    busy = await client.post(
        "/batches/", json={"name": "Batch 25", "initial_volume": 10, "vessel_id": str(vessel.id)}
    )
    assert busy.status_code == 409
    assert busy.json()["detail"] == "Vessel FV-1 is not available (status: fermenting)"


async def test_volume_cannot_exceed_capacity(client, vessel):
    resp = await client.post(
        "/batches/",
        json={"name": "Too Big", "initial_volume": 300, "volume_unit": "gal", "vessel_id": str(vessel.id)},
    )
    assert resp.status_code == 400
    assert "exceeds vessel capacity" in resp.json()["detail"]


async def test_list_batches_filters_and_paginates(client, batch):
    await client.post("/batches/", json={"name": "Perry 1", "initial_volume": 50, "status": "aging"})

    everything = (await client.get("/batches/")).json()
    assert everything["total"] == 2
    assert everything["has_more"] is False

    aging = (await client.get("/batches/", params={"status": "aging"})).json()
    assert [b["name"] for b in aging["batches"]] == ["Perry 1"]

    page = (await client.get("/batches/", params={"limit": 1, "sort": "name", "direction": "asc"})).json()
    assert [b["name"] for b in page["batches"]] == ["Batch 24"]
    assert page["has_more"] is True


async def test_measurement_derives_abv_from_original_gravity(client, batch):
    resp = await client.post(f"/batches/{batch['id']}/measurements", json={"specific_gravity": 1.010, "ph": 3.5})
    assert resp.status_code == 201
    assert resp.json()["abv"] == pytest.approx(5.91, abs=0.01)

    detail = (await client.get(f"/batches/{batch['id']}")).json()
    assert detail["estimated_abv"] == pytest.approx(5.91, abs=0.01)
    assert detail["potential_abv"] == pytest.approx(7.22, abs=0.01)
    assert detail["latest_measurement"]["ph"] == 3.5


async def test_measurement_ranges_are_validated(client, batch):
    resp = await client.post(f"/batches/{batch['id']}/measurements", json={"ph": 7.5})
    assert resp.status_code == 422


async def test_cellar_operation_records_loss(client, batch):
    resp = await client.post(
        f"/batches/{batch['id']}/cellar-operations",
        json={"operation_type": "racking", "volume_after": 390},
    )
    assert resp.status_code == 201
    assert resp.json()["volume_loss_l"] == 10

    detail = (await client.get(f"/batches/{batch['id']}")).json()
    assert detail["current_volume_l"] == 390

    bad = await client.post(
        f"/batches/{batch['id']}/cellar-operations",
        json={"operation_type": "filtering", "volume_after": 395},
    )
    assert bad.status_code == 400


async def test_additives_are_listed(client, batch):
    await client.post(
        f"/batches/{batch['id']}/additives",
        json={"additive_type": "nutrient", "name": "DAP", "amount": 25, "unit": "g"},
    )
    listed = (await client.get(f"/batches/{batch['id']}/additives")).json()
    assert [a["name"] for a in listed] == ["DAP"]


async def test_completing_batch_frees_vessel_for_cleaning(client, vessel, batch):
    resp = await client.patch(f"/batches/{batch['id']}", json={"status": "completed"})
    assert resp.status_code == 200
    assert resp.json()["end_date"] is not None
    assert await _vessel_status(client, vessel.id) == "cleaning"


async def test_moving_to_aging_keeps_vessel_in_use(client, vessel, batch):
    await client.patch(f"/batches/{batch['id']}", json={"status": "aging"})
    assert await _vessel_status(client, vessel.id) == "in_use"


async def test_moving_and_completing_in_one_update_cleans_both_vessels(client, vessel, batch):
    fv2 = (await client.post("/vessels/", json={"name": "FV-2", "capacity_l": 600})).json()
    resp = await client.patch(f"/batches/{batch['id']}", json={"vessel_id": fv2["id"], "status": "completed"})
    assert resp.status_code == 200
    assert resp.json()["vessel_id"] == fv2["id"]
    assert await _vessel_status(client, vessel.id) == "cleaning"
    assert await _vessel_status(client, fv2["id"]) == "cleaning"


async def test_viewer_cannot_record_measurements(client, acting, users, batch):
    acting.use(users["viewer"])
    resp = await client.post(f"/batches/{batch['id']}/measurements", json={"specific_gravity": 1.0})
    assert resp.status_code == 403


async def test_carbonation_start_and_complete(client, vessel, batch):
    started_at = datetime.now() - timedelta(hours=24)
    resp = await client.post(
        "/carbonation/start",
        json={
            "batch_id": batch["id"],
            "vessel_id": str(vessel.id),
            "process": "headspace",
            "target_co2_volumes": 2.5,
            "starting_temperature_c": 4,
            "pressure_applied_psi": 12,
            "starting_volume": 380,
            "started_at": started_at.isoformat(),
        },
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["carbonation_level"] == "sparkling"
    assert body["temperature_warning"] is None
    assert body["carbonation"]["suggested_pressure_psi"] == pytest.approx(11.69, abs=0.01)
    op_id = body["carbonation"]["id"]

    again = await client.post(
        "/carbonation/start",
        json={"batch_id": batch["id"], "process": "headspace", "target_co2_volumes": 2.5, "starting_volume": 380},
    )
    assert again.status_code == 409

    active = (await client.get("/carbonation/active")).json()
    assert len(active) == 1
    assert active[0]["hours_elapsed"] == pytest.approx(24, abs=0.2)

    done = await client.post(f"/carbonation/{op_id}/complete", json={"final_co2_volumes": 2.4})
    assert done.status_code == 200
    assert done.json()["target_met"] is True
    assert done.json()["duration_hours"] == pytest.approx(24, abs=0.2)

    twice = await client.post(f"/carbonation/{op_id}/complete", json={"final_co2_volumes": 2.4})
    assert twice.status_code == 409
    assert (await client.get("/carbonation/active")).json() == []


async def test_active_carbonation_progress(client, vessel, batch):
    second = (await client.post("/batches/", json={"name": "Batch 25", "initial_volume": 200})).json()
    now = datetime.now()
    await client.post(
        "/carbonation/start",
        json={
            "batch_id": batch["id"],
            "vessel_id": str(vessel.id),
            "process": "headspace",
            "target_co2_volumes": 2.5,
            "pressure_applied_psi": 15,
            "starting_volume": 380,
            "started_at": (now - timedelta(hours=80)).isoformat(),
        },
    )
    await client.post(
        "/carbonation/start",
        json={
            "batch_id": second["id"],
            "process": "bottle_conditioning",
            "target_co2_volumes": 2.5,
            "starting_volume": 200,
            "started_at": (now - timedelta(hours=30)).isoformat(),
        },
    )

    active = {op["batch_name"]: op for op in (await client.get("/carbonation/active")).json()}

    pressurised = active["Batch 24"]
    assert pressurised["estimated_hours"] == 60.0
    assert pressurised["percent_complete"] == 100
    assert pressurised["is_overdue"] is True

    conditioning = active["Batch 25"]
    assert conditioning["estimated_hours"] == 48
    assert conditioning["percent_complete"] == 63
    assert conditioning["is_overdue"] is False


async def test_carbonation_rejects_unsafe_conditions(client, vessel, batch):
    base = {"batch_id": batch["id"], "process": "headspace", "target_co2_volumes": 2.5, "starting_volume": 380}

    hot = await client.post("/carbonation/start", json={**base, "starting_temperature_c": 30})
    assert hot.status_code == 400
    assert hot.json()["detail"] == "Temperature too high (poor CO2 absorption)"

    over = await client.post(
        "/carbonation/start", json={**base, "vessel_id": str(vessel.id), "pressure_applied_psi": 20}
    )
    assert over.status_code == 400
    assert "exceeds safe limit" in over.json()["detail"]

    missing = await client.post("/carbonation/start", json={**base, "batch_id": str(uuid.uuid4())})
    assert missing.status_code == 404


async def test_carbonation_suggestions(client):
    resp = await client.post(
        "/carbonation/suggestions", json={"target_co2_volumes": 2.5, "temperature_c": 4, "max_pressure_psi": 10}
    )
    body = resp.json()
    assert body["required_pressure_psi"] == pytest.approx(11.69, abs=0.01)
    assert body["is_safe"] is False
    assert [a["temperature_c"] for a in body["alternatives"]] == [2, 6]
    assert body["recommendations"][0] == "Carbonation stone recommended for high CO2"


async def test_priming_sugar(client):
    resp = await client.post("/carbonation/priming-sugar", json={"target_co2_volumes": 2.5, "volume": 20})
    body = resp.json()
    assert body["sugar_g"] == 200.0
    assert body["sugar_g_per_l"] == 10.0
    assert body["expected_co2_volumes"] == 2.5
    assert body["carbonation_level"] == "sparkling"
