import pytest

pytestmark = pytest.mark.anyio


async def test_vendor_lifecycle(client):
    resp = await client.post("/vendors/", json={"name": "  Hillside Orchards ", "contact_email": "sales@hillside.example.com"})
    assert resp.status_code == 201, resp.text
    vendor = resp.json()
    assert vendor["name"] == "Hillside Orchards"

    dup = await client.post("/vendors/", json={"name": "hillside orchards"})
    assert dup.status_code == 409

    patched = await client.patch(f"/vendors/{vendor['id']}", json={"contact_phone": "555-0100"})
    assert patched.json()["contact_phone"] == "555-0100"

    deleted = await client.delete(f"/vendors/{vendor['id']}")
    assert deleted.json()["is_active"] is False

    active = await client.get("/vendors/")
    assert active.json() == []
    everyone = await client.get("/vendors/", params={"include_inactive": True})
    assert [v["name"] for v in everyone.json()] == ["Hillside Orchards"]

    restored = await client.post(f"/vendors/{vendor['id']}/restore")
    assert restored.json()["is_active"] is True


async def test_vendor_search_and_missing(client):
    await client.post("/vendors/", json={"name": "Valley Fruit Co-op"})
    await client.post("/vendors/", json={"name": "Cellar Supply House"})

    found = await client.get("/vendors/", params={"search": "fruit"})
    assert [v["name"] for v in found.json()] == ["Valley Fruit Co-op"]

    missing = await client.get("/vendors/00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404


async def test_viewer_cannot_create_and_operator_cannot_delete(client, acting, users):
    acting.use(users["viewer"])
    resp = await client.post("/vendors/", json={"name": "Nope"})
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Permission denied: viewer cannot create vendor"

    acting.use(users["operator"])
    created = await client.post("/vendors/", json={"name": "Operator Vendor"})
    assert created.status_code == 201
    resp = await client.delete(f"/vendors/{created.json()['id']}")
    assert resp.status_code == 403


async def test_user_directory_and_role_change(client, acting, users):
    listing = await client.get("/users/directory")
    assert listing.status_code == 200
    assert {u["role"] for u in listing.json()} == {"admin", "operator", "viewer"}

    resp = await client.patch(f"/users/{users['viewer'].id}/role", json={"role": "operator"})
    assert resp.status_code == 200
    assert resp.json()["role"] == "operator"

    acting.use(users["operator"])
    resp = await client.patch(f"/users/{users['admin'].id}/role", json={"role": "viewer"})
    assert resp.status_code == 403
