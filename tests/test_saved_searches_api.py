import uuid

import pytest

from factories import login_as, make_household, make_user


@pytest.fixture
async def couple(db):
    household = await make_household(db)
    owner = await make_user(db, household=household)
    partner = await make_user(db, household=household)
    return household, owner, partner


@pytest.mark.asyncio
async def test_create_and_list(client, auth):
    auth.login()

    response = await client.post(
        "/api/saved-searches",
        json={"name": "Cheap condos", "filters": {"price_max": 300000, "property_types": ["condo"]}},
    )

    assert response.status_code == 201
    created = response.json()
    assert created["filters"] == {"price_max": 300000.0, "property_types": ["condo"]}
    assert created["household_id"] is None
    assert created["notify"] is False

    listed = (await client.get("/api/saved-searches")).json()
    assert [s["id"] for s in listed] == [created["id"]]


@pytest.mark.asyncio
async def test_create_rejects_invalid_filters(client, auth):
    auth.login()
    response = await client.post(
        "/api/saved-searches",
        json={"name": "Backwards", "filters": {"price_min": 500, "price_max": 100}},
    )
    assert response.status_code == 400
    assert "price_min" in response.json()["error"]


@pytest.mark.asyncio
async def test_sharing_requires_household(client, auth):
    auth.login()
    response = await client.post("/api/saved-searches", json={"name": "Shared", "share_with_household": True})
    assert response.status_code == 400
    assert response.json() == {"error": "Join a household before sharing searches"}


@pytest.mark.asyncio
async def test_shared_search_visible_to_partner(client, auth, couple):
    household, owner, partner = couple
    login_as(auth, owner)
    shared = (
        await client.post("/api/saved-searches", json={"name": "Together", "share_with_household": True})
    ).json()
    await client.post("/api/saved-searches", json={"name": "Private"})
    assert shared["household_id"] == str(household.id)

    login_as(auth, partner)
    listed = (await client.get("/api/saved-searches")).json()

    assert [s["name"] for s in listed] == ["Together"]


@pytest.mark.asyncio
async def test_only_owner_can_modify(client, auth, couple):
    _, owner, partner = couple
    login_as(auth, owner)
    shared = (
        await client.post("/api/saved-searches", json={"name": "Together", "share_with_household": True})
    ).json()

    login_as(auth, partner)
    response = await client.patch(f"/api/saved-searches/{shared['id']}", json={"name": "Mine now"})
    assert response.status_code == 403
    assert response.json() == {"error": "Only the owner can modify this saved search"}

    response = await client.delete(f"/api/saved-searches/{shared['id']}")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_saved_search(client, auth):
    auth.login()
    created = (await client.post("/api/saved-searches", json={"name": "Draft"})).json()

    response = await client.patch(
        f"/api/saved-searches/{created['id']}",
        json={"name": "Final", "notify": True, "filters": {"bedrooms_min": 3}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Final"
    assert body["notify"] is True
    assert body["filters"] == {"bedrooms_min": 3}


@pytest.mark.asyncio
async def test_delete_is_soft_and_hides_search(client, auth):
    auth.login()
    created = (await client.post("/api/saved-searches", json={"name": "Old"})).json()

    response = await client.delete(f"/api/saved-searches/{created['id']}")
    assert response.json() == {"deleted": True}

    assert (await client.get("/api/saved-searches")).json() == []
    response = await client.delete(f"/api/saved-searches/{created['id']}")
    assert response.status_code == 404
    assert response.json() == {"error": "Saved search not found"}


@pytest.mark.asyncio
async def test_unknown_saved_search(client, auth):
    auth.login()
    response = await client.patch(f"/api/saved-searches/{uuid.uuid4()}", json={"name": "x"})
    assert response.status_code == 404
