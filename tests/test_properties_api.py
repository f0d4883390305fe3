import uuid
from datetime import timedelta

import pytest

from factories import make_neighborhood, make_property
from homematch.models import ListingStatus, Property, PropertyType
from homematch.models.base import utcnow


@pytest.fixture
def admin(auth):
    return auth.login(email="admin@example.com", name="Admin")


NEW_PROPERTY = {
    "address": "500 Lamar Blvd",
    "city": "Austin",
    "state": "TX",
    "zip_code": "78703",
    "price": 610000,
    "bedrooms": 4,
    "bathrooms": 3,
    "square_feet": 2200,
    "property_type": "single_family",
    "latitude": 30.27,
    "longitude": -97.75,
}


@pytest.mark.asyncio
async def test_list_requires_auth(client):
    response = await client.get("/api/properties")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_filters_by_price_and_bedrooms(client, db, auth):
    await make_property(db, price=300000, bedrooms=2)
    match = await make_property(db, price=500000, bedrooms=4)
    await make_property(db, price=900000, bedrooms=5)
    auth.login()

    response = await client.get("/api/properties?price_min=400000&price_max=800000&bedrooms_min=3")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert [p["id"] for p in body["properties"]] == [str(match.id)]


@pytest.mark.asyncio
async def test_list_hides_inactive(client, db, auth):
    await make_property(db, is_active=False)
    visible = await make_property(db)
    auth.login()

    body = (await client.get("/api/properties")).json()

    assert [p["id"] for p in body["properties"]] == [str(visible.id)]


@pytest.mark.asyncio
async def test_list_filters_by_city_pairs(client, db, auth):
    austin = await make_property(db, city="Austin", state="TX")
    denver = await make_property(db, city="Denver", state="CO")
    await make_property(db, city="Austin", state="MN")
    auth.login()

    body = (await client.get("/api/properties?cities=austin|tx,Denver|CO")).json()

    assert {p["id"] for p in body["properties"]} == {str(austin.id), str(denver.id)}


@pytest.mark.asyncio
async def test_list_paginates_and_sorts(client, db, auth):
    for price in (100000, 300000, 200000):
        await make_property(db, price=price)
    auth.login()

    response = await client.get("/api/properties?page=2&limit=2&sort=price&direction=desc")

    body = response.json()
    assert body["total"] == 3
    assert body["page"] == 2
    assert body["limit"] == 2
    assert [p["price"] for p in body["properties"]] == [100000]


@pytest.mark.asyncio
async def test_list_radius_uses_exact_distance(client, db, auth):
    near = await make_property(db, latitude=30.2672, longitude=-97.7431)
    # Inside the bounding box but outside the circle
    await make_property(db, latitude=30.2672 + 0.085, longitude=-97.7431 + 0.098)
    await make_property(db, latitude=32.7767, longitude=-96.7970)
    auth.login()

    body = (await client.get("/api/properties?lat=30.2672&lng=-97.7431&radius_km=10")).json()

    assert body["total"] == 1
    assert body["properties"][0]["id"] == str(near.id)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query, field",
    [
        ("price_min=500&price_max=100", "price_min"),
        ("limit=500", "limit"),
        ("page=0", "page"),
        ("property_types=castle", "property_types"),
        ("sort=color", "sort"),
    ],
)
async def test_list_rejects_bad_filters(client, auth, query, field):
    auth.login()
    response = await client.get(f"/api/properties?{query}")
    assert response.status_code == 400
    assert field in response.json()["error"]


@pytest.mark.asyncio
async def test_search_post(client, db, auth):
    condo = await make_property(db, property_type=PropertyType.condo)
    await make_property(db, property_type=PropertyType.single_family)
    auth.login()

    response = await client.post(
        "/api/properties/search",
        json={"filters": {"property_types": ["condo"]}, "pagination": {"page": 1, "limit": 10}},
    )

    assert response.status_code == 200
    assert [p["id"] for p in response.json()["properties"]] == [str(condo.id)]


@pytest.mark.asyncio
async def test_search_post_rejects_bad_radius(client, auth):
    auth.login()
    response = await client.post(
        "/api/properties/search",
        json={"filters": {"within_radius": {"center": [-97.7, 30.2], "radius_km": 0}}},
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("filters.within_radius.radius_km")


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["lat=200&lng=0&radius_km=5", "lat=10&lng=-181&radius_km=5"])
async def test_list_rejects_out_of_range_center(client, auth, query):
    auth.login()
    response = await client.get(f"/api/properties?{query}")
    assert response.status_code == 400
    assert response.json()["error"].startswith("within_radius.center:")


@pytest.mark.asyncio
async def test_search_post_rejects_out_of_range_center(client, auth):
    auth.login()
    response = await client.post(
        "/api/properties/search",
        json={"filters": {"within_radius": {"center": [0, 200], "radius_km": 5}}},
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("filters.within_radius.center:")
    assert "Latitude" in response.json()["error"]


@pytest.mark.asyncio
async def test_nearby_sorted_by_distance(client, db, auth):
    farther = await make_property(db, latitude=30.30, longitude=-97.74)
    closer = await make_property(db, latitude=30.27, longitude=-97.74)
    await make_property(db, latitude=None, longitude=None)
    auth.login()

    response = await client.get("/api/properties/nearby?lat=30.2672&lng=-97.7431&radius_km=10")

    assert response.status_code == 200
    body = response.json()
    assert [p["id"] for p in body] == [str(closer.id), str(farther.id)]
    assert body[0]["distance_km"] < body[1]["distance_km"]


@pytest.mark.asyncio
async def test_nearby_requires_coordinates(client, auth):
    auth.login()
    response = await client.get("/api/properties/nearby?lat=30.2")
    assert response.status_code == 400
    assert response.json()["error"].startswith("lng:")


@pytest.mark.asyncio
async def test_marketing_is_public(client, db):
    await make_property(db, images=[])
    await make_property(db, listing_status=ListingStatus.sold)
    card = await make_property(db, zpid="Z-1", images=["https://img.test/front.jpg"])

    response = await client.get("/api/properties/marketing")

    assert response.status_code == 200
    body = response.json()
    assert len(body) == 1
    assert body[0]["zpid"] == "Z-1"
    assert body[0]["imageUrl"] == "https://img.test/front.jpg"
    assert body[0]["address"].startswith(card.address)


@pytest.mark.asyncio
async def test_marketing_skips_imageless_listings_in_query(client, db):
    older = await make_property(db, zpid="Z-OLD", updated_at=utcnow() - timedelta(days=1))
    for _ in range(12):
        await make_property(db, images=[])

    body = (await client.get("/api/properties/marketing")).json()

    assert [card["zpid"] for card in body] == [older.zpid]


@pytest.mark.asyncio
async def test_nearby_wraps_at_antimeridian(client, db, auth):
    across = await make_property(db, latitude=0.0, longitude=-179.99)
    same_side = await make_property(db, latitude=0.0, longitude=179.95)
    auth.login()

    response = await client.get("/api/properties/nearby?lat=0&lng=179.99&radius_km=10")

    assert [p["id"] for p in response.json()] == [str(across.id), str(same_side.id)]


@pytest.mark.asyncio
async def test_list_radius_wraps_at_antimeridian(client, db, auth):
    across = await make_property(db, latitude=-17.0, longitude=179.98)
    auth.login()

    body = (await client.get("/api/properties?lat=-17&lng=-179.98&radius_km=10")).json()

    assert [p["id"] for p in body["properties"]] == [str(across.id)]


@pytest.mark.asyncio
async def test_get_property_with_neighborhood(client, db, auth):
    neighborhood = await make_neighborhood(db, name="Zilker")
    prop = await make_property(db, neighborhood_id=neighborhood.id)
    auth.login()

    response = await client.get(f"/api/properties/{prop.id}")

    assert response.status_code == 200
    assert response.json()["neighborhood"]["name"] == "Zilker"


@pytest.mark.asyncio
async def test_get_property_404(client, auth):
    auth.login()
    response = await client.get(f"/api/properties/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json() == {"error": "Property not found"}


@pytest.mark.asyncio
async def test_get_property_bad_id(client, auth):
    auth.login()
    response = await client.get("/api/properties/not-a-uuid")
    assert response.status_code == 400
    assert response.json()["error"].startswith("property_id:")


@pytest.mark.asyncio
async def test_writes_require_admin(client, auth):
    auth.login(email="someone@example.com")
    response = await client.post("/api/properties", json=NEW_PROPERTY)
    assert response.status_code == 403
    assert response.json() == {"error": "Admin access required"}


@pytest.mark.asyncio
async def test_admin_creates_updates_and_deletes(client, db, admin):
    response = await client.post("/api/properties", json=NEW_PROPERTY)
    assert response.status_code == 201
    created = response.json()
    assert created["address"] == "500 Lamar Blvd"
    assert created["listing_status"] == "active"

    response = await client.patch(f"/api/properties/{created['id']}", json={"price": 589000})
    assert response.status_code == 200
    assert response.json()["price"] == 589000
    assert response.json()["bedrooms"] == 4

    response = await client.delete(f"/api/properties/{created['id']}")
    assert response.json() == {"deleted": True}

    stored = await db.get(Property, uuid.UUID(created["id"]))
    assert stored.is_active is False
    response = await client.get(f"/api/properties/{created['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_update_unknown_property(client, admin):
    response = await client.patch(f"/api/properties/{uuid.uuid4()}", json={"price": 1})
    assert response.status_code == 404
    assert response.json() == {"error": "Property not found"}


@pytest.mark.asyncio
async def test_create_validates_payload(client, admin):
    response = await client.post("/api/properties", json={**NEW_PROPERTY, "bedrooms": 50})
    assert response.status_code == 400
    assert response.json()["error"].startswith("bedrooms:")


@pytest.mark.asyncio
async def test_neighborhood_endpoints(client, db, auth):
    zilker = await make_neighborhood(db, name="Zilker")
    await make_neighborhood(db, name="LoDo", city="Denver", state="CO")
    inside = await make_property(db, neighborhood_id=zilker.id)
    await make_property(db)
    auth.login()

    listed = (await client.get("/api/neighborhoods?city=austin")).json()
    assert [n["name"] for n in listed] == ["Zilker"]

    one = await client.get(f"/api/neighborhoods/{zilker.id}")
    assert one.json()["name"] == "Zilker"

    props = (await client.get(f"/api/neighborhoods/{zilker.id}/properties")).json()
    assert [p["id"] for p in props] == [str(inside.id)]

    missing = await client.get(f"/api/neighborhoods/{uuid.uuid4()}")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Neighborhood not found"}
