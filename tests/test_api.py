import pytest
from bson import ObjectId

PROVIDENCIA = {
    "name": "Providencia",
    "description": "Barrio Providencia",
    "location": {"point": {"type": "Point", "coordinates": [-70.60, -33.42]}, "radius": 5000},
}


async def create_community(client, payload=PROVIDENCIA):
    resp = await client.post("/communities/", json=payload)
    assert resp.status_code == 201
    return resp.json()


async def create_pin(client, community_id, **overrides):
    payload = {
        "kind": "pin",
        "authorId": str(ObjectId()),
        "communityId": community_id,
        "title": "Farmacia Ahumada 24 Horas",
        "description": "Abierta toda la noche",
        "location": {"point": {"type": "Point", "coordinates": [-70.61, -33.425]}, "radius": 30},
        "address": "Av. Providencia 2124",
    }
    payload.update(overrides)
    return await client.post("/tips/", json=payload)


@pytest.mark.asyncio
async def test_health(api_client):
    resp = await api_client.get("/health/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": "ok"}


@pytest.mark.asyncio
async def test_search_returns_partitioned_buckets(api_client):
    community = await create_community(api_client)
    assert (await create_pin(api_client, community["_id"])).status_code == 201

    resp = await api_client.get(
        "/tips/", params={"search": "farmasia", "longitude": -70.61, "latitude": -33.425}
    )
    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"pins", "texts"}
    assert [p["title"] for p in body["pins"]] == ["Farmacia Ahumada 24 Horas"]
    assert body["texts"] == []
    assert body["pins"][0]["communityId"] == community["_id"]


@pytest.mark.asyncio
async def test_search_requires_both_coordinates(api_client):
    resp = await api_client.get("/tips/", params={"longitude": -70.61})
    assert resp.status_code == 400
    assert resp.json()["type"] == "ValidationError"


@pytest.mark.asyncio
async def test_search_rejects_bad_timestamp(api_client):
    resp = await api_client.get("/tips/", params={"updatedAt": "last tuesday"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_search_filters_by_subtype(api_client):
    community = await create_community(api_client)
    await create_pin(api_client, community["_id"], subtype="event", title="Concierto")
    await create_pin(api_client, community["_id"], subtype="business")

    resp = await api_client.get("/tips/", params={"allowedSubtypes": "event"})
    assert [p["title"] for p in resp.json()["pins"]] == ["Concierto"]

    resp = await api_client.get("/tips/", params={"allowedSubtypes": "event,party"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_create_pin_without_location_is_rejected(api_client):
    community = await create_community(api_client)
    resp = await create_pin(api_client, community["_id"], location=None)
    assert resp.status_code == 400
    assert "location" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_text_tip_lifecycle(api_client):
    community = await create_community(api_client)
    resp = await api_client.post(
        "/tips/",
        json={
            "kind": "text",
            "authorId": str(ObjectId()),
            "communityId": community["_id"],
            "title": "Feria libre",
            "description": "Fruta barata los sábados",
        },
    )
    assert resp.status_code == 201
    tip = resp.json()
    assert tip["kind"] == "text"

    resp = await api_client.patch(f"/tips/{tip['_id']}", json={"title": "Feria de los sábados"})
    assert resp.status_code == 200
    assert resp.json()["title"] == "Feria de los sábados"

    resp = await api_client.patch(f"/tips/{tip['_id']}", json={"address": "Somewhere"})
    assert resp.status_code == 400

    assert (await api_client.delete(f"/tips/{tip['_id']}")).json() == {"success": True}
    assert (await api_client.get(f"/tips/{tip['_id']}")).status_code == 404


@pytest.mark.asyncio
async def test_like_and_dislike(api_client):
    community = await create_community(api_client)
    tip = (await create_pin(api_client, community["_id"])).json()
    user = {"X-User-Id": str(ObjectId())}

    resp = await api_client.post(f"/tips/{tip['_id']}/like", headers=user)
    assert resp.json() == {"tip_id": tip["_id"], "likes": 1, "dislikes": 0}
    resp = await api_client.post(f"/tips/{tip['_id']}/like", headers=user)
    assert resp.json()["likes"] == 1

    resp = await api_client.post(f"/tips/{tip['_id']}/dislike", headers=user)
    assert resp.json() == {"tip_id": tip["_id"], "likes": 0, "dislikes": 1}


@pytest.mark.asyncio
async def test_like_missing_tip_and_anonymous_user(api_client):
    resp = await api_client.post(f"/tips/{ObjectId()}/like", headers={"X-User-Id": str(ObjectId())})
    assert resp.status_code == 404
    resp = await api_client.post(f"/tips/{ObjectId()}/like")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_malformed_tip_id(api_client):
    resp = await api_client.get("/tips/not-an-id")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_join_twice_counts_member_once(api_client):
    community = await create_community(api_client)
    headers = {"X-User-Id": str(ObjectId())}

    first = await api_client.post(f"/communities/{community['_id']}/join", headers=headers)
    second = await api_client.post(f"/communities/{community['_id']}/join", headers=headers)
    assert first.json() == {"success": True, "community": {"id": community["_id"], "memberCount": 1}}
    assert second.json()["community"]["memberCount"] == 1

    left = await api_client.delete(f"/communities/{community['_id']}/join", headers=headers)
    assert left.json()["community"]["memberCount"] == 0


@pytest.mark.asyncio
async def test_join_requires_user(api_client):
    community = await create_community(api_client)
    resp = await api_client.post(f"/communities/{community['_id']}/join")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_communities_by_point_and_area(api_client):
    community = await create_community(api_client)

    inside = await api_client.get("/communities/", params={"longitude": -70.61, "latitude": -33.425})
    assert [c["_id"] for c in inside.json()] == [community["_id"]]

    far = await api_client.get("/communities/", params={"longitude": -70.0, "latitude": -33.42})
    assert far.json() == []

    # about 56 km east; only a wide enough area reaches the region
    wide = await api_client.get(
        "/communities/", params={"longitude": -70.0, "latitude": -33.42, "radius": 60000}
    )
    assert [c["_id"] for c in wide.json()] == [community["_id"]]

    assert (await api_client.get("/communities/", params={"radius": 10})).status_code == 400


@pytest.mark.asyncio
async def test_missing_community(api_client):
    resp = await api_client.get(f"/communities/{ObjectId()}")
    assert resp.status_code == 404
    assert resp.json()["type"] == "NotFoundError"


@pytest.mark.asyncio
async def test_map_rejects_inverted_box(api_client):
    resp = await api_client.get("/map/", params={"southwest": "10,10", "northeast": "5,5"})
    assert resp.status_code == 400
    assert "southwest" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_map_returns_pins_in_box(api_client):
    community = await create_community(api_client)
    await create_pin(api_client, community["_id"])
    await create_pin(
        api_client,
        community["_id"],
        location={"point": {"type": "Point", "coordinates": [2.35, 48.85]}, "radius": 5},
    )

    resp = await api_client.get("/map/", params={"southwest": "-71,-34", "northeast": "-70,-33"})
    body = resp.json()
    assert body["success"] is True
    assert len(body["data"]) == 1
    assert body["data"][0]["address"] == "Av. Providencia 2124"

    assert len((await api_client.get("/map/")).json()["data"]) == 2
    assert (await api_client.get("/map/", params={"southwest": "-71,-34"})).status_code == 400


@pytest.mark.asyncio
async def test_request_bodies_are_documented(api_client):
    schemas = (await api_client.get("/openapi.json")).json()["components"]["schemas"]
    for name in ("CommunityCreate", "CommunityUpdate", "PinTipCreate", "TextTipCreate", "PinTipUpdate"):
        assert name in schemas


@pytest.mark.asyncio
async def test_malformed_body_is_a_validation_error(api_client):
    resp = await api_client.post("/communities/", json={**PROVIDENCIA, "tags": "barrio"})
    assert resp.status_code == 400
    assert resp.json()["type"] == "ValidationError"
    assert "tags" in resp.json()["detail"]

    resp = await api_client.get("/communities/", params={"longitude": "east", "latitude": -33.4})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_patch_clears_optional_pin_field(api_client):
    community = await create_community(api_client)
    tip = (await create_pin(api_client, community["_id"], subtype="event")).json()
    assert tip["subtype"] == "event"

    resp = await api_client.patch(f"/tips/{tip['_id']}", json={"subtype": None})
    assert resp.status_code == 200
    assert "subtype" not in resp.json()

    resp = await api_client.patch(f"/tips/{tip['_id']}", json={"address": None})
    assert resp.status_code == 400
