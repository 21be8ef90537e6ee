"""
SpotMap Backend: API Endpoint Tests
====================================

What:  End-to-end tests of the HTTP surface against the test database.
How:   httpx AsyncClient over ASGITransport (test_client fixture). Location
       lookups and libmagic sniffing are patched; everything else is real.
"""

from unittest.mock import AsyncMock, patch

import pytest

from spotmap.exceptions import LocationPermissionError
from spotmap.schemas.spot import Location
from spotmap.services.location_service import location_provider
from spotmap.services.media_service import media_service

SPOT_BODY = {
    "description": "Sunset over the bay",
    "category": "nature",
    "location": {"lat": 37.8, "lng": -122.47},
    "media": ["data:image/jpeg;base64,AAAA"],
}


async def create_spot(client, **overrides):
    body = dict(SPOT_BODY, **overrides)
    response = await client.post("/api/spots", json=body)
    assert response.status_code == 201
    return response.json()


async def sign_up(client, email="ada@example.com"):
    response = await client.post(
        "/api/auth/signup",
        json={"email": email, "password": "secret123", "display_name": "Ada"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "connected"
        assert body["status"] in ("healthy", "degraded")


class TestSpotEndpoints:

    @pytest.mark.asyncio
    async def test_create_and_get(self, test_client):
        created = await create_spot(test_client)

        assert created["id"]
        assert created["userId"] == "anonymous"
        assert created["metadata"]["createdAt"]
        assert created["interactions"] == {"visitors": [], "comments": []}

        response = await test_client.get(f"/api/spots/{created['id']}")
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_unknown_spot(self, test_client):
        response = await test_client.get("/api/spots/nope", headers={"X-Request-ID": "req-1"})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert response.json()["request_id"] == "req-1"
        assert response.headers["X-Request-ID"] == "req-1"

    @pytest.mark.asyncio
    async def test_create_rejects_five_photos(self, test_client):
        response = await test_client.post(
            "/api/spots", json=dict(SPOT_BODY, media=SPOT_BODY["media"] * 5)
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_and_filter(self, test_client):
        await create_spot(test_client, category="food")
        await create_spot(test_client, category="art")

        everything = await test_client.get("/api/spots")
        assert len(everything.json()) == 2
        assert everything.headers["X-Total-Count"] == "2"

        food = await test_client.get("/api/spots", params={"category": "food"})
        assert [s["metadata"]["category"] for s in food.json()] == ["food"]

        nothing = await test_client.get("/api/spots", params={"category": "nature"})
        assert nothing.json() == []

    @pytest.mark.asyncio
    async def test_paged_listing(self, test_client):
        for _ in range(3):
            await create_spot(test_client)

        first = (await test_client.get("/api/spots", params={"limit": 2})).json()
        assert len(first["spots"]) == 2
        assert first["has_more"] is True

        second = (
            await test_client.get("/api/spots", params={"limit": 2, "cursor": first["next_cursor"]})
        ).json()
        assert len(second["spots"]) == 1
        assert second["has_more"] is False

    @pytest.mark.asyncio
    async def test_bad_cursor(self, test_client):
        response = await test_client.get("/api/spots", params={"cursor": "%%%"})
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "cursor"

    @pytest.mark.asyncio
    async def test_featured(self, test_client):
        empty = await test_client.get("/api/spots/featured")
        assert empty.status_code == 200
        assert empty.json() is None

        created = await create_spot(test_client)
        featured = await test_client.get("/api/spots/featured")
        assert featured.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_create_credits_signed_in_user(self, test_client):
        headers = await sign_up(test_client)
        response = await test_client.post(
            "/api/spots",
            json=dict(SPOT_BODY, userId="someone-else", userName="Someone"),
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["userName"] == "Ada"
        assert response.json()["userId"] != "someone-else"

    @pytest.mark.asyncio
    async def test_visit_is_idempotent(self, test_client):
        spot = await create_spot(test_client)
        headers = await sign_up(test_client)
        for _ in range(2):
            response = await test_client.post(
                f"/api/spots/{spot['id']}/visits", headers=headers
            )
            assert response.status_code == 200

        loaded = (await test_client.get(f"/api/spots/{spot['id']}")).json()
        assert len(loaded["interactions"]["visitors"]) == 1

    @pytest.mark.asyncio
    async def test_visit_requires_sign_in(self, test_client):
        spot = await create_spot(test_client)
        response = await test_client.post(
            f"/api/spots/{spot['id']}/visits", params={"userId": "someone-else"}
        )

        assert response.status_code == 401
        loaded = (await test_client.get(f"/api/spots/{spot['id']}")).json()
        assert loaded["interactions"]["visitors"] == []

    @pytest.mark.asyncio
    async def test_signed_out_comment_cannot_impersonate(self, test_client):
        spot = await create_spot(test_client)
        response = await test_client.post(
            f"/api/spots/{spot['id']}/comments",
            json={"text": "forged", "userId": "someone-else", "userName": "Someone"},
        )

        assert response.status_code == 401
        assert response.json()["details"]["reason"] == "not_signed_in"
        loaded = (await test_client.get(f"/api/spots/{spot['id']}")).json()
        assert loaded["interactions"]["comments"] == []

    @pytest.mark.asyncio
    async def test_comment_uses_session_identity(self, test_client):
        spot = await create_spot(test_client)
        headers = await sign_up(test_client)
        response = await test_client.post(
            f"/api/spots/{spot['id']}/comments",
            json={"text": "Lovely", "userId": "someone-else", "userName": "Someone"},
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["userName"] == "Ada"
        assert response.json()["userId"] != "someone-else"

    @pytest.mark.asyncio
    async def test_comment_on_missing_spot(self, test_client):
        headers = await sign_up(test_client)
        response = await test_client.post(
            "/api/spots/missing/comments", json={"text": "hi"}, headers=headers
        )
        assert response.status_code == 404


class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_sign_up_me_sign_out(self, test_client):
        headers = await sign_up(test_client)

        me = await test_client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["email"] == "ada@example.com"

        out = await test_client.post("/api/auth/signout", headers=headers)
        assert out.status_code == 200

        after = await test_client.get("/api/auth/me", headers=headers)
        assert after.status_code == 401
        assert after.json()["details"]["reason"] == "not_signed_in"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, test_client):
        await sign_up(test_client)
        response = await test_client.post(
            "/api/auth/signup",
            json={"email": "ada@example.com", "password": "secret123", "display_name": "Ada"},
        )
        assert response.status_code == 401
        assert response.json()["details"]["reason"] == "email_in_use"

    @pytest.mark.asyncio
    async def test_sign_in_wrong_password(self, test_client):
        await sign_up(test_client)
        response = await test_client.post(
            "/api/auth/signin", json={"email": "ada@example.com", "password": "wrong-one"}
        )
        assert response.status_code == 401


class TestViewEndpoints:

    @pytest.mark.asyncio
    async def test_create_page_submission(self, test_client, sample_image_bytes):
        headers = await sign_up(test_client)
        with patch.object(media_service, "detect_mime_type", return_value="image/jpeg"):
            response = await test_client.post(
                "/api/views/create",
                headers=headers,
                data={"description": "Tacos", "category": "food", "lat": "37.76", "lng": "-122.41"},
                files=[("photos", ("taco.jpg", sample_image_bytes, "image/jpeg"))],
            )

        assert response.status_code == 201
        body = response.json()
        assert body["userName"] == "Ada"
        assert body["content"]["media"][0].startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_create_page_without_photos(self, test_client):
        response = await test_client.post(
            "/api/views/create",
            data={"description": "Tacos", "lat": "37.76", "lng": "-122.41"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Please add at least one image"

        assert (await test_client.get("/api/spots")).json() == []

    @pytest.mark.asyncio
    async def test_detail_records_visit_when_signed_in(self, test_client):
        spot = await create_spot(test_client)
        headers = await sign_up(test_client)

        response = await test_client.get(f"/api/views/spots/{spot['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json()["can_comment"] is True

        loaded = (await test_client.get(f"/api/spots/{spot['id']}")).json()
        assert len(loaded["interactions"]["visitors"]) == 1

    @pytest.mark.asyncio
    async def test_detail_signed_out(self, test_client):
        spot = await create_spot(test_client)

        response = await test_client.get(f"/api/views/spots/{spot['id']}")
        body = response.json()
        assert body["can_comment"] is False
        assert body["comment_hint"] == "Please sign in to comment"
        assert body["directions_url"].endswith("destination=37.8,-122.47")

        loaded = (await test_client.get(f"/api/spots/{spot['id']}")).json()
        assert loaded["interactions"]["visitors"] == []

    @pytest.mark.asyncio
    async def test_detail_unknown_spot(self, test_client):
        response = await test_client.get("/api/views/spots/unknown")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_comment_requires_sign_in(self, test_client):
        spot = await create_spot(test_client)
        response = await test_client.post(
            f"/api/views/spots/{spot['id']}/comments", json={"text": "Nice"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Please sign in to comment"

    @pytest.mark.asyncio
    async def test_comment_signed_in(self, test_client):
        spot = await create_spot(test_client)
        headers = await sign_up(test_client)

        response = await test_client.post(
            f"/api/views/spots/{spot['id']}/comments", json={"text": "Nice"}, headers=headers
        )
        assert response.status_code == 201
        assert response.json()["userName"] == "Ada"

    @pytest.mark.asyncio
    async def test_map_falls_back_when_location_denied(self, test_client):
        await create_spot(test_client)
        with patch.object(
            location_provider,
            "get_current_location",
            AsyncMock(side_effect=LocationPermissionError()),
        ):
            response = await test_client.get("/api/views/map")

        body = response.json()
        assert response.status_code == 200
        assert body["zoom"] == 12
        assert body["center"] == {"lat": 37.7749, "lng": -122.4194}
        assert body["location_warning"] == "Could not access your location. Using default location."
        assert len(body["spots"]) == 1

    @pytest.mark.asyncio
    async def test_map_focus(self, test_client):
        spot = await create_spot(test_client)
        with patch.object(
            location_provider,
            "get_current_location",
            AsyncMock(return_value=Location(lat=1.0, lng=2.0)),
        ):
            response = await test_client.get("/api/views/map", params={"spotId": spot["id"]})

        body = response.json()
        assert body["zoom"] == 16
        assert body["focused_spot"]["id"] == spot["id"]
        assert body["user_location"] == {"lat": 1.0, "lng": 2.0}

    @pytest.mark.asyncio
    async def test_home(self, test_client):
        created = await create_spot(test_client)
        response = await test_client.get("/api/views/home")

        body = response.json()
        assert body["featured_spot"]["id"] == created["id"]
        assert [s["id"] for s in body["spots"]] == [created["id"]]


class TestLocationEndpoints:

    @pytest.mark.asyncio
    async def test_directions(self, test_client):
        response = await test_client.get(
            "/api/location/directions", params={"lat": 1.5, "lng": -2.5}
        )
        assert response.json()["url"].endswith("destination=1.5,-2.5")

    @pytest.mark.asyncio
    async def test_current_location_denied(self, test_client):
        with patch.object(
            location_provider,
            "get_current_location",
            AsyncMock(side_effect=LocationPermissionError()),
        ):
            response = await test_client.get("/api/location/current")
        assert response.status_code == 403
        assert response.json()["error"] == "location_permission_denied"
