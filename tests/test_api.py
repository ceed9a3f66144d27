"""Tests for the review service REST API."""
import json

import httpx
import pytest

from review_service.auth import get_auth_client
from review_service.database.db import get_session
from review_service.main import app
from review_service.models import Review, User

from .conftest import OTHER_USER, OWNER, PUBLIC_FILM, REVIEWER

pytestmark = pytest.mark.usefixtures("catalog")


def verify(request: httpx.Request) -> httpx.Response:
    """Stand-in for the auth service: ``token-<id>`` authenticates user <id>."""
    token = json.loads(request.content)["token"]
    if request.url.path == "/verify" and token.startswith("token-"):
        return httpx.Response(200, json={"user_id": int(token.split("-")[1])})
    return httpx.Response(401, json={"detail": "Invalid token"})


@pytest.fixture
async def client(session):
    """Create test client bound to the test database and a fake auth service."""
    async def override_session():
        yield session

    async def override_auth_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(verify), base_url="http://auth") as auth:
            yield auth

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_auth_client] = override_auth_client
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def as_user(user_id: int) -> dict:
    return {"token": f"token-{user_id}"}


async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_issue_invitation(client):
    response = await client.post(
        f"/films/{PUBLIC_FILM}/reviews", params=as_user(OWNER), json={"reviewer_id": REVIEWER}
    )
    assert response.status_code == 201
    data = response.json()
    assert data["film_id"] == PUBLIC_FILM
    assert data["reviewer_id"] == REVIEWER
    assert data["completed"] is False

    response = await client.post(
        f"/films/{PUBLIC_FILM}/reviews", params=as_user(OWNER), json={"reviewer_id": REVIEWER}
    )
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


async def test_issue_invitation_as_non_owner(client):
    response = await client.post(
        f"/films/{PUBLIC_FILM}/reviews", params=as_user(OTHER_USER), json={"reviewer_id": REVIEWER}
    )
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


async def test_issue_invitation_for_missing_film(client):
    response = await client.post("/films/404/reviews", params=as_user(OWNER), json={"reviewer_id": REVIEWER})
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


async def test_invalid_token(client):
    response = await client.post(
        f"/films/{PUBLIC_FILM}/reviews", params={"token": "forged"}, json={"reviewer_id": REVIEWER}
    )
    assert response.status_code == 401


async def test_token_is_required(client):
    response = await client.delete(f"/films/{PUBLIC_FILM}/reviews/{REVIEWER}")
    assert response.status_code == 422


async def test_get_review(client, add):
    await add(Review(film_id=PUBLIC_FILM, reviewer_id=REVIEWER, completed=True, rating=7, review="Solid"))

    response = await client.get(f"/films/{PUBLIC_FILM}/reviews/{REVIEWER}")
    assert response.status_code == 200
    data = response.json()
    assert data["completed"] is True
    assert data["rating"] == 7
    assert data["review"] == "Solid"

    response = await client.get(f"/films/{PUBLIC_FILM}/reviews/{OTHER_USER}")
    assert response.status_code == 404


async def test_list_reviews(client, add):
    await add(*[User(id=100 + i, email=f"critic{i}@example.com") for i in range(12)])
    await add(*[Review(film_id=PUBLIC_FILM, reviewer_id=100 + i, completed=False) for i in range(12)])

    response = await client.get(f"/films/{PUBLIC_FILM}/reviews")
    assert response.status_code == 200
    data = response.json()
    assert data["total_items"] == 12
    assert data["total_pages"] == 2
    assert data["current_page"] == 1
    assert len(data["reviews"]) == 10
    assert "page_no=2" in data["next"]

    response = await client.get(f"/films/{PUBLIC_FILM}/reviews", params={"page_no": 2})
    data = response.json()
    assert data["current_page"] == 2
    assert [review["reviewer_id"] for review in data["reviews"]] == [110, 111]
    assert "next" not in data


async def test_complete_review(client, add):
    await add(Review(film_id=PUBLIC_FILM, reviewer_id=REVIEWER, completed=False, rating=4))

    response = await client.put(
        f"/films/{PUBLIC_FILM}/reviews/{REVIEWER}",
        params=as_user(REVIEWER),
        json={"completed": True, "review_date": "2024-05-04", "review": "Better on second watch"},
    )
    assert response.status_code == 204

    data = (await client.get(f"/films/{PUBLIC_FILM}/reviews/{REVIEWER}")).json()
    assert data["completed"] is True
    assert data["review_date"] == "2024-05-04"
    assert data["rating"] == 4
    assert data["review"] == "Better on second watch"


async def test_update_review_validation(client, add):
    await add(Review(film_id=PUBLIC_FILM, reviewer_id=REVIEWER, completed=False))

    response = await client.put(
        f"/films/{PUBLIC_FILM}/reviews/{REVIEWER}", params=as_user(REVIEWER), json={"completed": True, "rating": 11}
    )
    assert response.status_code == 422


async def test_update_review_as_owner(client, add):
    await add(Review(film_id=PUBLIC_FILM, reviewer_id=REVIEWER, completed=False))

    response = await client.put(
        f"/films/{PUBLIC_FILM}/reviews/{REVIEWER}", params=as_user(OWNER), json={"completed": True}
    )
    assert response.status_code == 403


async def test_delete_invitation(client, add):
    await add(Review(film_id=PUBLIC_FILM, reviewer_id=REVIEWER, completed=False))

    response = await client.delete(f"/films/{PUBLIC_FILM}/reviews/{REVIEWER}", params=as_user(OWNER))
    assert response.status_code == 204

    response = await client.get(f"/films/{PUBLIC_FILM}/reviews/{REVIEWER}")
    assert response.status_code == 404


async def test_delete_completed_review(client, add):
    await add(Review(film_id=PUBLIC_FILM, reviewer_id=REVIEWER, completed=True))

    response = await client.delete(f"/films/{PUBLIC_FILM}/reviews/{REVIEWER}", params=as_user(OWNER))
    assert response.status_code == 403
    assert response.json()["code"] == "already_completed"

    response = await client.delete(f"/films/{PUBLIC_FILM}/reviews/{REVIEWER}", params=as_user(OTHER_USER))
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


async def test_assign_balanced(client, add):
    await add(Review(film_id=3, reviewer_id=REVIEWER, completed=False))

    response = await client.post("/films/assignments", params=as_user(OWNER))
    assert response.status_code == 200
    data = response.json()
    assert data["owner"] == OWNER
    assert data["assigned"] == [{"film_id": PUBLIC_FILM, "reviewer_id": OTHER_USER, "error": None, "detail": None}]
    assert [(failure["film_id"], failure["error"]) for failure in data["failed"]] == [(2, "not_found")]
    assert data["skipped"] == []


async def test_auth_service_unavailable(session):
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def override_auth_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(unreachable), base_url="http://auth") as auth:
            yield auth

    async def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_auth_client] = override_auth_client
    try:
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post("/films/assignments", params=as_user(OWNER))
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503


@pytest.mark.parametrize("body", [{}, {"user_id": None}, {"user_id": "abc"}, []])
async def test_malformed_auth_response(session, body):
    def verify_without_user(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    async def override_auth_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(verify_without_user), base_url="http://auth") as auth:
            yield auth

    async def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_auth_client] = override_auth_client
    try:
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post("/films/assignments", params=as_user(OWNER))
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401


async def test_list_reviews_rejects_page_zero(client):
    response = await client.get(f"/films/{PUBLIC_FILM}/reviews", params={"page_no": 0})
    assert response.status_code == 422
