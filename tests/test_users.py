"""
User endpoint tests: covers creating users, listing users with their
articles, self-service profile updates and account deletion.
"""
import pytest
from httpx import AsyncClient


async def _register(client: AsyncClient, email: str, password: str = "secret123") -> tuple[dict, str]:
    resp = await client.post("/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201
    body = resp.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]["id"]


# ---------------------------------------------------------------------------
# Create user
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_user(async_client: AsyncClient):
    resp = await async_client.post("/user", json={"email": "new@example.com", "password": "secret123"})
    assert resp.status_code == 201
    user = resp.json()
    assert user["email"] == "new@example.com"
    assert "id" in user
    assert "createdAt" in user
    assert "password" not in user


@pytest.mark.asyncio
async def test_create_user_duplicate_email(async_client: AsyncClient):
    payload = {"email": "dup@example.com", "password": "secret123"}
    assert (await async_client.post("/user", json=payload)).status_code == 201

    resp = await async_client.post("/user", json=payload)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "A user with this email already exists"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"email": "not-an-email", "password": "secret123"},
    {"email": "short@example.com", "password": "12345"},
    {"email": "missing@example.com"},
])
async def test_create_user_validation(async_client: AsyncClient, payload):
    resp = await async_client.post("/user", json=payload)
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_users_includes_articles(async_client: AsyncClient):
    headers, user_id = await _register(async_client, "lister@example.com")
    await _register(async_client, "quiet@example.com")
    await async_client.post(
        "/article", json={"title": "My first post", "description": "Some description"}, headers=headers
    )

    resp = await async_client.get("/user")
    assert resp.status_code == 200
    users = {u["email"]: u for u in resp.json()}
    assert set(users) == {"lister@example.com", "quiet@example.com"}
    assert [a["title"] for a in users["lister@example.com"]["articles"]] == ["My first post"]
    assert users["lister@example.com"]["articles"][0]["authorId"] == user_id
    assert users["quiet@example.com"]["articles"] == []
    assert all("password" not in u for u in users.values())


@pytest.mark.asyncio
async def test_get_user(async_client: AsyncClient):
    _, user_id = await _register(async_client, "single@example.com")
    resp = await async_client.get(f"/user/{user_id}")
    assert resp.status_code == 200
    assert resp.json()["email"] == "single@example.com"
    assert resp.json()["articles"] == []


@pytest.mark.asyncio
async def test_get_user_not_found(async_client: AsyncClient):
    resp = await async_client.get("/user/missing-id")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "User with id missing-id not found"


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_own_profile(async_client: AsyncClient):
    headers, user_id = await _register(async_client, "before@example.com")

    resp = await async_client.patch(
        f"/user/{user_id}", json={"email": "after@example.com", "password": "newsecret"}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["email"] == "after@example.com"

    login = await async_client.post("/auth/login", json={"email": "after@example.com", "password": "newsecret"})
    assert login.status_code == 200
    stale = await async_client.post("/auth/login", json={"email": "after@example.com", "password": "secret123"})
    assert stale.status_code == 401


@pytest.mark.asyncio
async def test_update_email_refreshes_cached_article_author(async_client: AsyncClient):
    headers, user_id = await _register(async_client, "renamed@example.com")
    created = await async_client.post(
        "/article", json={"title": "Cached post", "description": "Some description"}, headers=headers
    )
    article_id = created.json()["id"]
    await async_client.get(f"/article/{article_id}")  # warm the cache

    await async_client.patch(f"/user/{user_id}", json={"email": "renamed2@example.com"}, headers=headers)

    resp = await async_client.get(f"/article/{article_id}")
    assert resp.json()["author"]["email"] == "renamed2@example.com"


@pytest.mark.asyncio
async def test_update_other_profile_is_forbidden(async_client: AsyncClient):
    headers, _ = await _register(async_client, "me@example.com")
    _, other_id = await _register(async_client, "them@example.com")

    resp = await async_client.patch(f"/user/{other_id}", json={"email": "taken@example.com"}, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "You can only update your own profile"


@pytest.mark.asyncio
async def test_update_to_taken_email_conflicts(async_client: AsyncClient):
    headers, user_id = await _register(async_client, "first@example.com")
    await _register(async_client, "second@example.com")

    resp = await async_client.patch(f"/user/{user_id}", json={"email": "second@example.com"}, headers=headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_update_requires_token(async_client: AsyncClient):
    _, user_id = await _register(async_client, "anon@example.com")
    resp = await async_client.patch(f"/user/{user_id}", json={"email": "x@example.com"})
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_current_user_removes_articles(async_client: AsyncClient):
    headers, user_id = await _register(async_client, "leaving@example.com")
    created = await async_client.post(
        "/article", json={"title": "Farewell post", "description": "Some description"}, headers=headers
    )
    article_id = created.json()["id"]
    await async_client.get(f"/article/{article_id}")  # warm the cache
    await async_client.get("/article")

    resp = await async_client.delete("/user", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "User deleted successfully"}

    assert (await async_client.get(f"/user/{user_id}")).status_code == 404
    assert (await async_client.get(f"/article/{article_id}")).status_code == 404
    assert (await async_client.get("/article")).json()["total"] == 0


@pytest.mark.asyncio
async def test_token_of_deleted_user_is_rejected(async_client: AsyncClient):
    headers, _ = await _register(async_client, "gone@example.com")
    await async_client.delete("/user", headers=headers)

    resp = await async_client.post(
        "/article", json={"title": "After death", "description": "Some description"}, headers=headers
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "User not found"
