import pytest
from httpx import AsyncClient


@pytest.fixture
def user_data():
    return {"name": "Jane Doe", "email": "jane@example.com", "password": "secret123"}


async def test_register_user(client: AsyncClient, user_data):
    """Регистрация возвращает токен и пользователя"""
    response = await client.post("/auth/register", json=user_data)

    assert response.status_code == 201
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["email"] == user_data["email"]
    assert data["user"]["is_admin"] is False
    assert data["user"]["status"] == "active"


async def test_register_duplicate_email(client: AsyncClient, user_data):
    await client.post("/auth/register", json=user_data)

    response = await client.post("/auth/register", json=user_data)

    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"


async def test_register_short_password(client: AsyncClient, user_data):
    response = await client.post("/auth/register", json={**user_data, "password": "12345"})

    assert response.status_code == 422


async def test_login_success(client: AsyncClient, user_data):
    await client.post("/auth/register", json=user_data)

    response = await client.post(
        "/auth/login",
        json={"email": user_data["email"], "password": user_data["password"]}
    )

    assert response.status_code == 200
    token = response.json()["access_token"]

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["name"] == user_data["name"]


async def test_login_invalid_credentials(client: AsyncClient, user_data):
    await client.post("/auth/register", json=user_data)

    response = await client.post(
        "/auth/login",
        json={"email": user_data["email"], "password": "wrongpassword"}
    )

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHENTICATED"


async def test_blocked_user_cannot_log_in(client: AsyncClient, make_user, admin_user, auth):
    user = await make_user()
    await client.post(f"/users/{user.id}/block", headers=auth(admin_user))

    response = await client.post("/auth/login", json={"email": user.email, "password": "secret123"})

    assert response.status_code == 403


async def test_token_of_blocked_user_is_rejected(client: AsyncClient, make_user, admin_user, auth):
    user = await make_user()
    headers = auth(user)
    await client.post(f"/users/{user.id}/block", headers=auth(admin_user))

    response = await client.get("/auth/me", headers=headers)

    assert response.status_code == 401


async def test_unauthorized_access(client: AsyncClient):
    """Без токена защищенные маршруты недоступны"""
    response = await client.get("/auth/me")

    assert response.status_code == 401


async def test_invalid_token(client: AsyncClient):
    response = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
