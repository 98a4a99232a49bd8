from httpx import AsyncClient


async def test_update_profile(client: AsyncClient, make_user, auth):
    user = await make_user()

    response = await client.put(
        "/users/me",
        json={"name": "New Name", "theme_preference": "dark", "language_preference": "ru"},
        headers=auth(user)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "New Name"
    assert data["theme_preference"] == "dark"
    assert data["language_preference"] == "ru"


async def test_update_profile_rejects_unknown_theme(client: AsyncClient, make_user, auth):
    user = await make_user()

    response = await client.put("/users/me", json={"theme_preference": "blue"}, headers=auth(user))

    assert response.status_code == 422


async def test_list_users_requires_admin(client: AsyncClient, make_user, admin_user, auth):
    user = await make_user()

    assert (await client.get("/users/", headers=auth(user))).status_code == 403

    response = await client.get("/users/", headers=auth(admin_user))
    assert response.status_code == 200
    assert {u["id"] for u in response.json()} >= {user.id, admin_user.id}


async def test_block_and_unblock(client: AsyncClient, make_user, admin_user, auth):
    user = await make_user()

    blocked = await client.post(f"/users/{user.id}/block", headers=auth(admin_user))
    assert blocked.status_code == 200
    assert blocked.json()["status"] == "blocked"

    unblocked = await client.post(f"/users/{user.id}/unblock", headers=auth(admin_user))
    assert unblocked.status_code == 200
    assert unblocked.json()["status"] == "active"


async def test_admin_cannot_block_or_delete_self(client: AsyncClient, admin_user, auth):
    headers = auth(admin_user)

    assert (await client.post(f"/users/{admin_user.id}/block", headers=headers)).status_code == 400
    assert (await client.delete(f"/users/{admin_user.id}", headers=headers)).status_code == 400


async def test_set_admin_flag(client: AsyncClient, make_user, admin_user, auth):
    user = await make_user()

    response = await client.put(f"/users/{user.id}/admin", json={"is_admin": True}, headers=auth(admin_user))

    assert response.status_code == 200
    assert response.json()["is_admin"] is True


async def test_delete_user(client: AsyncClient, make_user, admin_user, auth):
    user = await make_user()

    response = await client.delete(f"/users/{user.id}", headers=auth(admin_user))
    assert response.status_code == 204

    missing = await client.delete(f"/users/{user.id}", headers=auth(admin_user))
    assert missing.status_code == 404
