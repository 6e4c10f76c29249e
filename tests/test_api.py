# tests/test_api.py

from __future__ import annotations

from httpx import AsyncClient

from .helpers import login

TASK = {
    "title": "T1",
    "description": "First task",
    "dueDate": "2026-11-01T12:00:00",
    "priority": "High",
    "assignedTo": "alice",
}


async def _bootstrap(client: AsyncClient) -> None:
    resp = await client.post("/account/register-initial-admin", json={"username": "root", "password": "pw1"})
    assert resp.status_code == 200
    resp = await client.post("/account/register", json={"username": "alice", "password": "pw2"})
    assert resp.status_code == 200


async def test_end_to_end_assign_and_progress(client: AsyncClient) -> None:
    await _bootstrap(client)
    root = await login(client, "root", "pw1")

    resp = await client.post("/tasks/assign", json=TASK, headers=root)
    assert resp.status_code == 200, resp.text
    created = resp.json()
    assert created["status"] == "Pending"
    assert created["createdBy"]["username"] == "root"

    alice = await login(client, "alice", "pw2")
    resp = await client.get("/tasks/user-tasks", headers=alice)
    assert resp.status_code == 200
    mine = resp.json()
    assert len(mine) == 1
    assert mine[0]["status"] == "Pending"
    task_id = mine[0]["id"]

    resp = await client.post(
        "/tasks/update-status", json={"taskId": task_id, "status": "InProgress"}, headers=alice
    )
    assert resp.status_code == 200

    resp = await client.get(f"/tasks/task-detail/{task_id}", headers=alice)
    assert resp.status_code == 200
    assert resp.json()["status"] == "InProgress"


async def test_register_twice_is_400(client: AsyncClient) -> None:
    await _bootstrap(client)
    resp = await client.post("/account/register", json={"username": "alice", "password": "x"})
    assert resp.status_code == 400
    assert resp.json() == {"detail": "User already exists"}


async def test_initial_admin_twice_is_400(client: AsyncClient) -> None:
    await _bootstrap(client)
    resp = await client.post("/account/register-initial-admin", json={"username": "other", "password": "pw"})
    assert resp.status_code == 400


async def test_login_returns_role_and_never_the_password(client: AsyncClient) -> None:
    await _bootstrap(client)

    resp = await client.post("/account/login", json={"username": "root", "password": "pw1"})
    body = resp.json()
    assert body["role"] == "Admin"
    assert body["tokenType"] == "bearer"
    assert "password" not in body["user"]

    resp = await client.post("/account/login", json={"username": "root", "password": "nope"})
    assert resp.status_code == 401


async def test_token_form_login(client: AsyncClient) -> None:
    await _bootstrap(client)
    resp = await client.post("/account/token", data={"username": "alice", "password": "pw2"})
    assert resp.status_code == 200
    token = resp.json()["access_token"]

    resp = await client.get("/account/user-profile", headers={"Authorization": f"Bearer {token}"})
    assert resp.json()["username"] == "alice"


async def test_register_admin_with_header_credentials(client: AsyncClient) -> None:
    await _bootstrap(client)
    body = {"username": "ops", "password": "pw"}

    resp = await client.post(
        "/account/register-admin", json=body, headers={"adminUsername": "root", "adminPassword": "bad"}
    )
    assert resp.status_code == 401

    resp = await client.post(
        "/account/register-admin", json=body, headers={"adminUsername": "root", "adminPassword": "pw1"}
    )
    assert resp.status_code == 200
    resp = await client.post("/account/login", json=body)
    assert resp.json()["role"] == "Admin"


async def test_logout_invalidates_token_and_is_idempotent(client: AsyncClient) -> None:
    await _bootstrap(client)
    alice = await login(client, "alice", "pw2")

    assert (await client.post("/account/logout", headers=alice)).status_code == 200
    assert (await client.get("/tasks/user-tasks", headers=alice)).status_code == 401
    assert (await client.post("/account/logout", headers=alice)).status_code == 200
    assert (await client.post("/account/logout")).status_code == 200


async def test_identity_headers_and_forged_tokens_are_rejected(client: AsyncClient) -> None:
    await _bootstrap(client)

    resp = await client.get("/tasks/user-tasks", headers={"username": "root"})
    assert resp.status_code == 401

    resp = await client.get("/tasks/user-tasks", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_profile_includes_task_summaries(client: AsyncClient) -> None:
    await _bootstrap(client)
    root = await login(client, "root", "pw1")
    await client.post("/tasks/assign", json=TASK, headers=root)

    alice = await login(client, "alice", "pw2")
    resp = await client.get("/account/profile", headers=alice)
    assert resp.status_code == 200
    profile = resp.json()
    assert profile["username"] == "alice"
    assert "password" not in profile
    assert [t["title"] for t in profile["assignedTasks"]] == ["T1"]
    assert set(profile["assignedTasks"][0]) == {"id", "title", "description", "dueDate", "priority", "status"}


async def test_non_admin_cannot_assign_or_delete(client: AsyncClient) -> None:
    await _bootstrap(client)
    root = await login(client, "root", "pw1")
    task_id = (await client.post("/tasks/assign", json=TASK, headers=root)).json()["id"]

    alice = await login(client, "alice", "pw2")
    assert (await client.post("/tasks/assign", json=TASK, headers=alice)).status_code == 401
    assert (await client.delete(f"/tasks/{task_id}", headers=alice)).status_code == 401
    assert (await client.delete(f"/tasks/{task_id}", headers=root)).status_code == 200
    assert (await client.delete(f"/tasks/{task_id}", headers=root)).status_code == 404


async def test_update_status_rejects_unknown_value(client: AsyncClient) -> None:
    await _bootstrap(client)
    root = await login(client, "root", "pw1")
    task_id = (await client.post("/tasks/assign", json=TASK, headers=root)).json()["id"]

    resp = await client.post("/tasks/update-status", json={"taskId": task_id, "status": "Done"}, headers=root)
    assert resp.status_code == 422


async def test_counts_and_search(client: AsyncClient) -> None:
    await _bootstrap(client)
    root = await login(client, "root", "pw1")
    await client.post("/tasks/assign", json=TASK, headers=root)
    await client.post("/tasks/assign", json={**TASK, "title": "Other"}, headers=root)

    alice = await login(client, "alice", "pw2")
    resp = await client.get("/tasks/task-counts", headers=alice)
    assert resp.json() == [{"status": "Pending", "count": 2}]

    resp = await client.get("/tasks/search-tasks", params={"searchTerm": "T", "status": "All"}, headers=alice)
    assert [t["title"] for t in resp.json()] == ["T1"]

    resp = await client.get("/tasks/search-tasks", params={"status": "Completed"}, headers=alice)
    assert resp.json() == []

    resp = await client.get("/tasks/search-tasks", params={"status": "Done"}, headers=alice)
    assert resp.status_code == 200
    assert resp.json() == []


async def test_delete_user_and_own_account(client: AsyncClient) -> None:
    await _bootstrap(client)
    await client.post("/account/register", json={"username": "bob", "password": "pw3"})
    root = await login(client, "root", "pw1")
    bob = await login(client, "bob", "pw3")

    users = (await client.get("/account/non-admin-users", headers=root)).json()
    by_name = {u["username"]: u["id"] for u in users}
    assert set(by_name) == {"alice", "bob"}

    resp = await client.delete(f"/account/delete-user/{by_name['alice']}", headers=bob)
    assert resp.status_code == 401
    resp = await client.delete(f"/account/delete-user/{by_name['alice']}", headers=root)
    assert resp.status_code == 200
    resp = await client.delete(f"/account/delete-user/{by_name['alice']}", headers=root)
    assert resp.status_code == 404

    resp = await client.delete("/account/delete-own-account/bob", headers=bob)
    assert resp.status_code == 200
    # Session went with the account
    assert (await client.get("/account/profile", headers=bob)).status_code == 401


async def test_assign_accepts_utc_and_offset_due_dates(client: AsyncClient) -> None:
    await _bootstrap(client)
    root = await login(client, "root", "pw1")

    for due in ("2026-11-01T12:00:00Z", "2026-11-01T12:00:00+00:00"):
        resp = await client.post("/tasks/assign", json={**TASK, "dueDate": due}, headers=root)
        assert resp.status_code == 200, resp.text
        assert resp.json()["dueDate"].startswith("2026-11-01T12:00:00")
