# tests/helpers.py

from __future__ import annotations

from httpx import AsyncClient

from tms.core.session import Caller
from tms.models import User


def as_caller(user: User) -> Caller:
    return Caller(user_id=user.id, username=user.username, role=user.role)


async def login(client: AsyncClient, username: str, password: str) -> dict[str, str]:
    """Log in over HTTP and return the Authorization header for later calls."""
    resp = await client.post("/account/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['accessToken']}"}
