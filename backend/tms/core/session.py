import logging
import secrets
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis

from tms.core.config import settings
from tms.models.user import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Caller:
    """Verified identity of the current request."""

    user_id: int
    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin


class SessionStore:
    """
    Server-side sessions kept as Redis hashes under ``tms:session:<sid>``.

    Each hash holds user_id, username and role. Keys expire after
    ``idle_minutes`` without use; every successful ``get`` pushes the
    expiry forward. ``tms:user-sessions:<user_id>`` is a set of that user's
    session ids so all of them can be dropped at once.
    """

    prefix = "tms:session:"
    user_prefix = "tms:user-sessions:"

    def __init__(self, client, idle_minutes: int):
        self.client = client
        self.ttl = idle_minutes * 60

    def _key(self, sid: str) -> str:
        return f"{self.prefix}{sid}"

    def _user_key(self, user_id) -> str:
        return f"{self.user_prefix}{user_id}"

    async def open(self, user_id: int, username: str, role: Role) -> str:
        sid = secrets.token_urlsafe(32)
        key = self._key(sid)
        user_key = self._user_key(user_id)
        await self.client.hset(key, mapping={
            "user_id": str(user_id),
            "username": username,
            "role": role.value,
        })
        await self.client.expire(key, self.ttl)
        await self.client.sadd(user_key, sid)
        await self.client.expire(user_key, self.ttl)
        return sid

    async def get(self, sid: str) -> Optional[Caller]:
        key = self._key(sid)
        data = await self.client.hgetall(key)
        if not data:
            return None
        try:
            caller = Caller(
                user_id=int(data["user_id"]),
                username=data["username"],
                role=Role(data["role"]),
            )
        except (KeyError, ValueError):
            logger.warning("Discarding malformed session %s", sid[:8])
            await self.client.delete(key)
            return None
        await self.client.expire(key, self.ttl)
        # The index must live at least as long as any session it lists
        await self.client.expire(self._user_key(caller.user_id), self.ttl)
        return caller

    async def clear(self, sid: str) -> None:
        key = self._key(sid)
        user_id = await self.client.hget(key, "user_id")
        await self.client.delete(key)
        if user_id is not None:
            await self.client.srem(self._user_key(user_id), sid)

    async def clear_user(self, user_id: int) -> None:
        """Drop every session bound to ``user_id`` (used when the account is deleted)."""
        user_key = self._user_key(user_id)
        sids = await self.client.smembers(user_key)
        if sids:
            await self.client.delete(*(self._key(sid) for sid in sids))
        await self.client.delete(user_key)


redis_client = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)

session_store = SessionStore(redis_client, settings.SESSION_IDLE_MINUTES)

def get_session_store() -> SessionStore:
    return session_store
