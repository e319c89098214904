"""User directory backed by the users collection."""
from __future__ import annotations

from beanie import PydanticObjectId

from app.models.user import User
from app.services.collaborators import Actor


def safe_object_id(value: str | None) -> PydanticObjectId | None:
    if not value:
        return None
    try:
        return PydanticObjectId(value)
    except Exception:
        return None


def to_actor(user: User) -> Actor:
    return Actor(id=str(user.id), name=user.full_name, email=user.email, role=user.role)


class MongoUserDirectory:
    async def get(self, user_id: str) -> Actor | None:
        oid = safe_object_id(user_id)
        if not oid:
            return None
        user = await User.get(oid)
        if not user or not user.is_active:
            return None
        return to_actor(user)

    async def get_many(self, user_ids: list[str]) -> dict[str, Actor]:
        oids = [oid for oid in (safe_object_id(u) for u in user_ids) if oid]
        if not oids:
            return {}
        users = await User.find({"_id": {"$in": oids}}).to_list()
        return {str(u.id): to_actor(u) for u in users}

    async def push_tokens(self, user_id: str) -> list[str]:
        oid = safe_object_id(user_id)
        if not oid:
            return []
        user = await User.get(oid)
        return list(user.fcm_tokens) if user else []
