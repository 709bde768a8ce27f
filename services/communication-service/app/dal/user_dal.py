# services/communication-service/app/dal/user_dal.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.db.mongodb import get_db
from app.models import MirroredUser


class UserDAL:
    """CRM user mirror. Collection: 'users', unique on (tenant_id, user_id)."""

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None) -> None:
        self.col = (db if db is not None else get_db()).users

    async def upsert(self, user: MirroredUser) -> None:
        await self.col.update_one(
            {"tenant_id": user.tenant_id, "user_id": user.user_id},
            {
                "$set": {
                    "user_email": user.user_email,
                    "user_full_name": user.user_full_name,
                    "updated_at": datetime.now(timezone.utc),
                },
                "$setOnInsert": {"tenant_id": user.tenant_id, "user_id": user.user_id},
            },
            upsert=True,
        )

    async def get(self, tenant_id: str, user_id: str) -> Optional[MirroredUser]:
        doc = await self.col.find_one({"tenant_id": tenant_id, "user_id": user_id})
        return MirroredUser.model_validate(doc) if doc else None
