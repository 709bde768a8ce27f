# services/communication-service/app/dal/letter_dal.py
from __future__ import annotations

from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from app.db.mongodb import get_db
from app.models import GeneratedLetter


class LetterDAL:
    """
    Append-only generation ledger.
    Collection: 'generated_letters'. Rows are never updated.
    """

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None) -> None:
        self.col = (db if db is not None else get_db()).generated_letters

    async def create(self, letter: GeneratedLetter) -> GeneratedLetter:
        await self.col.insert_one(letter.model_dump())
        return letter

    async def get(self, tenant_id: str, letter_id: str) -> Optional[GeneratedLetter]:
        doc = await self.col.find_one({"id": letter_id, "tenant_id": tenant_id})
        return GeneratedLetter.model_validate(doc) if doc else None

    async def list_for_member(
        self, tenant_id: str, member_id: str, *, limit: int = 50, offset: int = 0
    ) -> List[GeneratedLetter]:
        cursor = (
            self.col.find({"tenant_id": tenant_id, "member_id": member_id})
            .sort("created_at", DESCENDING)
            .skip(max(offset, 0))
            .limit(max(min(limit, 200), 1))
        )
        return [GeneratedLetter.model_validate(d) async for d in cursor]
