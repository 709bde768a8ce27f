# services/communication-service/app/dal/field_dal.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument

from app.db.mongodb import get_db
from app.models import BookmarkField


class FieldDAL:
    """
    CRUD for the global field catalog.
    Collection: 'bookmark_fields' (unique on key).
    """

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None) -> None:
        self.col = (db if db is not None else get_db()).bookmark_fields

    async def list_all(self) -> List[BookmarkField]:
        cursor = self.col.find({}).sort("key", ASCENDING)
        return [BookmarkField.model_validate(d) async for d in cursor]

    async def get(self, field_id: str) -> Optional[BookmarkField]:
        doc = await self.col.find_one({"id": field_id})
        return BookmarkField.model_validate(doc) if doc else None

    async def create(self, field: BookmarkField) -> BookmarkField:
        await self.col.insert_one(field.model_dump())
        return field

    async def update(self, field_id: str, fields: Dict[str, Any]) -> Optional[BookmarkField]:
        doc = await self.col.find_one_and_update(
            {"id": field_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        return BookmarkField.model_validate(doc) if doc else None

    async def delete(self, field_id: str) -> bool:
        res = await self.col.delete_one({"id": field_id})
        return res.deleted_count == 1

    async def upsert_by_key(self, field: BookmarkField) -> bool:
        """Insert or refresh label/path/type for `field.key`. True when inserted."""
        res = await self.col.update_one(
            {"key": field.key},
            {
                "$set": {
                    "label": field.label,
                    "source_path": field.source_path,
                    "data_type": field.data_type,
                },
                "$setOnInsert": {"id": field.id, "key": field.key},
            },
            upsert=True,
        )
        return res.upserted_id is not None
