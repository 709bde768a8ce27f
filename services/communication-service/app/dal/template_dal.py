# services/communication-service/app/dal/template_dal.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from app.db.mongodb import get_db
from app.models import Template


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TemplateDAL:
    """
    CRUD for Template metadata.
    Collection: 'templates'. Every lookup carries tenant_id next to id.
    """

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None) -> None:
        self.col = (db if db is not None else get_db()).templates

    async def create(self, template: Template) -> Template:
        doc = template.model_dump()
        await self.col.insert_one(doc)
        return template

    async def get(self, tenant_id: str, template_id: str) -> Optional[Template]:
        doc = await self.col.find_one({"id": template_id, "tenant_id": tenant_id})
        return Template.model_validate(doc) if doc else None

    async def exists_anywhere(self, template_id: str) -> bool:
        """Tenant-blind existence check, used only to log cross-tenant attempts."""
        return await self.col.count_documents({"id": template_id}, limit=1) > 0

    async def list(
        self,
        tenant_id: str,
        *,
        category: Optional[str] = None,
        template_type: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Template]:
        filt: Dict[str, Any] = {"tenant_id": tenant_id}
        if category:
            filt["category"] = category
        if template_type:
            filt["template_type"] = template_type
        cursor = (
            self.col.find(filt)
            .sort("created_at", DESCENDING)
            .skip(max(offset, 0))
            .limit(max(min(limit, 200), 1))
        )
        return [Template.model_validate(d) async for d in cursor]

    async def update(self, tenant_id: str, template_id: str, fields: Dict[str, Any]) -> Optional[Template]:
        doc = await self.col.find_one_and_update(
            {"id": template_id, "tenant_id": tenant_id},
            {"$set": {**fields, "updated_at": _utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return Template.model_validate(doc) if doc else None

    async def delete(self, tenant_id: str, template_id: str) -> bool:
        res = await self.col.delete_one({"id": template_id, "tenant_id": tenant_id})
        return res.deleted_count == 1
