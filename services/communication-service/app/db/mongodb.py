# services/communication-service/app/db/mongodb.py
from __future__ import annotations

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.config import settings

_client: Optional[AsyncIOMotorClient] = None


def get_client() -> AsyncIOMotorClient:
    """
    Singleton Motor client for the communication-service.
    """
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(settings.mongo_uri, serverSelectionTimeoutMS=10000)
    return _client


def get_db() -> AsyncIOMotorDatabase:
    """
    Default database selected by settings.mongo_db.
    """
    return get_client()[settings.mongo_db]


async def init_indexes() -> None:
    db = get_db()

    # templates (every query is tenant scoped)
    await db.templates.create_index([("id", ASCENDING)], name="uk_id", unique=True)
    await db.templates.create_index(
        [("tenant_id", ASCENDING), ("created_at", DESCENDING)],
        name="ix_tenant_created",
    )
    await db.templates.create_index(
        [("tenant_id", ASCENDING), ("category", ASCENDING)],
        name="ix_tenant_category",
    )

    # generated_letters (append-only ledger)
    await db.generated_letters.create_index([("id", ASCENDING)], name="uk_id", unique=True)
    await db.generated_letters.create_index(
        [("tenant_id", ASCENDING), ("member_id", ASCENDING), ("created_at", DESCENDING)],
        name="ix_tenant_member_created",
    )
    await db.generated_letters.create_index([("template_id", ASCENDING)], name="ix_template_id")

    # bookmark_fields (global field catalog)
    await db.bookmark_fields.create_index([("id", ASCENDING)], name="uk_id", unique=True)
    await db.bookmark_fields.create_index([("key", ASCENDING)], name="uk_key", unique=True)

    # users (CRM mirror)
    await db.users.create_index(
        [("tenant_id", ASCENDING), ("user_id", ASCENDING)],
        name="uk_tenant_user",
        unique=True,
    )


async def close_client() -> None:
    """
    Graceful shutdown hook (called from app lifespan).
    """
    global _client
    if _client is not None:
        _client.close()
        _client = None
