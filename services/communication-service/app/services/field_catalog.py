# services/communication-service/app/services/field_catalog.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Tuple

from pymongo.errors import DuplicateKeyError

from app.config import settings
from app.core.validation import sanitize_string, validate_object_id
from app.dal.field_dal import FieldDAL
from app.errors import Conflict, NotFound, ValidationFailed
from app.models import (
    BookmarkField,
    BookmarkFieldCreate,
    BookmarkFieldUpdate,
    CatalogKey,
    FieldDataType,
)

logger = logging.getLogger("app.services.field_catalog")

KEY_MAX, LABEL_MAX, PATH_MAX = 100, 200, 500


class FieldCatalogService:
    """
    Global registry of placeholder keys. `list_keys` is served from an
    in-process cache (TTL) and is what template validation and member-data
    aggregation read; every write drops the cache.
    """

    def __init__(
        self,
        dal: Optional[FieldDAL] = None,
        *,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.dal = dal or FieldDAL()
        self.ttl = settings.field_catalog_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._cache: Optional[Tuple[float, List[CatalogKey]]] = None
        self._lock = asyncio.Lock()

    # ---------- catalog contract ---------- #

    async def list_keys(self) -> List[CatalogKey]:
        cached = self._cache
        if cached and self._clock() < cached[0]:
            return cached[1]
        async with self._lock:
            cached = self._cache
            if cached and self._clock() < cached[0]:
                return cached[1]
            fields = await self.dal.list_all()
            keys = [CatalogKey(key=f.key, source_path=f.source_path, data_type=f.data_type) for f in fields]
            self._cache = (self._clock() + self.ttl, keys)
            return keys

    async def key_names(self) -> List[str]:
        return [k.key for k in await self.list_keys()]

    def invalidate(self) -> None:
        self._cache = None

    # ---------- CRUD ---------- #

    async def list_fields(self) -> List[BookmarkField]:
        return await self.dal.list_all()

    async def create(self, payload: BookmarkFieldCreate) -> BookmarkField:
        key = sanitize_string(payload.key, KEY_MAX)
        label = sanitize_string(payload.label, LABEL_MAX)
        path = sanitize_string(payload.source_path, PATH_MAX)
        if not key or not label or not path:
            raise ValidationFailed("Invalid input: key, label, and path cannot be empty")

        field = BookmarkField(
            key=key,
            label=label,
            source_path=path,
            data_type=FieldDataType.coerce(payload.data_type),
        )
        try:
            await self.dal.create(field)
        except DuplicateKeyError as exc:
            raise Conflict(f"Field key '{key}' already exists", details={"field": "key", "value": key}) from exc
        self.invalidate()
        logger.info("Field catalog entry created key=%s", key)
        return field

    async def update(self, field_id: str, patch: BookmarkFieldUpdate) -> BookmarkField:
        validate_object_id(field_id, "id")
        fields = {}
        for attr, limit, label in (
            ("key", KEY_MAX, "key"),
            ("label", LABEL_MAX, "label"),
            ("source_path", PATH_MAX, "path"),
        ):
            raw = getattr(patch, attr)
            if raw is not None:
                cleaned = sanitize_string(raw, limit)
                if not cleaned:
                    raise ValidationFailed(f"Invalid input: {label} cannot be empty")
                fields[attr] = cleaned
        if patch.data_type is not None:
            fields["data_type"] = FieldDataType.coerce(patch.data_type).value

        if not fields:
            current = await self.dal.get(field_id)
        else:
            try:
                current = await self.dal.update(field_id, fields)
            except DuplicateKeyError as exc:
                raise Conflict("Field key already exists", details={"field": "key", "value": fields.get("key")}) from exc
        if current is None:
            raise NotFound("Bookmark field not found")
        self.invalidate()
        return current

    async def delete(self, field_id: str) -> None:
        validate_object_id(field_id, "id")
        if not await self.dal.delete(field_id):
            raise NotFound("Bookmark field not found")
        self.invalidate()
        logger.info("Field catalog entry deleted id=%s", field_id)

    async def seed(self, fields: List[BookmarkField]) -> Tuple[int, int]:
        """Idempotent upsert by key. Returns (created, updated)."""
        created = updated = 0
        for field in fields:
            if await self.dal.upsert_by_key(field):
                created += 1
            else:
                updated += 1
        self.invalidate()
        return created, updated


_catalog: Optional[FieldCatalogService] = None


def get_field_catalog() -> FieldCatalogService:
    """Process-wide catalog so the cache is shared across requests."""
    global _catalog
    if _catalog is None:
        _catalog = FieldCatalogService()
    return _catalog
