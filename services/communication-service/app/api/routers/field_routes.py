# services/communication-service/app/api/routers/field_routes.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.api.deps import get_catalog_service, get_request_context
from app.api.responses import success
from app.models import BookmarkFieldCreate, BookmarkFieldUpdate
from app.services.field_catalog import FieldCatalogService

# The catalog is global; the context dependency only enforces an authenticated caller.
router = APIRouter(
    prefix="/api/bookmarks",
    tags=["bookmarks"],
    dependencies=[Depends(get_request_context)],
)


@router.get("/fields")
async def list_fields(svc: FieldCatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    fields = await svc.list_fields()
    return success({"fields": [f.model_dump(mode="json") for f in fields]}, "Bookmark fields retrieved successfully")


@router.post("/fields", status_code=201)
async def create_field(
    payload: BookmarkFieldCreate,
    svc: FieldCatalogService = Depends(get_catalog_service),
) -> Dict[str, Any]:
    field = await svc.create(payload)
    return success({"field": field.model_dump(mode="json")}, "Bookmark field created successfully")


@router.put("/fields/{field_id}")
async def update_field(
    field_id: str,
    patch: BookmarkFieldUpdate,
    svc: FieldCatalogService = Depends(get_catalog_service),
) -> Dict[str, Any]:
    field = await svc.update(field_id, patch)
    return success({"field": field.model_dump(mode="json")}, "Bookmark field updated successfully")


@router.delete("/fields/{field_id}")
async def delete_field(
    field_id: str,
    svc: FieldCatalogService = Depends(get_catalog_service),
) -> Dict[str, Any]:
    await svc.delete(field_id)
    return success({}, "Bookmark field deleted successfully")
