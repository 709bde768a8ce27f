# services/communication-service/app/api/routers/template_routes.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.api.deps import get_request_context, get_template_service
from app.api.responses import success
from app.models import RequestContext, TemplateMetadata, TemplateUpdate, TemplateUpload
from app.services.template_service import TemplateService

router = APIRouter(prefix="/api/templates", tags=["templates"])


async def _read_upload(file: UploadFile) -> TemplateUpload:
    return TemplateUpload(
        filename=file.filename or "template.docx",
        content_type=file.content_type,
        content=await file.read(),
    )


@router.post("/upload", status_code=201)
async def upload_template(
    file: UploadFile = File(...),
    name: str = Form(...),
    description: Optional[str] = Form(default=None),
    category: Optional[str] = Form(default=None),
    template_type: str = Form(default="letter", alias="templateType"),
    ctx: RequestContext = Depends(get_request_context),
    svc: TemplateService = Depends(get_template_service),
) -> Dict[str, Any]:
    meta = TemplateMetadata(name=name, description=description, category=category, template_type=template_type)
    template = await svc.create(ctx, await _read_upload(file), meta)
    return success({"template": template.model_dump(mode="json")}, "Template uploaded successfully")


@router.get("")
async def list_templates(
    category: Optional[str] = Query(default=None),
    template_type: Optional[str] = Query(default=None, alias="templateType"),
    ctx: RequestContext = Depends(get_request_context),
    svc: TemplateService = Depends(get_template_service),
) -> Dict[str, Any]:
    items = await svc.list(ctx, category=category, template_type=template_type)
    return success({"templates": [t.model_dump(mode="json") for t in items]}, "Templates retrieved successfully")


@router.get("/{template_id}")
async def get_template(
    template_id: str,
    ctx: RequestContext = Depends(get_request_context),
    svc: TemplateService = Depends(get_template_service),
) -> Dict[str, Any]:
    template = await svc.get(ctx, template_id)
    return success({"template": template.model_dump(mode="json")}, "Template retrieved successfully")


@router.put("/{template_id}")
async def update_template(
    template_id: str,
    patch: TemplateUpdate,
    ctx: RequestContext = Depends(get_request_context),
    svc: TemplateService = Depends(get_template_service),
) -> Dict[str, Any]:
    template = await svc.update(ctx, template_id, patch)
    return success({"template": template.model_dump(mode="json")}, "Template updated successfully")


@router.delete("/{template_id}")
async def delete_template(
    template_id: str,
    ctx: RequestContext = Depends(get_request_context),
    svc: TemplateService = Depends(get_template_service),
) -> Dict[str, Any]:
    await svc.delete(ctx, template_id)
    return success({}, "Template deleted successfully")


@router.put("/{template_id}/file")
async def replace_template_file(
    template_id: str,
    file: UploadFile = File(...),
    ctx: RequestContext = Depends(get_request_context),
    svc: TemplateService = Depends(get_template_service),
) -> Dict[str, Any]:
    template = await svc.replace_file(ctx, template_id, await _read_upload(file))
    return success({"template": template.model_dump(mode="json")}, "Template file replaced successfully")


@router.post("/{template_id}/extract-placeholders")
async def extract_placeholders(
    template_id: str,
    ctx: RequestContext = Depends(get_request_context),
    svc: TemplateService = Depends(get_template_service),
) -> Dict[str, Any]:
    report = await svc.extract_placeholders(ctx, template_id)
    return success(report.model_dump(), "Placeholders extracted successfully")
