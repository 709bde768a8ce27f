# services/communication-service/app/services/template_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from app.clients.document_gateway import GraphDocumentGateway, get_document_gateway
from app.core.placeholders import compare_with_catalog, extract_placeholders
from app.core.validation import sanitize_optional, sanitize_string, validate_object_id
from app.dal.template_dal import TemplateDAL
from app.errors import NotFound, TenantMismatch, ValidationFailed
from app.events.rabbit import EventPublisher
from app.models import (
    PlaceholderReport,
    RequestContext,
    Template,
    TemplateMetadata,
    TemplateUpdate,
    TemplateUpload,
)
from app.services.field_catalog import FieldCatalogService, get_field_catalog

logger = logging.getLogger("app.services.templates")

NAME_MAX, DESCRIPTION_MAX, CATEGORY_MAX, TYPE_MAX = 200, 500, 100, 100
NOT_FOUND_MESSAGE = "Template not found or access denied"


def is_docx_upload(upload: TemplateUpload) -> bool:
    return "wordprocessingml" in (upload.content_type or "") or upload.filename.lower().endswith(".docx")


class TemplateService:
    def __init__(
        self,
        *,
        dal: Optional[TemplateDAL] = None,
        gateway: Optional[GraphDocumentGateway] = None,
        catalog: Optional[FieldCatalogService] = None,
        events: Optional[EventPublisher] = None,
    ) -> None:
        self.dal = dal or TemplateDAL()
        self.gateway = gateway or get_document_gateway()
        self.catalog = catalog or get_field_catalog()
        self.events = events or EventPublisher()

    # ---------- helpers ---------- #

    async def load(self, ctx: RequestContext, template_id: str) -> Template:
        """Tenant-scoped lookup. Foreign-tenant and missing records look identical."""
        validate_object_id(template_id, "templateId")
        template = await self.dal.get(ctx.tenant_id, template_id)
        if template is not None:
            return template
        if await self.dal.exists_anywhere(template_id):
            logger.warning(
                "Cross-tenant template access denied template_id=%s tenant_id=%s user_id=%s",
                template_id, ctx.tenant_id, ctx.user_id,
            )
            raise TenantMismatch(NOT_FOUND_MESSAGE, details={"templateId": template_id})
        raise NotFound(NOT_FOUND_MESSAGE, details={"templateId": template_id})

    async def _placeholders_for(self, content: bytes, *, template_label: str) -> PlaceholderReport:
        tokens = extract_placeholders(content)
        unknown = compare_with_catalog(tokens, await self.catalog.key_names())
        if unknown:
            logger.warning(
                "Template %s declares placeholders missing from the field catalog: %s",
                template_label, ", ".join(unknown),
            )
        return PlaceholderReport(placeholders=tokens, unknown=unknown)

    async def _emit(self, ctx: RequestContext, event: str, template: Template) -> None:
        await self.events.emit(
            event,
            {"id": template.id, "name": template.name, "category": template.category},
            tenant_id=ctx.tenant_id,
            by=ctx.user_id,
            correlation_id=ctx.correlation_id,
        )

    # ---------- CRUD ---------- #

    async def create(self, ctx: RequestContext, upload: TemplateUpload, meta: TemplateMetadata) -> Template:
        if not upload.content:
            raise ValidationFailed("No file uploaded. Please upload a .docx file")
        if not is_docx_upload(upload):
            raise ValidationFailed("Invalid file type. Only .docx files are allowed")
        name = sanitize_string(meta.name, NAME_MAX)
        if not name:
            raise ValidationFailed("name is required")

        report = await self._placeholders_for(upload.content, template_label=name)
        file_ref = await self.gateway.create(upload.content, upload.filename)

        template = Template(
            tenant_id=ctx.tenant_id,
            name=name,
            description=sanitize_optional(meta.description, DESCRIPTION_MAX),
            category=sanitize_optional(meta.category, CATEGORY_MAX),
            template_type=sanitize_string(meta.template_type, TYPE_MAX) or "letter",
            file_ref=file_ref,
            placeholders=report.placeholders,
            created_by=ctx.user_id,
        )
        try:
            await self.dal.create(template)
        except Exception:
            logger.exception("Template registry write failed; compensating Graph item %s", file_ref)
            if not await self.gateway.delete(file_ref):
                logger.error("Orphaned template file left in the repository: %s", file_ref)
            raise
        logger.info("Template created id=%s tenant_id=%s file_ref=%s", template.id, ctx.tenant_id, file_ref)
        await self._emit(ctx, "template.created", template)
        return template

    async def list(
        self,
        ctx: RequestContext,
        *,
        category: Optional[str] = None,
        template_type: Optional[str] = None,
    ) -> List[Template]:
        return await self.dal.list(
            ctx.tenant_id,
            category=sanitize_string(category, CATEGORY_MAX) or None,
            template_type=sanitize_string(template_type, TYPE_MAX) or None,
        )

    async def get(self, ctx: RequestContext, template_id: str) -> Template:
        return await self.load(ctx, template_id)

    async def update(self, ctx: RequestContext, template_id: str, patch: TemplateUpdate) -> Template:
        await self.load(ctx, template_id)

        fields: Dict[str, Any] = {}
        if patch.name is not None:
            name = sanitize_string(patch.name, NAME_MAX)
            if not name:
                raise ValidationFailed("Invalid input: name cannot be empty")
            fields["name"] = name
        if patch.description is not None:
            fields["description"] = sanitize_optional(patch.description, DESCRIPTION_MAX)
        if patch.category is not None:
            fields["category"] = sanitize_optional(patch.category, CATEGORY_MAX)
        if patch.template_type is not None:
            template_type = sanitize_string(patch.template_type, TYPE_MAX)
            if not template_type:
                raise ValidationFailed("Invalid input: template_type cannot be empty")
            fields["template_type"] = template_type

        updated = await self.dal.update(ctx.tenant_id, template_id, fields)
        if updated is None:
            raise NotFound(NOT_FOUND_MESSAGE, details={"templateId": template_id})
        await self._emit(ctx, "template.updated", updated)
        return updated

    async def delete(self, ctx: RequestContext, template_id: str) -> None:
        template = await self.load(ctx, template_id)
        if not await self.dal.delete(ctx.tenant_id, template_id):
            raise NotFound(NOT_FOUND_MESSAGE, details={"templateId": template_id})
        logger.info("Template deleted id=%s tenant_id=%s", template_id, ctx.tenant_id)
        await self._emit(ctx, "template.deleted", template)

    # ---------- file content ---------- #

    async def replace_file(self, ctx: RequestContext, template_id: str, upload: TemplateUpload) -> Template:
        """Swap the binary in place; file_ref stays the same so links remain stable."""
        template = await self.load(ctx, template_id)
        if not upload.content or not is_docx_upload(upload):
            raise ValidationFailed("Invalid file type. Only .docx files are allowed")

        report = await self._placeholders_for(upload.content, template_label=template.name)
        await self.gateway.replace(template.file_ref, upload.content)
        updated = await self.dal.update(ctx.tenant_id, template_id, {"placeholders": report.placeholders})
        if updated is None:
            raise NotFound(NOT_FOUND_MESSAGE, details={"templateId": template_id})
        await self._emit(ctx, "template.updated", updated)
        return updated

    async def extract_placeholders(self, ctx: RequestContext, template_id: str) -> PlaceholderReport:
        template = await self.load(ctx, template_id)
        content = await self.gateway.fetch(template.file_ref)
        report = await self._placeholders_for(content, template_label=template.name)
        await self.dal.update(ctx.tenant_id, template_id, {"placeholders": report.placeholders})
        return report
