# services/communication-service/app/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Header

from app.errors import Unauthenticated
from app.infra.logging import current_correlation_id
from app.models import RequestContext
from app.services.field_catalog import FieldCatalogService, get_field_catalog
from app.services.letter_service import LetterService
from app.services.template_service import TemplateService


async def get_request_context(
    x_tenant_id: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
    x_correlation_id: Optional[str] = Header(default=None),
) -> RequestContext:
    """
    Caller identity as attached by the upstream authorization layer.
    Both tenant and user must be present; nothing runs without them.
    """
    tenant_id = (x_tenant_id or "").strip()
    user_id = (x_user_id or "").strip()
    if not tenant_id or not user_id:
        raise Unauthenticated("User authentication required")
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip() or None
    return RequestContext(
        tenant_id=tenant_id,
        user_id=user_id,
        token=token,
        correlation_id=x_correlation_id or current_correlation_id(),
    )


def get_template_service() -> TemplateService:
    return TemplateService()


def get_letter_service() -> LetterService:
    return LetterService()


def get_catalog_service() -> FieldCatalogService:
    return get_field_catalog()
