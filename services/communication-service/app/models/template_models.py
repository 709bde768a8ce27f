# services/communication-service/app/models/template_models.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field


def new_object_id() -> str:
    return str(ObjectId())


class Template(BaseModel):
    """
    Tenant-owned letter template. The binary lives in the document
    repository under `file_ref`; this record only holds metadata.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_object_id)
    tenant_id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    template_type: str = "letter"
    file_ref: str = Field(..., description="Opaque document-repository item id")
    placeholders: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TemplateMetadata(BaseModel):
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    template_type: str = "letter"


class TemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    template_type: Optional[str] = None


class TemplateUpload(BaseModel):
    """An uploaded file as handed over by the HTTP layer."""
    filename: str
    content_type: Optional[str] = None
    content: bytes


class PlaceholderReport(BaseModel):
    placeholders: List[str] = Field(default_factory=list)
    unknown: List[str] = Field(default_factory=list, description="Tokens not registered in the field catalog")
