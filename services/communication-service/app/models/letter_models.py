# services/communication-service/app/models/letter_models.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.template_models import new_object_id


class GeneratedLetter(BaseModel):
    """
    Ledger entry: one per successful generation, never updated.
    Only the storage path is kept; signed URLs are minted on demand.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_object_id)
    member_id: str
    template_id: str
    file_name: str
    artifact_path: str
    content_type: str
    tenant_id: str
    created_by: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class GenerateLetterRequest(BaseModel):
    member_id: Optional[str] = Field(default=None, alias="memberId")
    template_id: Optional[str] = Field(default=None, alias="templateId")

    model_config = ConfigDict(populate_by_name=True)


class GenerateLetterResult(BaseModel):
    download_url: str = Field(..., serialization_alias="downloadUrl")
    letter_id: str = Field(..., serialization_alias="letterId")
    file_name: str = Field(..., serialization_alias="fileName")


class DownloadLink(BaseModel):
    letter_id: str = Field(..., serialization_alias="letterId")
    download_url: str = Field(..., serialization_alias="downloadUrl")
    expires_at: datetime = Field(..., serialization_alias="expiresAt")
