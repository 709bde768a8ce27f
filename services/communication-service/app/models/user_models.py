# services/communication-service/app/models/user_models.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MirroredUser(BaseModel):
    """Local copy of a CRM user, kept current from user.crm.* events."""
    model_config = ConfigDict(extra="ignore")

    tenant_id: str
    user_id: str
    user_email: Optional[str] = None
    user_full_name: Optional[str] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CrmUserEventData(BaseModel):
    user_id: Optional[str] = Field(default=None, alias="userId")
    user_email: Optional[str] = Field(default=None, alias="userEmail")
    user_full_name: Optional[str] = Field(default=None, alias="userFullName")
    tenant_id: Optional[str] = Field(default=None, alias="tenantId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")
