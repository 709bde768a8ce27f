from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

class EventEnvelope(BaseModel):
    """
    Minimal envelope for cross-service parity.
    """
    event: str = Field(..., description="template.created|template.updated|template.deleted|letter.generated")
    service: str = Field(default="communication")
    org: str = Field(..., description="Org segment used in routing key.")
    version: str = Field(default="v1")
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    tenant_id: Optional[str] = Field(default=None)
    by: Optional[str] = Field(default=None)
    correlation_id: Optional[str] = Field(default=None)
    payload: Dict[str, Any] = Field(default_factory=dict)


def rk(org: str, service: str, event: str, version: str = "v1") -> str:
    """Canonical routing key: <org>.<service>.<event>.<version>"""
    return f"{org}.{service}.{event}.{version}"
