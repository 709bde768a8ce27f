# services/communication-service/app/models/context.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RequestContext:
    """
    Caller identity attached by the upstream authorization layer.
    Every tenant-scoped operation takes one of these.
    """
    tenant_id: str
    user_id: str
    token: Optional[str] = None
    correlation_id: Optional[str] = None
