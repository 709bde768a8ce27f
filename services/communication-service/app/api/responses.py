# services/communication-service/app/api/responses.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def success(data: Any, message: str = "Success") -> Dict[str, Any]:
    return {"status": "success", "message": message, "data": data, "timestamp": _now()}


def failure(
    message: str,
    *,
    code: str,
    status: str = "fail",
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "status": status,
        "message": message,
        "code": code,
        "details": details or {},
        "timestamp": _now(),
    }
