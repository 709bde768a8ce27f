# services/communication-service/app/core/validation.py
from __future__ import annotations

import re
from typing import Any, Optional

from app.errors import InvalidIdentifier

_OBJECT_ID_RE = re.compile(r"[0-9a-fA-F]{24}")
_NON_HEX_RE = re.compile(r"[^0-9a-fA-F]")
OBJECT_ID_LENGTH = 24


def validate_object_id(value: Any, field_name: str = "id") -> str:
    """
    Reject anything that is not a 24-char hex record identifier.
    Runs before the value is used in any query or URL.
    """
    if not isinstance(value, str) or not value:
        raise InvalidIdentifier(f"Invalid {field_name}: must be a string")
    if not _OBJECT_ID_RE.fullmatch(value):
        raise InvalidIdentifier(f"Invalid {field_name}: must be a valid ObjectId")
    return value


def sanitize_hex_id(value: str, field_name: str = "id") -> str:
    """
    Strip everything outside the hex alphabet and require the exact id length.
    Second line of defence for identifiers about to be placed in a URL path.
    """
    cleaned = _NON_HEX_RE.sub("", value or "")
    if len(cleaned) != OBJECT_ID_LENGTH:
        raise InvalidIdentifier(f"Invalid {field_name} format")
    return cleaned


def sanitize_string(value: Any, max_length: int = 1000) -> str:
    """Remove NUL bytes, trim, cap length. Non-strings become ''."""
    if not isinstance(value, str):
        return ""
    cleaned = value.replace("\x00", "").strip()
    return cleaned[:max_length]


def sanitize_optional(value: Optional[str], max_length: int) -> Optional[str]:
    if value is None:
        return None
    return sanitize_string(value, max_length) or None
