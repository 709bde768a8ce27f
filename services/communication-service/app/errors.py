# services/communication-service/app/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class AppError(Exception):
    """
    Base for every error the service raises deliberately.

    `public_message` is what a caller may see. Infrastructure errors keep the
    real cause in `message` (logged server side) and only expose it in
    development builds; see app.api.errors.
    """
    status: int = 500
    code: str = "INTERNAL_ERROR"
    public_message: str = "Internal server error"
    expose_message: bool = False

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message or self.public_message
        self.details = details or {}
        super().__init__(self.message)

    def client_message(self, *, development: bool = False) -> str:
        if self.expose_message or development:
            return self.message
        return self.public_message


# ─────────────────────────────────────────────────────────────
# Caller input (message is safe to return)
# ─────────────────────────────────────────────────────────────

class ValidationFailed(AppError):
    status = 400
    code = "VALIDATION_FAILED"
    public_message = "Validation failed"
    expose_message = True


class InvalidIdentifier(ValidationFailed):
    code = "INVALID_IDENTIFIER"
    public_message = "Invalid identifier"


class InvalidTemplatePackage(ValidationFailed):
    code = "INVALID_TEMPLATE_PACKAGE"
    public_message = "Invalid template package"


class Unauthenticated(AppError):
    status = 401
    code = "UNAUTHORIZED"
    public_message = "User authentication required"
    expose_message = True


class NotFound(AppError):
    status = 404
    code = "NOT_FOUND"
    public_message = "Not found"
    expose_message = True


class Conflict(AppError):
    status = 409
    code = "CONFLICT"
    public_message = "Duplicate entry"
    expose_message = True


# ─────────────────────────────────────────────────────────────
# Trust boundary (never reveal the blocked host or foreign record)
# ─────────────────────────────────────────────────────────────

class TenantMismatch(NotFound):
    """Record exists but belongs to another tenant. Indistinguishable from NotFound."""


class SsrfBlocked(AppError):
    status = 403
    code = "FORBIDDEN"
    public_message = "Outbound request not permitted"


# ─────────────────────────────────────────────────────────────
# Infrastructure (logged in full, generic to the caller in production)
# ─────────────────────────────────────────────────────────────

class RepositoryUnavailable(AppError):
    status = 502
    code = "REPOSITORY_UNAVAILABLE"
    public_message = "Document repository unavailable"


class UpstreamDataUnavailable(AppError):
    status = 502
    code = "UPSTREAM_DATA_UNAVAILABLE"
    public_message = "Member data unavailable"


class MergeFailed(AppError):
    status = 500
    code = "MERGE_FAILED"
    public_message = "Document rendering failed"


class PublishFailed(AppError):
    status = 502
    code = "PUBLISH_FAILED"
    public_message = "Document publication failed"
