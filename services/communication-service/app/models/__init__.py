# services/communication-service/app/models/__init__.py
from .context import RequestContext

from .template_models import (
    new_object_id,
    Template,
    TemplateMetadata,
    TemplateUpdate,
    TemplateUpload,
    PlaceholderReport,
)

from .field_models import (
    FieldDataType,
    BookmarkField,
    BookmarkFieldCreate,
    BookmarkFieldUpdate,
    CatalogKey,
)

from .letter_models import (
    GeneratedLetter,
    GenerateLetterRequest,
    GenerateLetterResult,
    DownloadLink,
)

from .user_models import (
    MirroredUser,
    CrmUserEventData,
)

__all__ = [
    "RequestContext",
    # template_models
    "new_object_id",
    "Template",
    "TemplateMetadata",
    "TemplateUpdate",
    "TemplateUpload",
    "PlaceholderReport",
    # field_models
    "FieldDataType",
    "BookmarkField",
    "BookmarkFieldCreate",
    "BookmarkFieldUpdate",
    "CatalogKey",
    # letter_models
    "GeneratedLetter",
    "GenerateLetterRequest",
    "GenerateLetterResult",
    "DownloadLink",
    # user_models
    "MirroredUser",
    "CrmUserEventData",
]
