from __future__ import annotations

import io
import itertools
import zipfile
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import docx
import pytest
from pymongo.errors import DuplicateKeyError

from app.clients.blob_storage import PublishedArtifact, build_artifact_path
from app.errors import RepositoryUnavailable
from app.models import BookmarkField, GeneratedLetter, MirroredUser, RequestContext, Template
from app.services.field_catalog import FieldCatalogService
from app.services.template_service import TemplateService

TENANT = "t1"
OTHER_TENANT = "t2"
MEMBER_ID = "64b7f0c2a1d3e4f5a6b7c8d9"


# ─────────────────────────────────────────────────────────────
# .docx builders
# ─────────────────────────────────────────────────────────────

def make_docx(*paragraphs: str) -> bytes:
    """A real Word package (python-docx default template) with one paragraph per line."""
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


def make_package(document_xml: str, *, include_body: bool = True) -> bytes:
    """Bare zip package with a hand-written body, for extractor edge cases."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("[Content_Types].xml", "<Types/>")
        if include_body:
            zf.writestr("word/document.xml", document_xml)
    return buf.getvalue()


def body_text(package: bytes) -> str:
    with zipfile.ZipFile(io.BytesIO(package)) as zf:
        return zf.read("word/document.xml").decode("utf-8")


# ─────────────────────────────────────────────────────────────
# In-memory collaborators
# ─────────────────────────────────────────────────────────────

class FakeTemplateDAL:
    def __init__(self) -> None:
        self.docs: Dict[str, Template] = {}

    async def create(self, template: Template) -> Template:
        self.docs[template.id] = template
        return template

    async def get(self, tenant_id: str, template_id: str) -> Optional[Template]:
        t = self.docs.get(template_id)
        return t if t is not None and t.tenant_id == tenant_id else None

    async def exists_anywhere(self, template_id: str) -> bool:
        return template_id in self.docs

    async def list(self, tenant_id: str, *, category=None, template_type=None, limit=100, offset=0) -> List[Template]:
        items = [
            t for t in self.docs.values()
            if t.tenant_id == tenant_id
            and (category is None or t.category == category)
            and (template_type is None or t.template_type == template_type)
        ]
        return sorted(items, key=lambda t: t.created_at, reverse=True)

    async def update(self, tenant_id: str, template_id: str, fields: Dict[str, Any]) -> Optional[Template]:
        current = await self.get(tenant_id, template_id)
        if current is None:
            return None
        updated = current.model_copy(update={**fields, "updated_at": datetime.now(timezone.utc)})
        self.docs[template_id] = updated
        return updated

    async def delete(self, tenant_id: str, template_id: str) -> bool:
        if await self.get(tenant_id, template_id) is None:
            return False
        del self.docs[template_id]
        return True


class FakeLetterDAL:
    def __init__(self, *, fail_with: Optional[Exception] = None) -> None:
        self.rows: List[GeneratedLetter] = []
        self.fail_with = fail_with

    async def create(self, letter: GeneratedLetter) -> GeneratedLetter:
        if self.fail_with is not None:
            raise self.fail_with
        self.rows.append(letter)
        return letter

    async def get(self, tenant_id: str, letter_id: str) -> Optional[GeneratedLetter]:
        return next((r for r in self.rows if r.id == letter_id and r.tenant_id == tenant_id), None)

    async def list_for_member(self, tenant_id: str, member_id: str, *, limit=50, offset=0) -> List[GeneratedLetter]:
        return [r for r in self.rows if r.tenant_id == tenant_id and r.member_id == member_id]


class FakeFieldDAL:
    def __init__(self, fields: Optional[List[BookmarkField]] = None) -> None:
        self.docs: Dict[str, BookmarkField] = {f.id: f for f in (fields or [])}
        self.list_calls = 0

    def _key_taken(self, key: str, exclude_id: Optional[str] = None) -> bool:
        return any(f.key == key and f.id != exclude_id for f in self.docs.values())

    async def list_all(self) -> List[BookmarkField]:
        self.list_calls += 1
        return sorted(self.docs.values(), key=lambda f: f.key)

    async def get(self, field_id: str) -> Optional[BookmarkField]:
        return self.docs.get(field_id)

    async def create(self, field: BookmarkField) -> BookmarkField:
        if self._key_taken(field.key):
            raise DuplicateKeyError("E11000 duplicate key", 11000, {"keyValue": {"key": field.key}})
        self.docs[field.id] = field
        return field

    async def update(self, field_id: str, fields: Dict[str, Any]) -> Optional[BookmarkField]:
        current = self.docs.get(field_id)
        if current is None:
            return None
        if "key" in fields and self._key_taken(fields["key"], exclude_id=field_id):
            raise DuplicateKeyError("E11000 duplicate key", 11000, {"keyValue": {"key": fields["key"]}})
        updated = current.model_copy(update=fields)
        self.docs[field_id] = updated
        return updated

    async def delete(self, field_id: str) -> bool:
        return self.docs.pop(field_id, None) is not None

    async def upsert_by_key(self, field: BookmarkField) -> bool:
        existing = next((f for f in self.docs.values() if f.key == field.key), None)
        if existing is None:
            self.docs[field.id] = field
            return True
        self.docs[existing.id] = existing.model_copy(
            update={"label": field.label, "source_path": field.source_path, "data_type": field.data_type}
        )
        return False


class FakeUserDAL:
    def __init__(self) -> None:
        self.users: Dict[tuple, MirroredUser] = {}

    async def upsert(self, user: MirroredUser) -> None:
        self.users[(user.tenant_id, user.user_id)] = user

    async def get(self, tenant_id: str, user_id: str) -> Optional[MirroredUser]:
        return self.users.get((tenant_id, user_id))


class FakeGateway:
    """Document repository keyed by item id."""

    def __init__(self) -> None:
        self.items: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self._ids = itertools.count(1)

    async def fetch(self, file_ref: str) -> bytes:
        if file_ref not in self.items:
            raise RepositoryUnavailable("Graph fetch returned HTTP 404")
        return self.items[file_ref]

    async def create(self, content: bytes, file_name: str) -> str:
        ref = f"01ITEM{next(self._ids):04d}"
        self.items[ref] = content
        return ref

    async def replace(self, file_ref: str, content: bytes) -> None:
        if file_ref not in self.items:
            raise RepositoryUnavailable("Graph upload returned HTTP 404")
        self.items[file_ref] = content

    async def delete(self, file_ref: str) -> bool:
        self.deleted.append(file_ref)
        return self.items.pop(file_ref, None) is not None


class FakePublisher:
    account_url = "https://acct.blob.core.windows.net"
    container_name = "generated-letters"

    def __init__(self) -> None:
        self.blobs: Dict[str, bytes] = {}
        self.published: List[PublishedArtifact] = []
        self.deleted: List[str] = []
        self.signed_at: List[Optional[datetime]] = []

    async def publish(self, tenant_id: str, member_id: str, content: bytes) -> PublishedArtifact:
        artifact = build_artifact_path(tenant_id, member_id)
        self.blobs[artifact.path] = content
        self.published.append(artifact)
        return artifact

    async def delete(self, path: str) -> bool:
        self.deleted.append(path)
        return self.blobs.pop(path, None) is not None

    def validity_window(self, now: Optional[datetime] = None):
        start = now or datetime.now(timezone.utc)
        return start, start + timedelta(hours=1)

    def signed_url(self, path: str, *, now: Optional[datetime] = None) -> str:
        self.signed_at.append(now)
        return f"{self.account_url}/{self.container_name}/{path}?sp=r&sig=fake"


class FakeEvents:
    def __init__(self) -> None:
        self.emitted: List[tuple] = []

    async def emit(self, event: str, payload: Dict[str, Any], **meta: Any) -> bool:
        self.emitted.append((event, payload, meta))
        return True

    def names(self) -> List[str]:
        return [e[0] for e in self.emitted]


# ─────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────

@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(tenant_id=TENANT, user_id="u-100", token="tok", correlation_id="corr-1")


@pytest.fixture
def other_ctx() -> RequestContext:
    return RequestContext(tenant_id=OTHER_TENANT, user_id="u-200")


@pytest.fixture
def field_dal() -> FakeFieldDAL:
    return FakeFieldDAL([
        BookmarkField(key="membershipNumber", label="Membership Number", source_path="profile.membershipNumber"),
        BookmarkField(key="forename", label="Forename", source_path="profile.personalInfo.forename"),
        BookmarkField(key="endDate", label="End Date", source_path="subscription.endDate", data_type="date"),
        BookmarkField(key="outstandingBalance", label="Outstanding Balance", source_path="account.balance", data_type="number"),
    ])


@pytest.fixture
def catalog(field_dal: FakeFieldDAL) -> FieldCatalogService:
    return FieldCatalogService(field_dal, ttl_seconds=300)


@pytest.fixture
def events() -> FakeEvents:
    return FakeEvents()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def template_dal() -> FakeTemplateDAL:
    return FakeTemplateDAL()


@pytest.fixture
def template_service(template_dal, gateway, catalog, events) -> TemplateService:
    return TemplateService(dal=template_dal, gateway=gateway, catalog=catalog, events=events)
