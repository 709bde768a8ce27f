import httpx
import pytest

from app.clients.member_data import MemberDataAggregator
from app.errors import InvalidIdentifier, NotFound, UpstreamDataUnavailable, ValidationFailed
from app.models import TemplateMetadata, TemplateUpload
from app.services.letter_service import LetterService

from conftest import MEMBER_ID, TENANT, FakeLetterDAL, FakePublisher, body_text, make_docx

URLS = {
    "profile": "https://members.example.org/profiles",
    "subscription": "https://members.example.org/subscriptions",
    "account": "https://members.example.org/accounts",
}


def _member_api(*, subscription_timeout=False):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        collection = request.url.path.split("/")[1]
        if collection == "subscriptions" and subscription_timeout:
            raise httpx.ReadTimeout("timed out", request=request)
        body = {
            "profiles": {"fullName": "Aoife Byrne", "membershipNumber": "M-123"},
            "subscriptions": {"status": "active"},
            "accounts": {"balance": 0},
        }[collection]
        return httpx.Response(200, json=body)

    return handler, calls


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def ledger():
    return FakeLetterDAL()


def _service(template_service, catalog, events, publisher, ledger, handler):
    return LetterService(
        templates=template_service,
        aggregator=MemberDataAggregator(
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            service_urls=URLS,
            allowed_hosts=["members.example.org"],
        ),
        publisher=publisher,
        ledger=ledger,
        catalog=catalog,
        events=events,
    )


async def _upload(template_service, ctx, *paragraphs):
    upload = TemplateUpload(filename="renewal.docx", content=make_docx(*paragraphs))
    return await template_service.create(ctx, upload, TemplateMetadata(name="Renewal"))


async def test_generates_letter_end_to_end(ctx, template_service, catalog, events, publisher, ledger):
    template = await _upload(template_service, ctx, "Member number {{ membershipNumber }}")
    handler, _ = _member_api()
    svc = _service(template_service, catalog, events, publisher, ledger, handler)

    result = await svc.generate(ctx, MEMBER_ID, template.id)

    artifact = publisher.published[0]
    assert artifact.path.startswith(f"{TENANT}/{MEMBER_ID}/letter-")
    assert artifact.path.endswith(".docx")
    assert "Member number M-123" in body_text(publisher.blobs[artifact.path])

    [row] = ledger.rows
    assert row.artifact_path == artifact.path
    assert row.template_id == template.id and row.member_id == MEMBER_ID
    assert row.tenant_id == TENANT and row.created_by == ctx.user_id
    assert result.letter_id == row.id
    assert result.file_name == artifact.file_name
    assert artifact.path in result.download_url
    assert "letter.generated" in events.names()


async def test_download_link_window_starts_at_upload(ctx, template_service, catalog, events, publisher, ledger):
    template = await _upload(template_service, ctx, "{{ MemberName }}")
    handler, _ = _member_api()
    svc = _service(template_service, catalog, events, publisher, ledger, handler)

    await svc.generate(ctx, MEMBER_ID, template.id)

    [row] = ledger.rows
    assert publisher.signed_at == [row.created_at]
    assert row.created_at.tzinfo is not None


async def test_unusual_tokens_do_not_fail_generation(ctx, template_service, catalog, events, publisher, ledger):
    template = await _upload(template_service, ctx, "Dear {{first-name}} {{ Member Name }}, no. {{ membershipNumber }}")
    handler, _ = _member_api()
    svc = _service(template_service, catalog, events, publisher, ledger, handler)

    await svc.generate(ctx, MEMBER_ID, template.id)

    assert "Dear  , no. M-123" in body_text(publisher.blobs[publisher.published[0].path])


async def test_same_request_twice_gives_two_letters(ctx, template_service, catalog, events, publisher, ledger):
    template = await _upload(template_service, ctx, "{{ MemberName }}")
    handler, _ = _member_api()
    svc = _service(template_service, catalog, events, publisher, ledger, handler)

    first = await svc.generate(ctx, MEMBER_ID, template.id)
    second = await svc.generate(ctx, MEMBER_ID, template.id)

    assert first.letter_id != second.letter_id
    assert len({a.path for a in publisher.published}) == 2
    assert len(ledger.rows) == 2


async def test_upstream_timeout_leaves_nothing_behind(ctx, template_service, catalog, events, publisher, ledger):
    template = await _upload(template_service, ctx, "{{ MemberName }}")
    handler, _ = _member_api(subscription_timeout=True)
    svc = _service(template_service, catalog, events, publisher, ledger, handler)

    with pytest.raises(UpstreamDataUnavailable):
        await svc.generate(ctx, MEMBER_ID, template.id)
    assert publisher.published == []
    assert ledger.rows == []
    assert "letter.generated" not in events.names()


async def test_ledger_failure_compensates_artifact(ctx, template_service, catalog, events, publisher):
    template = await _upload(template_service, ctx, "{{ MemberName }}")
    handler, _ = _member_api()
    ledger = FakeLetterDAL(fail_with=RuntimeError("mongo down"))
    svc = _service(template_service, catalog, events, publisher, ledger, handler)

    with pytest.raises(RuntimeError):
        await svc.generate(ctx, MEMBER_ID, template.id)
    assert publisher.deleted == [publisher.published[0].path]
    assert publisher.blobs == {}


async def test_cross_tenant_template_is_not_found(ctx, other_ctx, template_service, catalog, events, publisher, ledger):
    template = await _upload(template_service, ctx, "{{ MemberName }}")
    handler, calls = _member_api()
    svc = _service(template_service, catalog, events, publisher, ledger, handler)

    with pytest.raises(NotFound) as ei:
        await svc.generate(other_ctx, MEMBER_ID, template.id)
    assert ei.value.status == 404
    assert calls == [] and publisher.published == []


@pytest.mark.parametrize(
    "member_id,template_id,exc",
    [
        (None, "64b7f0c2a1d3e4f5a6b7c8d9", ValidationFailed),
        (MEMBER_ID, "", ValidationFailed),
        ("M1", "64b7f0c2a1d3e4f5a6b7c8d9", InvalidIdentifier),
        (MEMBER_ID, "not-an-id", InvalidIdentifier),
    ],
)
async def test_rejects_bad_ids_before_any_io(ctx, template_service, catalog, events, publisher, ledger, member_id, template_id, exc):
    handler, calls = _member_api()
    svc = _service(template_service, catalog, events, publisher, ledger, handler)
    with pytest.raises(exc):
        await svc.generate(ctx, member_id, template_id)
    assert calls == []


async def test_list_and_download(ctx, other_ctx, template_service, catalog, events, publisher, ledger):
    template = await _upload(template_service, ctx, "{{ MemberName }}")
    handler, _ = _member_api()
    svc = _service(template_service, catalog, events, publisher, ledger, handler)
    result = await svc.generate(ctx, MEMBER_ID, template.id)

    letters = await svc.list_for_member(ctx, MEMBER_ID)
    assert [l.id for l in letters] == [result.letter_id]
    assert await svc.list_for_member(other_ctx, MEMBER_ID) == []

    link = await svc.download_url(ctx, result.letter_id)
    assert link.letter_id == result.letter_id
    assert ledger.rows[0].artifact_path in link.download_url
    with pytest.raises(NotFound):
        await svc.download_url(other_ctx, result.letter_id)
