import pytest

from app.core.merge import render_document
from app.errors import MergeFailed

from conftest import body_text, make_docx


def test_renders_values():
    out = render_document(make_docx("Member {{ membershipNumber }}"), {"membershipNumber": "M-123"})
    assert "Member M-123" in body_text(out)
    assert "{{" not in body_text(out)


def test_missing_key_renders_empty():
    out = render_document(make_docx("Hello {{ forename }}!"), {})
    assert "Hello !" in body_text(out)


def test_corrupt_template_raises_merge_failed():
    with pytest.raises(MergeFailed):
        render_document(b"not a package", {"a": 1})


@pytest.mark.parametrize("token", ["first-name", "member.address", "Member Name", "1stLine"])
def test_non_identifier_tokens_render_empty(token):
    out = render_document(make_docx(f"Dear {{{{{token}}}}} end"), {})
    assert "Dear  end" in body_text(out)
    assert "{{" not in body_text(out)


def test_non_identifier_tokens_resolve_by_key():
    out = render_document(
        make_docx("Dear {{first-name}}, {{ Member Name }} of {{member.address}}"),
        {"first-name": "Aoife", "Member Name": "A. Byrne", "member": {"address": "1 Main St"}},
    )
    assert "Dear Aoife, A. Byrne of 1 Main St" in body_text(out)


def test_values_are_xml_escaped():
    out = render_document(make_docx("Employer {{ employer }}"), {"employer": "Byrne & Sons <Ltd>"})
    assert "Employer Byrne &amp; Sons &lt;Ltd&gt;" in body_text(out)


def test_none_value_renders_empty():
    out = render_document(make_docx("Balance [{{ outstandingBalance }}]"), {"outstandingBalance": None})
    assert "Balance []" in body_text(out)
