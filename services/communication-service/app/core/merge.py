# services/communication-service/app/core/merge.py
from __future__ import annotations

import io
import json
import logging
import re
from typing import Any, Mapping
from xml.sax.saxutils import unescape

from docxtpl import DocxTemplate

from app.errors import MergeFailed

logger = logging.getLogger("app.core.merge")

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

LOOKUP_NAME = "_v"

_PRINT_RE = re.compile(r"\{\{([^{}]*)\}\}")
_ENTITIES = {"&quot;": '"', "&apos;": "'"}


def _as_lookup(match: re.Match) -> str:
    key = unescape(match.group(1), _ENTITIES).strip()
    if not key:
        return ""
    return "{{ %s(%s) }}" % (LOOKUP_NAME, json.dumps(key, ensure_ascii=False))


class TokenTemplate(DocxTemplate):
    """
    DocxTemplate whose `{{ ... }}` tokens are treated as data keys, never as
    jinja expressions. `{{first-name}}`, `{{Member Name}}` or `{{1stLine}}`
    are looked up verbatim instead of being parsed.
    """

    def patch_xml(self, src_xml):
        return _PRINT_RE.sub(_as_lookup, super().patch_xml(src_xml))


def lookup(data: Mapping[str, Any]):
    """Key lookup that never raises: exact key first, then a dotted walk, else ''."""

    def _get(key: str) -> Any:
        if key in data:
            value = data[key]
        else:
            value = data
            for part in key.split("."):
                if not isinstance(value, Mapping) or part not in value:
                    return ""
                value = value[part]
        return "" if value is None else value

    return _get


def render_document(template_bytes: bytes, data: Mapping[str, Any]) -> bytes:
    """
    Merge `data` into a .docx template and return the rendered package.

    Tokens without a matching key render as empty text, so a missing
    optional field never fails the render. Values are XML-escaped.
    """
    try:
        tpl = TokenTemplate(io.BytesIO(template_bytes))
        tpl.render({LOOKUP_NAME: lookup(data)}, autoescape=True)
        out = io.BytesIO()
        tpl.save(out)
    except Exception as exc:
        logger.exception("Template render failed (%d bytes, %d keys)", len(template_bytes), len(data))
        raise MergeFailed(f"Template render failed: {exc}") from exc
    return out.getvalue()
