# services/communication-service/app/core/placeholders.py
from __future__ import annotations

import io
import re
import zipfile
from typing import Iterable, List
from xml.sax.saxutils import unescape

from app.errors import InvalidTemplatePackage

DOCUMENT_BODY_ENTRY = "word/document.xml"

_XML_TAG_RE = re.compile(r"<[^>]+>")
_PARAGRAPH_END_RE = re.compile(r"</w:p>")
_TOKEN_RE = re.compile(r"\{\{([^{}\n]*)\}\}")
_ENTITIES = {"&quot;": '"', "&apos;": "'"}


def _read_body(package: bytes) -> str:
    try:
        with zipfile.ZipFile(io.BytesIO(package)) as zf:
            try:
                raw = zf.read(DOCUMENT_BODY_ENTRY)
            except KeyError as exc:
                raise InvalidTemplatePackage(
                    f"Template package has no {DOCUMENT_BODY_ENTRY} entry"
                ) from exc
    except zipfile.BadZipFile as exc:
        raise InvalidTemplatePackage("Template is not a valid .docx package") from exc
    return raw.decode("utf-8", errors="replace")


def extract_placeholders(package: bytes) -> List[str]:
    """
    Return the `{{token}}` names in the document body, trimmed, unique,
    in first-seen order.

    XML tags are removed before matching because Word regularly splits a
    single token over several runs (`{{mem</w:t>...<w:t>ber}}`). A token
    never spans paragraphs. Entities are unescaped, so `{{a&amp;b}}` is `a&b`.
    """
    raw = re.sub(r"[\r\n]", "", _read_body(package))
    body = _PARAGRAPH_END_RE.sub("\n", raw)
    text = unescape(_XML_TAG_RE.sub("", body), _ENTITIES)
    seen: dict[str, None] = {}
    for match in _TOKEN_RE.finditer(text):
        token = match.group(1).strip()
        if token and token not in seen:
            seen[token] = None
    return list(seen)


def compare_with_catalog(tokens: Iterable[str], catalog_keys: Iterable[str]) -> List[str]:
    """Tokens the field catalog does not know about (order preserved)."""
    known = set(catalog_keys)
    return [t for t in tokens if t not in known]
