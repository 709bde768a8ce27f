import random
import string

import pytest

from app.core.validation import sanitize_hex_id, sanitize_optional, sanitize_string, validate_object_id
from app.errors import InvalidIdentifier


def test_accepts_24_hex_both_cases():
    assert validate_object_id("64B7F0C2A1D3E4F5A6B7C8D9") == "64B7F0C2A1D3E4F5A6B7C8D9"
    assert validate_object_id("64b7f0c2a1d3e4f5a6b7c8d9") == "64b7f0c2a1d3e4f5a6b7c8d9"


@pytest.mark.parametrize(
    "value",
    [
        "",
        None,
        123,
        "64b7f0c2a1d3e4f5a6b7c8d",       # 23
        "64b7f0c2a1d3e4f5a6b7c8d9a",     # 25
        "64b7f0c2a1d3e4f5a6b7c8dz",
        "../../../../etc/passwd000",
        "64b7f0c2a1d3e4f5a6b7c8d9\n",
        "{\"$ne\": null}",
    ],
)
def test_rejects_malformed(value):
    with pytest.raises(InvalidIdentifier):
        validate_object_id(value, "memberId")


def test_random_strings_accepted_only_when_24_hex():
    rng = random.Random(7)
    alphabet = string.ascii_letters + string.digits + "-_./%$ "
    hexdigits = set("0123456789abcdefABCDEF")
    for _ in range(500):
        s = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 30)))
        expected = len(s) == 24 and set(s) <= hexdigits
        try:
            validate_object_id(s)
            accepted = True
        except InvalidIdentifier:
            accepted = False
        assert accepted is expected, s


def test_error_names_the_field():
    with pytest.raises(InvalidIdentifier) as ei:
        validate_object_id("nope", "templateId")
    assert "templateId" in str(ei.value)
    assert ei.value.status == 400


def test_sanitize_hex_id_requires_exact_length():
    assert sanitize_hex_id("64b7f0c2a1d3e4f5a6b7c8d9") == "64b7f0c2a1d3e4f5a6b7c8d9"
    with pytest.raises(InvalidIdentifier):
        sanitize_hex_id("64b7f0c2/../a1d3e4f5a6b7")


def test_sanitize_string():
    assert sanitize_string("  Renewal\x00 notice  ") == "Renewal notice"
    assert sanitize_string("x" * 50, 10) == "x" * 10
    assert sanitize_string(None) == ""
    assert sanitize_string(42) == ""
    assert sanitize_optional(None, 10) is None
    assert sanitize_optional("   ", 10) is None
