from __future__ import annotations

from apexauto._redact import REDACTED, describe_body, redact_headers, redact_text


def test_redact_headers_masks_credentials() -> None:
    headers = {
        "apikey": "anon-key",
        "Authorization": "Bearer anon-key",
        "accept-profile": "public",
        "prefer": "return=representation",
    }

    assert redact_headers(headers) == {
        "apikey": REDACTED,
        "Authorization": REDACTED,
        "accept-profile": "public",
        "prefer": "return=representation",
    }
    assert redact_headers({"apikey": "anon-key", "vsn": "1.0.0"}) == {"apikey": REDACTED, "vsn": "1.0.0"}
    assert redact_headers(None) == {}


def test_redact_text_masks_key_before_truncating() -> None:
    body = '{"message":"JWT anon-key-123 expired"}'

    assert redact_text(body, "anon-key-123") == '{"message":"JWT <redacted> expired"}'
    truncated = redact_text("x" * 50 + "anon-key-123", "anon-key-123", limit=10)
    assert truncated == "x" * 10 + "...<truncated>"
    assert redact_text("no secret here", "") == "no secret here"


def test_describe_body_never_includes_values() -> None:
    rows = [{"make": "Ferrari", "price": 325000}, {"make": "BMW", "mileage": 15000}]

    assert describe_body(rows) == "<2 rows fields=['make', 'mileage', 'price']>"
    assert describe_body({"title": "Hero", "visible": True}) == "<fields=['title', 'visible']>"
    assert describe_body(b"\x89PNG") == "<4 bytes>"
    assert describe_body(None) == "-"
