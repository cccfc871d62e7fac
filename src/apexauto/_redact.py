"""Keep the project API key out of debug logs.

:class:`~apexauto._transport.RestTransport` sends the key twice on every
call (the ``apikey`` header and an ``Authorization`` bearer token) and the
realtime socket passes it as the ``apikey`` query parameter.  Error bodies
and realtime frames are logged as text, so the key is also masked there.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

_CREDENTIAL_NAMES: frozenset[str] = frozenset({"apikey", "authorization"})


def redact_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Copy request headers (or query parameters) with credentials masked."""
    if not headers:
        return {}
    return {name: REDACTED if name.lower() in _CREDENTIAL_NAMES else value for name, value in headers.items()}


def redact_text(text: str, secret: str, *, limit: int = 200) -> str:
    """Mask *secret* inside *text*, then truncate to *limit* characters."""
    if secret:
        text = text.replace(secret, REDACTED)
    if len(text) > limit:
        return f"{text[:limit]}...<truncated>"
    return text


def describe_body(body: Any) -> str:
    """Summarise a request body by shape; row values are never logged."""
    if body is None:
        return "-"
    if isinstance(body, (bytes, bytearray)):
        return f"<{len(body)} bytes>"
    if isinstance(body, Mapping):
        return f"<fields={sorted(str(key) for key in body)}>"
    if isinstance(body, list):
        names = sorted({str(key) for row in body if isinstance(row, Mapping) for key in row})
        return f"<{len(body)} rows fields={names}>"
    return f"<{type(body).__name__}>"
