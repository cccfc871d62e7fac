"""HTTP transport for the hosted backend's REST and storage endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from apexauto._constants import USER_AGENT
from apexauto._redact import describe_body, redact_headers, redact_text
from apexauto.config import ApexConfig
from apexauto.exceptions import ApexTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the store and storage modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`RestTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        data: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any: ...


class RestTransport:
    """HTTP transport that authenticates every call with the project API key."""

    def __init__(self, config: ApexConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _base_headers(self) -> dict[str, str]:
        return {
            "apikey": self._config.api_key,
            "authorization": f"Bearer {self._config.api_key}",
            "user-agent": USER_AGENT,
            "accept": "application/json",
        }

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        data: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (``None`` if empty).

        Raises :class:`ApexTransportError` on network failure, non-2xx status
        or an undecodable body.
        """
        merged_headers = self._base_headers()
        if headers:
            merged_headers.update(headers)

        url = f"{self._config.url.rstrip('/')}{endpoint}"
        _logger.debug(
            "%s %s params=%s headers=%s body=%s",
            method,
            url,
            dict(params) if params else {},
            redact_headers(merged_headers),
            describe_body(json_body if data is None else data),
        )

        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)
        try:
            async with self._http.request(
                method,
                url,
                params=dict(params) if params else None,
                json=json_body if data is None else None,
                data=data,
                headers=merged_headers,
                timeout=timeout,
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise ApexTransportError(
                        f"HTTP {resp.status} from {endpoint}: {redact_text(text, self._config.api_key)}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except ApexTransportError:
            raise
        except TimeoutError as exc:
            raise ApexTransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc
        except aiohttp.ClientError as exc:
            raise ApexTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            return None

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ApexTransportError(
                f"Invalid JSON from {endpoint}: {redact_text(text, self._config.api_key)}",
                endpoint=endpoint,
            ) from exc
