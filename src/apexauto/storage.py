"""Object storage uploads (section images)."""

from __future__ import annotations

import logging
import mimetypes
import secrets
from pathlib import PurePosixPath
from typing import Protocol

from apexauto._transport import Transport
from apexauto.config import ApexConfig
from apexauto.exceptions import ApexStorageError, ApexTransportError

_logger = logging.getLogger(__name__)


class ImageUploader(Protocol):
    """What the content service needs from storage."""

    async def upload(self, path_hint: str, content: bytes, *, content_type: str | None = None) -> str: ...


def object_path(prefix: str, path_hint: str, token: str | None = None) -> str:
    """Build ``<prefix>/<token>.<ext>`` keeping only the extension of *path_hint*."""
    suffix = PurePosixPath(path_hint).suffix.lower()
    name = f"{token or secrets.token_hex(8)}{suffix}"
    prefix = prefix.strip("/")
    return f"{prefix}/{name}" if prefix else name


class ObjectStorage:
    """Uploads to a public bucket and returns the object's public URL."""

    def __init__(self, config: ApexConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport

    @property
    def bucket(self) -> str:
        return self._config.storage_bucket

    def public_url(self, path: str) -> str:
        return f"{self._config.storage_url}/object/public/{self.bucket}/{path.lstrip('/')}"

    async def upload(self, path_hint: str, content: bytes, *, content_type: str | None = None) -> str:
        """Upload *content* under a fresh random name.

        Parameters
        ----------
        path_hint : str
            Original file name; only its extension is kept.
        content : bytes
            File body.
        content_type : str or None
            MIME type. Guessed from *path_hint* when omitted.

        Returns
        -------
        str
            Public URL of the stored object.
        """
        if not content:
            raise ApexStorageError("Refusing to upload an empty file")

        path = object_path(self._config.storage_prefix, path_hint)
        mime = content_type or mimetypes.guess_type(path_hint)[0] or "application/octet-stream"
        endpoint = f"/storage/v1/object/{self.bucket}/{path}"
        _logger.debug("Uploading %d bytes to %s (%s)", len(content), endpoint, mime)
        try:
            await self._transport.request(
                "POST",
                endpoint,
                data=content,
                headers={"content-type": mime, "x-upsert": "false", "cache-control": "max-age=3600"},
            )
        except ApexTransportError as exc:
            raise ApexStorageError(f"Upload of {path_hint!r} failed: {exc}") from exc
        return self.public_url(path)
