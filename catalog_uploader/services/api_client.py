"""HTTP adapter for catalog uploads."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..models import MediaFile, UploadOutcome
from ..protocols import ICredentialStore

logger = logging.getLogger(__name__)

UPLOAD_SUCCESS_STATUS = 201


class HTTPMediaUploader:
    """
    HTTP client adapter for media uploads.

    Implements IMediaUploader protocol. Sends one authenticated multipart POST
    per file; there are no retries, a failed file is picked up again by the
    next run.
    """

    def __init__(
        self,
        api_url: str,
        credentials: ICredentialStore,
        timeout: Optional[float] = 600,
        verify: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_url = api_url
        self._credentials = credentials
        self._timeout = timeout
        self._verify = verify
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            verify=self._verify,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def build_request(self, media: MediaFile) -> httpx.Request:
        """Build the multipart request for a media file."""
        if not self._client:
            raise RuntimeError("HTTPMediaUploader not initialized. Use 'async with' context.")

        secret = self._credentials.secret_for(media.owner)
        return self._client.build_request(
            "POST",
            self._api_url,
            files={"media_file": (media.filename, media.content, media.mime_type)},
            data={"title": media.filename, "description": media.info.description},
            auth=httpx.BasicAuth(media.owner, secret),
        )

    async def upload(self, media: MediaFile) -> UploadOutcome:
        request = self.build_request(media)
        try:
            response = await self._client.send(request)
        except httpx.HTTPError as exc:
            logger.error("Upload of %s got no response: %s", media.info.relative_path, exc)
            return UploadOutcome.failed()

        if response.status_code == UPLOAD_SUCCESS_STATUS:
            return UploadOutcome.success()

        logger.warning(
            "Upload of %s rejected with status %d: %s",
            media.info.relative_path,
            response.status_code,
            response.text[:200],
        )
        return UploadOutcome.failed(response.status_code)
