"""
HTTP upload relay client.

The relay holds the bundler credentials and signs data items on our
behalf; FairAI sends the raw bytes and tags and gets a transaction id back.

Request:  POST {upload_url}  {"data": <base64>, "tags": [{"name", "value"}]}
Response: {"id": "<arweave tx id>"}
"""

from __future__ import annotations

import base64

import httpx

from fairai.core.config import Config
from fairai.core.exceptions import ConfigurationError, UploadError
from fairai.core.logging import get_logger
from fairai.core.types import Tag
from fairai.resilience.retry import execute_with_retry
from fairai.upload.base import Uploader

logger = get_logger("upload.http")


class HttpUploader(Uploader):
    """Uploads through an HTTP relay configured by ``Config.upload_url``."""

    def __init__(
        self,
        config: Config,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not config.upload_url:
            raise ConfigurationError("upload_url is required for publishing")
        self._url = config.upload_url
        self._timeout = config.request_timeout
        self._http_client = http_client
        self._owns_client = False

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _post(self, payload: dict) -> httpx.Response:
        client = await self._get_client()
        response = await client.post(self._url, json=payload)
        response.raise_for_status()
        return response

    async def upload(self, data: bytes, tags: list[Tag]) -> str:
        payload = {
            "data": base64.b64encode(data).decode("ascii"),
            "tags": [tag.to_dict() for tag in tags],
        }
        try:
            response = await execute_with_retry(self._post, payload)
        except httpx.HTTPError as e:
            raise UploadError(f"Upload relay request failed: {e}", details={"url": self._url}) from e

        tx_id = response.json().get("id")
        if not tx_id:
            raise UploadError("Upload relay returned no id", details={"url": self._url})

        logger.debug(f"Uploaded {len(data)} bytes as {tx_id}")
        return tx_id
