"""
Ledger upload interface and the size-capped publish helper.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from fairai.core.constants import MAX_UPLOAD_BYTES
from fairai.core.logging import get_logger
from fairai.core.types import Tag

logger = get_logger("upload")

Payload = str | bytes


def payload_bytes(payload: Payload) -> bytes:
    return payload.encode("utf-8") if isinstance(payload, str) else payload


class Uploader(ABC):
    """Publishes tagged data items to Arweave."""

    @abstractmethod
    async def upload(self, data: bytes, tags: list[Tag]) -> str:
        """
        Upload `data` with `tags`.

        Returns:
            The new transaction id

        Raises:
            UploadError: the upload was rejected
        """
        ...

    async def close(self) -> None:
        """Release any held connections."""
        return None


async def publish(uploader: Uploader, payload: Payload, tags: Iterable[Tag]) -> str | None:
    """
    Publish a payload, returning its transaction id or None on any failure.

    Payloads over 100 KiB are rejected without contacting the uploader.
    """
    data = payload_bytes(payload)
    if len(data) > MAX_UPLOAD_BYTES:
        logger.warning(
            f"Payload of {len(data)} bytes exceeds the {MAX_UPLOAD_BYTES} byte limit"
        )
        return None

    try:
        tx_id = await uploader.upload(data, list(tags))
    except Exception as e:
        logger.error(f"Upload failed: {e}")
        return None

    return tx_id or None
