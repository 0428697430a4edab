"""Upload module: publish tagged records to Arweave."""

from fairai.upload.base import Uploader, publish
from fairai.upload.http import HttpUploader

__all__ = [
    "Uploader",
    "HttpUploader",
    "publish",
]
