"""
File reference store - uploads to Supabase-compatible object storage over HTTP.

The core only ever keeps the returned public URL.
"""

import requests
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
import logging
import re

from app.core.config import settings
from app.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)


@dataclass
class FileUpload:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class FileStore(Protocol):
    def upload(self, bucket: str, filename: str, content: bytes, content_type: str) -> str:
        ...


def storage_name(original_name: str) -> str:
    # <epoch-ms>_<original>, path separators stripped
    safe = re.sub(r"[\\/]+", "_", original_name or "file")
    return f"{int(datetime.now().timestamp() * 1000)}_{safe}"


class SupabaseFileStore:
    def __init__(self, base_url: str, api_key: str, timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def public_url(self, bucket: str, name: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{name}"

    def upload(self, bucket: str, filename: str, content: bytes, content_type: str) -> str:
        if not self.base_url:
            raise UpstreamFailure("File storage is not configured")

        name = storage_name(filename)
        try:
            response = requests.post(
                f"{self.base_url}/storage/v1/object/{bucket}/{name}",
                data=content,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "apikey": self.api_key,
                    "Content-Type": content_type or "application/octet-stream",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Upload to {bucket} failed: {e}")
            raise UpstreamFailure("file upload failed") from e

        return self.public_url(bucket, name)


def get_file_store() -> FileStore:
    """FastAPI dependency; tests override it with an in-memory fake."""
    return SupabaseFileStore(settings.STORAGE_URL, settings.STORAGE_KEY, settings.STORAGE_TIMEOUT)
