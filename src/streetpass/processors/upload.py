"""Upload file processor."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

import orjson
from pydantic import BaseModel, Field, ValidationError

from streetpass.core.errors import LoadError, StorageError
from streetpass.core.records import UploadPayload
from streetpass.storage.base import ObjectStore

logger = logging.getLogger(__name__)


class UploadProcessorConfig(BaseModel):
    """Configuration for upload parsing."""

    max_size_bytes: int | None = Field(None, description="Maximum upload size in bytes")
    compute_checksum: bool = Field(True, description="Compute SHA-256 checksum of the upload")

    model_config = {"extra": "allow"}


class LoadedUpload(BaseModel):
    """A parsed upload with a little provenance."""

    path: str = Field(..., description="Key of the file in the archive bucket")
    payload: UploadPayload = Field(..., description="Parsed body")
    raw_size_bytes: int = Field(..., description="Size of the raw file")
    checksum: str | None = Field(None, description="SHA-256 of the raw file")


class UploadProcessor:
    """Reads an archived upload and parses it into an UploadPayload.

    Example:
        >>> processor = UploadProcessor(object_store)
        >>> upload = processor.load("archive-bucket", "records/20240115/abc.json")
        >>> len(upload.payload.records)
        42
    """

    name = "upload"

    def __init__(
        self,
        store: ObjectStore,
        config: UploadProcessorConfig | dict[str, Any] | None = None,
    ):
        self.store = store

        if config is None:
            self.config = UploadProcessorConfig()
        elif isinstance(config, dict):
            self.config = UploadProcessorConfig(**config)
        else:
            self.config = config

    def load(self, bucket: str, path: str) -> LoadedUpload:
        """Read and parse an upload.

        Raises:
            LoadError: If the file is missing, too large or not a valid payload
        """
        try:
            raw_bytes = self.store.read(bucket, path)
        except StorageError as e:
            raise LoadError(str(e)) from e

        return self.parse(raw_bytes, path)

    def parse(self, raw_bytes: bytes, path: str = "<bytes>") -> LoadedUpload:
        """Parse raw upload bytes.

        Raises:
            LoadError: If the bytes are too large or not a valid payload
        """
        max_size = self.config.max_size_bytes
        if max_size is not None and len(raw_bytes) > max_size:
            raise LoadError(f"Upload is {len(raw_bytes)} bytes, limit is {max_size}")

        try:
            payload = UploadPayload.model_validate(orjson.loads(raw_bytes))
        except orjson.JSONDecodeError as e:
            raise LoadError(f"Invalid JSON: {e}") from e
        except ValidationError as e:
            raise LoadError(f"Invalid upload payload: {e}") from e

        checksum = hashlib.sha256(raw_bytes).hexdigest() if self.config.compute_checksum else None
        logger.debug("Parsed %s (%d bytes, sha256=%s)", path, len(raw_bytes), checksum)

        return LoadedUpload(
            path=path,
            payload=payload,
            raw_size_bytes=len(raw_bytes),
            checksum=checksum,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, store={self.store!r})"
