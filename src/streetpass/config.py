"""Runtime settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import orjson
from pydantic import BaseModel, Field

from streetpass.core.aggregator import DEFAULT_CONTACT_GAP_SECONDS, MergePolicy

ENV_PREFIX = "STREETPASS_"


class Settings(BaseModel):
    """Everything needed to wire up a pipeline.

    Values come from a JSON file and can be overridden by ``STREETPASS_<FIELD>``
    environment variables (e.g. ``STREETPASS_MERGE_POLICY=latest_by_contact``).
    List fields take comma-separated values in the environment.
    """

    storage_root: Path = Field(Path("./streetpass-data"), description="Root for local stores")
    upload_bucket: str = Field("uploads", description="Bucket that receives uploads")
    archive_bucket: str = Field("archive", description="Bucket holding archived uploads")
    records_dir: str = Field("records", description="Folder of record files within buckets")
    upload_extension: str = Field(".json", description="Extension of record files")
    contacts_collection: str = Field("contacts", description="Collection of contact documents")
    upload_log_collection: str = Field("uploadLogs", description="Collection of upload logs")
    utc_offset: float = Field(0.0, description="UTC offset in hours for rendered dates")
    encryption_keys: list[str] = Field(
        default_factory=list, description="Base64 AES-256 keys, current key first"
    )
    enforce_valid_to: bool = Field(False, description="Also reject records after validTo")
    contact_gap_seconds: float = Field(
        DEFAULT_CONTACT_GAP_SECONDS, gt=0, description="Gap that splits encounters"
    )
    merge_policy: MergePolicy = Field(MergePolicy.APPEND, description="Stored summary merge")
    validate_token_timestamp: bool = Field(True, description="Reject expired upload tokens")
    forwarder: str = Field("contacts", description="Registered forwarder name")
    forwarder_options: dict[str, Any] = Field(
        default_factory=dict, description="Extra keyword arguments for the forwarder"
    )
    max_upload_bytes: int | None = Field(None, description="Reject larger uploads")

    @classmethod
    def from_file(cls, path: str | Path | None = None, environ: dict[str, str] | None = None) -> Settings:
        """Load settings from an optional JSON file, then apply environment overrides."""
        data: dict[str, Any] = {}
        if path is not None:
            data = orjson.loads(Path(path).read_bytes())
        data.update(cls._from_environ(os.environ if environ is None else environ))
        return cls.model_validate(data)

    @classmethod
    def _from_environ(cls, environ: Any) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for name in cls.model_fields:
            value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is None:
                continue
            if name == "encryption_keys":
                overrides[name] = [part.strip() for part in value.split(",") if part.strip()]
            elif name == "forwarder_options":
                overrides[name] = orjson.loads(value)
            else:
                overrides[name] = value
        return overrides
