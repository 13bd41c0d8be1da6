"""Beacon record models, from raw upload to aggregated contact summary."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Epoch values above this are in milliseconds
MILLISECOND_THRESHOLD = 10_000_000_000


class InvalidReason(str, Enum):
    """Why a record failed validation."""

    NO_MSG = "no_msg"
    EXPIRED_ID = "expired_id"
    FAILED_DECRYPTION = "failed_decryption"


class WireModel(BaseModel):
    """Base for models exchanged with clients and stores (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RawRecord(WireModel):
    """One beacon observation as uploaded. Unknown fields are passed through."""

    msg: str | None = Field(None, description="Encrypted rotating identifier")
    timestamp: float = Field(..., description="Observation time, epoch seconds or milliseconds")

    @property
    def timestamp_seconds(self) -> float:
        """Observation time normalised to epoch seconds."""
        if self.timestamp > MILLISECOND_THRESHOLD:
            return self.timestamp / 1000
        return self.timestamp


class ValidatedRecord(RawRecord):
    """A raw record plus the fields derived by the record validator."""

    contact_id: str | None = Field(None, description="Decrypted identity, or the raw blob")
    contact_id_valid_from: int | None = Field(None, description="Identity validity start")
    contact_id_valid_to: int | None = Field(None, description="Identity validity end")
    is_valid: bool = Field(False, description="Whether the record passed validation")
    invalid_reason: InvalidReason | None = Field(None, description="Why validation failed")
    timestamp_string: str | None = Field(None, description="Human-readable timestamp")

    @classmethod
    def from_raw(cls, record: RawRecord, **derived: Any) -> ValidatedRecord:
        """Build from a raw record, letting derived fields win over client-supplied ones.

        Unknown fields pass through, except ones that name a derived field:
        those are dropped so an upload cannot preset its own validation result.
        """
        extra = record.model_extra or {}
        data = {
            key: value
            for key, value in record.model_dump(by_alias=True).items()
            if key not in extra or key not in DERIVED_KEYS
        }
        for name, value in derived.items():
            data[cls.model_fields[name].alias or name] = value
        return cls.model_validate(data)


class ContactSummary(ValidatedRecord):
    """Earliest record for one contact within a batch, with accumulated exposure."""

    contact_time: float = Field(0, ge=0, description="Accumulated seconds of exposure")


# Field names and wire aliases filled in by validation and aggregation
DERIVED_KEYS = frozenset(
    key
    for name, field in ContactSummary.model_fields.items()
    if name not in RawRecord.model_fields
    for key in (name, field.alias)
    if key
)


class UploadPayload(BaseModel):
    """Body of an uploaded records file."""

    token: str | None = Field(None, description="Upload token")
    records: list[RawRecord] = Field(default_factory=list, description="Beacon records")
    events: list[dict[str, Any]] = Field(default_factory=list, description="Heartbeat events")

    model_config = {"extra": "allow"}
