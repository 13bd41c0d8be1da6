"""Per-record validation: decryption fallback and temporal plausibility."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pydantic import BaseModel, Field

from streetpass.core.errors import DecryptionError
from streetpass.core.records import InvalidReason, RawRecord, ValidatedRecord
from streetpass.crypto import Decryptor, TempIdDecryptor
from streetpass.timefmt import format_timestamp

logger = logging.getLogger(__name__)


class RecordValidatorConfig(BaseModel):
    """Configuration for record validation."""

    enforce_valid_to: bool = Field(
        False, description="Reject records observed after the identity's validity end"
    )
    utc_offset: float = Field(0.0, description="UTC offset in hours for timestampString")

    model_config = {"extra": "allow"}


class RecordValidator:
    """Classifies beacon records as valid or invalid.

    Each record's ``msg`` is decrypted with every candidate key in order,
    stopping at the first that succeeds. The observation must not precede
    the decrypted identity's validity start; when ``enforce_valid_to`` is
    set it must not follow the validity end either.

    Records that cannot be decrypted with any key keep the raw blob as their
    ``contactId`` so they can still be traced downstream.

    Example:
        >>> validator = RecordValidator()
        >>> checked = validator.validate(RawRecord(msg=blob, timestamp=1700000000), keys)
        >>> checked.is_valid, checked.invalid_reason
        (True, None)
    """

    name = "record"

    def __init__(
        self,
        decryptor: Decryptor | None = None,
        config: RecordValidatorConfig | dict[str, Any] | None = None,
    ):
        """Initialize the record validator.

        Args:
            decryptor: Temp ID decryptor (defaults to AES-GCM envelopes)
            config: Validator configuration
        """
        self.decryptor = decryptor or TempIdDecryptor()

        if config is None:
            self.config = RecordValidatorConfig()
        elif isinstance(config, dict):
            self.config = RecordValidatorConfig(**config)
        else:
            self.config = config

    def validate(self, record: RawRecord, keys: Iterable[bytes]) -> ValidatedRecord:
        """Validate one record against the candidate keys.

        Args:
            record: The record as uploaded
            keys: Decryption keys, tried in order

        Returns:
            A new ValidatedRecord; the input is not modified
        """
        timestamp = record.timestamp_seconds
        derived: dict[str, Any] = {
            "timestamp": timestamp,
            "timestamp_string": format_timestamp(timestamp, self.config.utc_offset),
            "is_valid": False,
        }

        if not record.msg:
            derived["invalid_reason"] = InvalidReason.NO_MSG
            return ValidatedRecord.from_raw(record, **derived)

        for key in keys:
            try:
                decrypted = self.decryptor.decrypt(record.msg, key)
            except DecryptionError as e:
                logger.warning("Error while decrypting temp ID: %s", e)
                continue

            derived["contact_id"] = decrypted.uid
            derived["contact_id_valid_from"] = decrypted.start_time
            derived["contact_id_valid_to"] = decrypted.expiry_time

            if self._outside_validity(timestamp, decrypted.start_time, decrypted.expiry_time):
                logger.warning(
                    "ID timestamp is not valid. ID startTime: %s, ID expiryTime: %s, timestamp: %s",
                    format_timestamp(decrypted.start_time, self.config.utc_offset),
                    format_timestamp(decrypted.expiry_time, self.config.utc_offset),
                    derived["timestamp_string"],
                )
                derived["invalid_reason"] = InvalidReason.EXPIRED_ID
            else:
                derived["is_valid"] = True
                derived["invalid_reason"] = None
            return ValidatedRecord.from_raw(record, **derived)

        # Every key failed
        derived["contact_id"] = record.msg
        derived["invalid_reason"] = InvalidReason.FAILED_DECRYPTION
        return ValidatedRecord.from_raw(record, **derived)

    def validate_batch(
        self, records: Iterable[RawRecord], keys: Iterable[bytes]
    ) -> list[ValidatedRecord]:
        """Validate many records. Invalid records never abort the batch."""
        key_list = list(keys)
        return [self.validate(record, key_list) for record in records]

    def _outside_validity(self, timestamp: float, valid_from: int, valid_to: int) -> bool:
        if timestamp < valid_from:
            return True
        return self.config.enforce_valid_to and timestamp > valid_to

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(decryptor={self.decryptor!r})"
