"""Validators for upload tokens and beacon records."""

from streetpass.validators.record import RecordValidator
from streetpass.validators.token import EncryptedTokenValidator, TokenValidator, UploadToken

__all__ = [
    "RecordValidator",
    "TokenValidator",
    "EncryptedTokenValidator",
    "UploadToken",
]
