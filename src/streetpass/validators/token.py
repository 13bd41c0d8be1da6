"""Upload token validation."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Callable

import orjson
from pydantic import BaseModel, Field, ValidationError

from streetpass.core.errors import DecryptionError, TokenError
from streetpass.crypto import KeyRing, decrypt_envelope


class UploadToken(BaseModel):
    """Identity and upload code carried by a valid upload token."""

    uid: str = Field(..., description="Identity of the uploading device")
    upload_code: str = Field("", alias="uploadCode", description="Code shown to the uploader")
    valid_to: float | None = Field(None, alias="validTo", description="Expiry, epoch seconds")

    model_config = {"populate_by_name": True}


class TokenValidator(ABC):
    """Resolves an upload token to the uploader's identity."""

    name: str = "base_token_validator"

    @abstractmethod
    def validate(self, token: str | None, enforce_timestamp_check: bool = True) -> UploadToken:
        """Validate an upload token.

        Args:
            token: The token from the upload payload
            enforce_timestamp_check: Reject expired tokens; disabled for replays

        Raises:
            TokenError: If the token is missing, malformed or expired
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class EncryptedTokenValidator(TokenValidator):
    """Validates tokens sealed in the AES-256-GCM envelope.

    The plaintext is JSON ``{"uid": ..., "uploadCode": ..., "validTo": ...}``.
    """

    name = "aes_gcm_token"

    def __init__(self, keys: KeyRing, clock: Callable[[], float] = time.time):
        self.keys = keys
        self.clock = clock

    def validate(self, token: str | None, enforce_timestamp_check: bool = True) -> UploadToken:
        if not token:
            raise TokenError("Upload token is missing")

        try:
            plain = decrypt_envelope(token, self.keys.current)
            upload_token = UploadToken.model_validate(orjson.loads(plain))
        except DecryptionError as e:
            raise TokenError(f"Upload token is invalid: {e}") from e
        except (orjson.JSONDecodeError, ValidationError) as e:
            raise TokenError(f"Upload token is malformed: {e}") from e

        if enforce_timestamp_check:
            if upload_token.valid_to is None or upload_token.valid_to < self.clock():
                raise TokenError("Upload token has expired")

        return upload_token
