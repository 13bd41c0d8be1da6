"""Decryption of rotating contact identifiers.

Identifiers and upload tokens share one envelope format::

    base64( IV (16 bytes) | AES-256-GCM ciphertext | auth tag (16 bytes) )

A temp ID's plaintext is the 21-byte identity followed by its validity
start and expiry as big-endian unsigned 32-bit epoch seconds.
"""

from __future__ import annotations

import base64
import binascii
import struct
from abc import ABC, abstractmethod

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, Field

from streetpass.core.errors import DecryptionError

IV_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32
UID_LENGTH = 21
_VALIDITY = struct.Struct(">II")


class DecryptedId(BaseModel):
    """Identity recovered from a temp ID, with its validity window."""

    uid: str = Field(..., description="Identity of the broadcasting device")
    start_time: int = Field(..., description="Start of validity, epoch seconds")
    expiry_time: int = Field(..., description="End of validity, epoch seconds")


def decrypt_envelope(blob: str, key: bytes) -> bytes:
    """Decode and decrypt an envelope, returning the plaintext bytes.

    Raises:
        DecryptionError: On bad encoding, wrong key or tampered data
    """
    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionError(f"Invalid base64 payload: {e}") from e

    if len(raw) <= IV_LENGTH + TAG_LENGTH:
        raise DecryptionError(f"Payload too short: {len(raw)} bytes")

    iv, sealed = raw[:IV_LENGTH], raw[IV_LENGTH:]
    try:
        return AESGCM(key).decrypt(iv, sealed, None)
    except InvalidTag as e:
        raise DecryptionError("Authentication failed, wrong key or corrupted payload") from e
    except ValueError as e:
        raise DecryptionError(str(e)) from e


class Decryptor(ABC):
    """Turns an encrypted temp ID into a DecryptedId using one candidate key."""

    name: str = "base_decryptor"

    @abstractmethod
    def decrypt(self, blob: str, key: bytes) -> DecryptedId:
        """Decrypt a temp ID.

        Raises:
            DecryptionError: If the key does not open the blob
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class TempIdDecryptor(Decryptor):
    """Decrypts temp IDs in the AES-256-GCM envelope format."""

    name = "aes_gcm_temp_id"

    def decrypt(self, blob: str, key: bytes) -> DecryptedId:
        plain = decrypt_envelope(blob, key)
        if len(plain) != UID_LENGTH + _VALIDITY.size:
            raise DecryptionError(f"Unexpected temp ID length: {len(plain)} bytes")

        try:
            uid = plain[:UID_LENGTH].decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError(f"Temp ID identity is not UTF-8: {e}") from e

        start_time, expiry_time = _VALIDITY.unpack(plain[UID_LENGTH:])
        return DecryptedId(uid=uid, start_time=start_time, expiry_time=expiry_time)


class KeyRing:
    """Ordered decryption keys: current key first, then retired ones."""

    def __init__(self, keys: list[bytes]):
        for key in keys:
            if len(key) != KEY_LENGTH:
                raise ValueError(f"Encryption keys must be {KEY_LENGTH} bytes, got {len(key)}")
        self.keys = list(keys)

    @classmethod
    def from_base64(cls, encoded: list[str]) -> KeyRing:
        """Build from base64 strings.

        Raises:
            ValueError: If a key is not strict base64 or not 32 bytes long
        """
        keys = []
        for value in encoded:
            try:
                keys.append(base64.b64decode(value, validate=True))
            except binascii.Error as e:
                raise ValueError(f"Encryption key is not valid base64: {e}") from e
        return cls(keys)

    @property
    def current(self) -> bytes:
        if not self.keys:
            raise LookupError("Key ring is empty")
        return self.keys[0]

    def __iter__(self):
        return iter(self.keys)

    def __len__(self) -> int:
        return len(self.keys)

    def __repr__(self) -> str:
        return f"KeyRing(keys={len(self.keys)})"
