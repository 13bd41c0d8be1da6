"""Shared constants and sealing helper for streetpass tests."""

from __future__ import annotations

import base64
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

# 2024-01-15 12:00:00 UTC
NOW = 1705320000.0

UID_ALICE = "alice".ljust(21, "0")
UID_BOB = "bob".ljust(21, "0")
UID_UPLOADER = "uploader".ljust(21, "0")


def seal(plain: bytes, key: bytes) -> str:
    """Encrypt into the IV | ciphertext | tag envelope."""
    iv = os.urandom(16)
    return base64.b64encode(iv + AESGCM(key).encrypt(iv, plain, None)).decode()
