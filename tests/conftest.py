"""Pytest configuration and fixtures for streetpass tests."""

from __future__ import annotations

import struct
from typing import Any, Callable

import orjson
import pytest

from streetpass import clients
from streetpass.core.audit import AuditLogger
from streetpass.core.pipeline import UploadPipeline
from streetpass.core.router import UploadRouter
from streetpass.crypto import KeyRing
from streetpass.forwarders import ContactStoreForwarder
from streetpass.storage import MemoryDocumentStore, MemoryObjectStore
from streetpass.validators.token import EncryptedTokenValidator

from helpers import NOW, UID_UPLOADER, seal


@pytest.fixture(autouse=True)
def reset_clients():
    """Never leak process-wide clients between tests."""
    yield
    clients.shutdown()


@pytest.fixture
def key() -> bytes:
    """Current encryption key."""
    return bytes(range(32))


@pytest.fixture
def old_key() -> bytes:
    """Retired encryption key."""
    return bytes(range(100, 132))


@pytest.fixture
def keys(key: bytes, old_key: bytes) -> KeyRing:
    """Key ring with the current key first."""
    return KeyRing([key, old_key])


@pytest.fixture
def seal_with_key(key: bytes) -> Callable[[bytes], str]:
    """Seal arbitrary plaintext with the current key."""
    return lambda plain: seal(plain, key)


@pytest.fixture
def make_temp_id(key: bytes) -> Callable[..., str]:
    """Factory for encrypted temp IDs."""

    def factory(uid: str, start: int, expiry: int, with_key: bytes | None = None) -> str:
        plain = uid.encode() + struct.pack(">II", start, expiry)
        return seal(plain, with_key or key)

    return factory


@pytest.fixture
def make_token(key: bytes) -> Callable[..., str]:
    """Factory for upload tokens."""

    def factory(
        uid: str = UID_UPLOADER, upload_code: str = "ABC123", valid_to: float = NOW + 3600
    ) -> str:
        return seal(orjson.dumps({"uid": uid, "uploadCode": upload_code, "validTo": valid_to}), key)

    return factory


@pytest.fixture
def make_upload(make_token: Callable[..., str]) -> Callable[..., bytes]:
    """Factory for upload file bodies."""

    def factory(records: list[dict[str, Any]], token: str | None = None, **extra: Any) -> bytes:
        body = {"token": token if token is not None else make_token(), "records": records, "events": []}
        body.update(extra)
        return orjson.dumps(body)

    return factory


@pytest.fixture
def object_store() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture
def document_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def audit(document_store: MemoryDocumentStore) -> AuditLogger:
    return AuditLogger(document_store, clock=lambda: NOW)


@pytest.fixture
def pipeline(
    object_store: MemoryObjectStore,
    document_store: MemoryDocumentStore,
    audit: AuditLogger,
    keys: KeyRing,
) -> UploadPipeline:
    """Pipeline over in-memory stores with a fixed clock."""
    return UploadPipeline(
        objects=object_store,
        token_validator=EncryptedTokenValidator(keys, clock=lambda: NOW),
        keys=keys,
        forwarder=ContactStoreForwarder(document_store),
        audit=audit,
        router=UploadRouter(clock=lambda: NOW),
    )
