"""In-memory stores for tests and local experiments."""

from __future__ import annotations

import copy
from typing import Iterator

from streetpass.core.errors import StorageError
from streetpass.storage.base import Document, DocumentStore, ObjectStore


class MemoryObjectStore(ObjectStore):
    """Objects held in a dict keyed by ``(bucket, key)``."""

    name = "memory"

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}

    def read(self, bucket: str, key: str) -> bytes:
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise StorageError(f"No such object: {bucket}/{key}") from None

    def write(self, bucket: str, key: str, data: bytes) -> None:
        self.objects[(bucket, key)] = bytes(data)

    def copy(self, src_bucket: str, src_key: str, dst_bucket: str, dst_key: str) -> None:
        self.write(dst_bucket, dst_key, self.read(src_bucket, src_key))

    def delete(self, bucket: str, key: str) -> None:
        if self.objects.pop((bucket, key), None) is None:
            raise StorageError(f"No such object: {bucket}/{key}")

    def exists(self, bucket: str, key: str) -> bool:
        return (bucket, key) in self.objects


class MemoryDocumentStore(DocumentStore):
    """Documents held in nested dicts. Reads and writes deep-copy."""

    name = "memory"

    def __init__(self) -> None:
        super().__init__()
        self.collections: dict[str, dict[str, Document]] = {}

    def get(self, collection: str, doc_id: str) -> Document | None:
        document = self.collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    def set(self, collection: str, doc_id: str, data: Document) -> None:
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def list(self, collection: str) -> Iterator[tuple[str, Document]]:
        for doc_id, document in list(self.collections.get(collection, {}).items()):
            yield doc_id, copy.deepcopy(document)
