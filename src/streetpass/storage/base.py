"""Object and document store interfaces."""

from __future__ import annotations

import threading
import weakref
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterator

Document = dict[str, Any]
Mutation = Callable[[Document | None], Document]


class ObjectStore(ABC):
    """Blob storage addressed by bucket and key."""

    name: str = "base_object_store"

    @abstractmethod
    def read(self, bucket: str, key: str) -> bytes:
        """Return an object's bytes.

        Raises:
            StorageError: If the object does not exist or cannot be read
        """

    @abstractmethod
    def write(self, bucket: str, key: str, data: bytes) -> None:
        """Create or replace an object."""

    @abstractmethod
    def copy(self, src_bucket: str, src_key: str, dst_bucket: str, dst_key: str) -> None:
        """Copy an object, possibly across buckets."""

    @abstractmethod
    def delete(self, bucket: str, key: str) -> None:
        """Delete an object."""

    @abstractmethod
    def exists(self, bucket: str, key: str) -> bool:
        """Check whether an object exists."""

    def move(self, src_bucket: str, src_key: str, dst_bucket: str, dst_key: str) -> None:
        """Copy then delete the source."""
        self.copy(src_bucket, src_key, dst_bucket, dst_key)
        self.delete(src_bucket, src_key)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class DocumentStore(ABC):
    """JSON documents grouped in collections.

    ``update`` is the only read-modify-write primitive and is atomic per
    document: concurrent updates to the same document are serialized, so
    no update is lost. A document's lock lives only while some update holds
    or waits on it.
    """

    name: str = "base_document_store"

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[tuple[str, str], threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Document | None:
        """Return a document, or None if it does not exist."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Create or replace a document."""

    @abstractmethod
    def list(self, collection: str) -> Iterator[tuple[str, Document]]:
        """Iterate over ``(doc_id, document)`` pairs in a collection."""

    def lock_for(self, collection: str, doc_id: str) -> threading.Lock:
        """The lock guarding one document."""
        with self._locks_guard:
            return self._locks.setdefault((collection, doc_id), threading.Lock())

    def update(self, collection: str, doc_id: str, mutate: Mutation) -> Document:
        """Atomically replace a document with ``mutate(current)``.

        Args:
            collection: Collection name
            doc_id: Document identifier
            mutate: Receives the current document (or None) and returns the new one

        Returns:
            The document as written
        """
        with self.lock_for(collection, doc_id):
            document = mutate(self.get(collection, doc_id))
            self.set(collection, doc_id, document)
            return document

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
