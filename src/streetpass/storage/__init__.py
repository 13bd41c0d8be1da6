"""Storage backends for uploaded files and documents."""

from streetpass.storage.base import DocumentStore, ObjectStore
from streetpass.storage.local import JSONDocumentStore, LocalObjectStore
from streetpass.storage.memory import MemoryDocumentStore, MemoryObjectStore

__all__ = [
    "ObjectStore",
    "DocumentStore",
    "LocalObjectStore",
    "JSONDocumentStore",
    "MemoryObjectStore",
    "MemoryDocumentStore",
]
