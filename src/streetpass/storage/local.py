"""Filesystem-backed stores."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterator

import orjson

from streetpass.core.errors import StorageError
from streetpass.storage.base import Document, DocumentStore, ObjectStore


def _safe_join(root: Path, *parts: str) -> Path:
    """Join path parts under root, refusing anything that escapes it."""
    path = root.joinpath(*parts).resolve()
    if not path.is_relative_to(root.resolve()):
        raise StorageError(f"Path escapes store root: {'/'.join(parts)}")
    return path


class LocalObjectStore(ObjectStore):
    """Buckets are directories under ``root``; keys are relative paths."""

    name = "local"

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, bucket: str, key: str) -> Path:
        return _safe_join(self.root, bucket, key)

    def read(self, bucket: str, key: str) -> bytes:
        try:
            return self.path_for(bucket, key).read_bytes()
        except OSError as e:
            raise StorageError(f"Cannot read {bucket}/{key}: {e}") from e

    def write(self, bucket: str, key: str, data: bytes) -> None:
        path = self.path_for(bucket, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Cannot write {bucket}/{key}: {e}") from e

    def copy(self, src_bucket: str, src_key: str, dst_bucket: str, dst_key: str) -> None:
        src = self.path_for(src_bucket, src_key)
        dst = self.path_for(dst_bucket, dst_key)
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dst)
        except OSError as e:
            raise StorageError(f"Cannot copy {src_bucket}/{src_key}: {e}") from e

    def delete(self, bucket: str, key: str) -> None:
        try:
            self.path_for(bucket, key).unlink()
        except OSError as e:
            raise StorageError(f"Cannot delete {bucket}/{key}: {e}") from e

    def exists(self, bucket: str, key: str) -> bool:
        return self.path_for(bucket, key).is_file()

    def __repr__(self) -> str:
        return f"LocalObjectStore(root={self.root})"


class JSONDocumentStore(DocumentStore):
    """One JSON file per document: ``<root>/<collection>/<doc_id>.json``.

    Writes go through a temporary file and ``os.replace`` so readers never
    see a partial document. Per-document locking is per process.
    """

    name = "json"

    def __init__(self, root: str | Path):
        super().__init__()
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, collection: str, doc_id: str) -> Path:
        if not doc_id or "/" in doc_id or doc_id.startswith("."):
            raise StorageError(f"Invalid document id: {doc_id!r}")
        return _safe_join(self.root, collection, f"{doc_id}.json")

    def get(self, collection: str, doc_id: str) -> Document | None:
        path = self.path_for(collection, doc_id)
        if not path.exists():
            return None
        try:
            return orjson.loads(path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            raise StorageError(f"Cannot read document {collection}/{doc_id}: {e}") from e

    def set(self, collection: str, doc_id: str, data: Document) -> None:
        path = self.path_for(collection, doc_id)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2))
            os.replace(tmp_name, path)
        except (OSError, TypeError) as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Cannot write document {collection}/{doc_id}: {e}") from e

    def list(self, collection: str) -> Iterator[tuple[str, Document]]:
        directory = _safe_join(self.root, collection)
        if not directory.is_dir():
            return
        for path in sorted(directory.glob("*.json")):
            document = self.get(collection, path.stem)
            if document is not None:
                yield path.stem, document

    def __repr__(self) -> str:
        return f"JSONDocumentStore(root={self.root})"
