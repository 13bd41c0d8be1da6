"""Tests for data forwarders."""

from __future__ import annotations

import gzip
import threading
from pathlib import Path

import orjson
import pytest

from streetpass.core.aggregator import MergePolicy
from streetpass.core.errors import ForwardError, StorageError
from streetpass.core.records import ContactSummary
from streetpass.forwarders import (
    ContactStoreForwarder,
    JSONLinesForwarder,
    create_forwarder,
)
from streetpass.storage import MemoryDocumentStore

from helpers import UID_UPLOADER as UID


def summary(contact_id: str, timestamp: float = 1000, contact_time: float = 0) -> ContactSummary:
    return ContactSummary(
        msg="blob", timestamp=timestamp, contact_id=contact_id, is_valid=True, contact_time=contact_time
    )


class TestContactStoreForwarder:
    """Tests for the default forwarder."""

    def test_first_upload_creates_document(self, document_store: MemoryDocumentStore) -> None:
        forwarder = ContactStoreForwarder(document_store)

        forwarder.forward("records/a.json", UID, "C", [summary("x", contact_time=60)], [])

        document = document_store.get("contacts", UID)
        assert document["records"][0]["contactId"] == "x"
        assert document["records"][0]["contactTime"] == 60

    def test_append_keeps_prior(self, document_store: MemoryDocumentStore) -> None:
        """APPEND puts new summaries first and keeps the stored ones unchanged."""
        forwarder = ContactStoreForwarder(document_store)
        forwarder.forward("records/a.json", UID, "C", [summary("x", 1000)], [])
        forwarder.forward("records/b.json", UID, "C", [summary("x", 2000)], [])

        stored = ContactStoreForwarder.prior_summaries(document_store.get("contacts", UID))
        assert [(s.contact_id, s.timestamp) for s in stored] == [("x", 2000), ("x", 1000)]

    def test_latest_by_contact(self, document_store: MemoryDocumentStore) -> None:
        forwarder = ContactStoreForwarder(document_store, merge_policy=MergePolicy.LATEST_BY_CONTACT)
        forwarder.forward("records/a.json", UID, "C", [summary("x", 1000), summary("y", 1000)], [])
        forwarder.forward("records/b.json", UID, "C", [summary("x", 2000)], [])

        stored = ContactStoreForwarder.prior_summaries(document_store.get("contacts", UID))
        assert [(s.contact_id, s.timestamp) for s in stored] == [("x", 2000), ("y", 1000)]

    def test_overwrite(self, document_store: MemoryDocumentStore) -> None:
        forwarder = ContactStoreForwarder(document_store, merge_policy=MergePolicy.OVERWRITE)
        forwarder.forward("records/a.json", UID, "C", [summary("x")], [])
        forwarder.forward("records/b.json", UID, "C", [summary("y")], [])

        stored = ContactStoreForwarder.prior_summaries(document_store.get("contacts", UID))
        assert [s.contact_id for s in stored] == ["y"]

    def test_documents_are_per_uploader(self, document_store: MemoryDocumentStore) -> None:
        forwarder = ContactStoreForwarder(document_store)
        forwarder.forward("records/a.json", "u1", "C", [summary("x")], [])
        forwarder.forward("records/b.json", "u2", "C", [summary("y")], [])

        assert len(document_store.get("contacts", "u1")["records"]) == 1
        assert len(document_store.get("contacts", "u2")["records"]) == 1

    def test_concurrent_uploads_for_same_identity(self, document_store: MemoryDocumentStore) -> None:
        """Parallel runs for one identity never drop each other's summaries."""
        forwarder = ContactStoreForwarder(document_store)

        def run(n: int) -> None:
            forwarder.forward(f"records/{n}.json", UID, "C", [summary(f"c{n}")], [])

        threads = [threading.Thread(target=run, args=(n,)) for n in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        stored = ContactStoreForwarder.prior_summaries(document_store.get("contacts", UID))
        assert sorted(s.contact_id for s in stored) == sorted(f"c{n}" for n in range(20))

    def test_store_failure_raises_forward_error(self) -> None:
        class DownStore(MemoryDocumentStore):
            def set(self, collection, doc_id, data):
                raise StorageError("unavailable")

        with pytest.raises(ForwardError, match="unavailable"):
            ContactStoreForwarder(DownStore()).forward("records/a.json", UID, "C", [summary("x")], [])

    def test_corrupt_prior_raises_forward_error(self, document_store: MemoryDocumentStore) -> None:
        document_store.set("contacts", UID, {"records": [{"id": 1, "msg": "no timestamp"}]})

        with pytest.raises(ForwardError):
            ContactStoreForwarder(document_store).forward("records/a.json", UID, "C", [summary("x")], [])


class TestJSONLinesForwarder:
    """Tests for the JSON Lines export."""

    def test_lines_appended(self, tmp_path: Path) -> None:
        forwarder = JSONLinesForwarder(tmp_path / "out" / "contacts.jsonl")

        forwarder.forward("records/a.json", UID, "C1", [summary("x"), summary("y")], [])
        forwarder.forward("records/b.json", UID, "C2", [summary("z")], [])

        lines = [orjson.loads(line) for line in (tmp_path / "out" / "contacts.jsonl").read_bytes().splitlines()]
        assert [line["contactId"] for line in lines] == ["x", "y", "z"]
        assert lines[0]["uid"] == UID
        assert lines[2]["uploadCode"] == "C2"
        assert lines[2]["filePath"] == "records/b.json"

    def test_compressed(self, tmp_path: Path) -> None:
        forwarder = JSONLinesForwarder(tmp_path / "contacts.jsonl", compress=True)

        forwarder.forward("records/a.json", UID, "C", [summary("x")], [])

        with gzip.open(tmp_path / "contacts.jsonl.gz", "rb") as f:
            assert orjson.loads(f.readline())["contactId"] == "x"

    def test_empty_batch_writes_nothing(self, tmp_path: Path) -> None:
        JSONLinesForwarder(tmp_path / "contacts.jsonl").forward("records/a.json", UID, "C", [], [])
        assert not (tmp_path / "contacts.jsonl").exists()


class TestRegistry:
    """Tests for selecting forwarders by name."""

    def test_create_by_name(self, document_store: MemoryDocumentStore, tmp_path: Path) -> None:
        assert isinstance(create_forwarder("contacts", store=document_store), ContactStoreForwarder)
        assert isinstance(create_forwarder("jsonl", path=tmp_path / "x.jsonl"), JSONLinesForwarder)

    def test_unknown_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown forwarder"):
            create_forwarder("carrier-pigeon")
