"""Default forwarder: per-identity contact documents in the document store."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from streetpass.core.aggregator import ContactAggregator, MergePolicy
from streetpass.core.errors import ForwardError, StorageError
from streetpass.core.records import ContactSummary
from streetpass.forwarders.base import DataForwarder
from streetpass.storage.base import Document, DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "contacts"


class ContactStoreForwarder(DataForwarder):
    """Merges summaries into the uploader's ``{records: [...]}`` document.

    The prior summaries are read, merged according to ``merge_policy`` and
    written back inside a single ``DocumentStore.update`` call, so concurrent
    uploads for the same identity cannot overwrite each other.
    """

    name = "contacts"

    def __init__(
        self,
        store: DocumentStore,
        collection: str = DEFAULT_COLLECTION,
        merge_policy: MergePolicy = MergePolicy.APPEND,
        aggregator: ContactAggregator | None = None,
    ):
        self.store = store
        self.collection = collection
        self.merge_policy = merge_policy
        self.aggregator = aggregator or ContactAggregator()

    def forward(
        self,
        file_path: str,
        uid: str,
        upload_code: str,
        records: list[ContactSummary],
        events: list[dict[str, Any]],
    ) -> None:
        def merge_into(current: Document | None) -> Document:
            prior = self.prior_summaries(current)
            merged = self.aggregator.merge(records, prior, self.merge_policy)
            return {**(current or {}), "records": [summary.to_dict() for summary in merged]}

        try:
            document = self.store.update(self.collection, uid, merge_into)
        except (StorageError, ValidationError) as e:
            raise ForwardError(f"Cannot store contacts for {uid}: {e}") from e

        logger.info(
            "Contacts for %s stored from %s: %d new, %d total",
            uid,
            file_path,
            len(records),
            len(document["records"]),
        )

    @staticmethod
    def prior_summaries(document: Document | None) -> list[ContactSummary]:
        if not document:
            return []
        return [ContactSummary.model_validate(item) for item in document.get("records", [])]

    def __repr__(self) -> str:
        return (
            f"ContactStoreForwarder(collection={self.collection!r}, "
            f"merge_policy={self.merge_policy.value})"
        )
