"""Exposure query over stored contact summaries."""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Callable

from pydantic import BaseModel, Field

from streetpass.core.records import ContactSummary
from streetpass.core.result import PipelineStatus
from streetpass.forwarders.contacts import DEFAULT_COLLECTION, ContactStoreForwarder
from streetpass.storage.base import DocumentStore
from streetpass.timefmt import parse_duration


class ExposureQueryConfig(BaseModel):
    """Thresholds for reporting an exposure."""

    min_contact: timedelta = Field(
        timedelta(minutes=15), description="Minimum accumulated contact time"
    )
    max_age: timedelta = Field(
        timedelta(days=15), description="Maximum age of the contact's identity window"
    )


class ExposureReport(BaseModel):
    """Summaries in which an identity was seen long enough, recently enough."""

    status: PipelineStatus = Field(PipelineStatus.SUCCESS, description="Query status")
    records: list[ContactSummary] = Field(default_factory=list, description="Matching summaries")

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "records": [record.to_dict() for record in self.records],
        }


def find_exposures(
    store: DocumentStore,
    uid: str,
    config: ExposureQueryConfig | dict[str, Any] | None = None,
    collection: str = DEFAULT_COLLECTION,
    clock: Callable[[], float] = time.time,
) -> ExposureReport:
    """Find every stored summary in which ``uid`` was the contact.

    A summary matches when it is valid, its ``contactId`` is ``uid``, its
    ``contactTime`` is at least ``min_contact`` and its ``contactIdValidTo``
    lies no more than ``max_age`` before now.

    Args:
        store: Document store holding the per-uploader contact documents
        uid: Identity to look up
        config: Thresholds (durations accept strings such as ``"15m"``)
        collection: Contacts collection
        clock: Returns the current epoch time
    """
    if config is None:
        config = ExposureQueryConfig()
    elif isinstance(config, dict):
        config = ExposureQueryConfig(
            **{key: parse_duration(value) for key, value in config.items()}
        )

    min_contact = config.min_contact.total_seconds()
    max_age = config.max_age.total_seconds()
    now = clock()

    matches = []
    for _, document in store.list(collection):
        for summary in ContactStoreForwarder.prior_summaries(document):
            if not summary.is_valid or summary.contact_id != uid:
                continue
            if summary.contact_time < min_contact:
                continue
            if summary.contact_id_valid_to is None or now - summary.contact_id_valid_to > max_age:
                continue
            matches.append(summary)

    return ExposureReport(records=matches)
