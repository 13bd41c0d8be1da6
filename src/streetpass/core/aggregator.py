"""Per-contact exposure aggregation."""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, Field

from streetpass.core.records import ContactSummary, ValidatedRecord

DEFAULT_CONTACT_GAP_SECONDS = 600


class MergePolicy(str, Enum):
    """How a batch's summaries combine with the ones already stored."""

    APPEND = "append"  # New summaries first, prior ones kept unchanged
    LATEST_BY_CONTACT = "latest_by_contact"  # One summary per contactId, newest wins
    OVERWRITE = "overwrite"  # Prior summaries discarded


class AggregatorConfig(BaseModel):
    """Configuration for contact aggregation."""

    contact_gap_seconds: float = Field(
        DEFAULT_CONTACT_GAP_SECONDS,
        gt=0,
        description="Consecutive sightings this far apart or more are separate encounters",
    )
    merge_policy: MergePolicy = Field(MergePolicy.APPEND, description="Merge with stored summaries")


class ContactAggregator:
    """Reduces validated records to one exposure summary per contact.

    Records are grouped by ``contactId`` in the order identities are first
    seen once the batch is sorted by validity start, newest first. Within a group,
    sightings are sorted by time and every positive gap shorter than
    ``contact_gap_seconds`` is added to ``contactTime``. The group's summary
    is its earliest record.

    Example:
        >>> aggregator = ContactAggregator()
        >>> summaries = aggregator.aggregate(validated, prior_summaries)
    """

    def __init__(self, config: AggregatorConfig | dict[str, Any] | None = None):
        if config is None:
            self.config = AggregatorConfig()
        elif isinstance(config, dict):
            self.config = AggregatorConfig(**config)
        else:
            self.config = config

    def summarize(self, records: Iterable[ValidatedRecord]) -> list[ContactSummary]:
        """Build one summary per distinct contactId in the batch."""
        groups: dict[str | None, list[ValidatedRecord]] = {}
        # Most recently issued identities first
        batch = sorted(records, key=lambda r: r.contact_id_valid_from or 0, reverse=True)
        for record in batch:
            groups.setdefault(record.contact_id, []).append(record)

        summaries = []
        for group in groups.values():
            # sorted() is stable, so ties keep upload order
            ordered = sorted(group, key=lambda r: r.timestamp)
            summaries.append(
                ContactSummary.from_raw(ordered[0], contact_time=self.contact_time(ordered))
            )
        return summaries

    def contact_time(self, ordered: list[ValidatedRecord]) -> float:
        """Sum of consecutive positive gaps under the contact gap threshold."""
        total = 0.0
        for previous, current in zip(ordered, ordered[1:]):
            delta = current.timestamp - previous.timestamp
            if 0 < delta < self.config.contact_gap_seconds:
                total += delta
        return total

    def merge(
        self,
        new: list[ContactSummary],
        prior: list[ContactSummary],
        policy: MergePolicy | None = None,
    ) -> list[ContactSummary]:
        """Combine a batch's summaries with previously stored ones."""
        policy = policy or self.config.merge_policy

        if policy == MergePolicy.OVERWRITE:
            return list(new)
        if policy == MergePolicy.LATEST_BY_CONTACT:
            seen = {summary.contact_id for summary in new}
            return list(new) + [summary for summary in prior if summary.contact_id not in seen]
        return list(new) + list(prior)

    def aggregate(
        self,
        records: Iterable[ValidatedRecord],
        prior: list[ContactSummary] | None = None,
        policy: MergePolicy | None = None,
    ) -> list[ContactSummary]:
        """Summarize a batch and merge it with prior summaries."""
        return self.merge(self.summarize(records), prior or [], policy)

    def __repr__(self) -> str:
        return f"ContactAggregator(config={self.config})"
