"""Tests for ContactAggregator."""

from __future__ import annotations

import pytest

from streetpass.core.aggregator import ContactAggregator, MergePolicy
from streetpass.core.records import ContactSummary, ValidatedRecord

T0 = 1705300000


def record(contact_id: str, timestamp: float, **extra) -> ValidatedRecord:
    return ValidatedRecord(
        msg="blob", timestamp=timestamp, contact_id=contact_id, is_valid=True, **extra
    )


def prior_summary(contact_id: str, contact_time: float = 120) -> ContactSummary:
    return ContactSummary(
        msg="old", timestamp=T0 - 86400, contact_id=contact_id, is_valid=True, contact_time=contact_time
    )


class TestSummarize:
    """Tests for per-contact reduction."""

    def test_contiguous_sightings_accumulate(self) -> None:
        """Gaps under 600s add up."""
        summaries = ContactAggregator().summarize(
            [record("a", T0), record("a", T0 + 300), record("a", T0 + 500)]
        )

        assert len(summaries) == 1
        assert summaries[0].contact_time == 500

    def test_long_gaps_excluded(self) -> None:
        """Gaps of 600s or more are separate encounters."""
        summaries = ContactAggregator().summarize(
            [record("a", T0), record("a", T0 + 600), record("a", T0 + 700), record("a", T0 + 2000)]
        )

        assert summaries[0].contact_time == 100

    def test_just_under_threshold_counts(self) -> None:
        """A 599s gap is still contiguous."""
        summaries = ContactAggregator().summarize([record("a", T0), record("a", T0 + 599)])
        assert summaries[0].contact_time == 599

    def test_single_record_has_zero_contact_time(self) -> None:
        """One sighting means no measurable exposure."""
        summaries = ContactAggregator().summarize([record("a", T0)])
        assert summaries[0].contact_time == 0

    def test_duplicate_timestamps_ignored(self) -> None:
        """Zero deltas contribute nothing."""
        summaries = ContactAggregator().summarize(
            [record("a", T0), record("a", T0), record("a", T0 + 10)]
        )
        assert summaries[0].contact_time == 10

    def test_unsorted_input(self) -> None:
        """Sightings are sorted before deltas are taken."""
        summaries = ContactAggregator().summarize(
            [record("a", T0 + 400), record("a", T0), record("a", T0 + 200)]
        )
        assert summaries[0].contact_time == 400

    def test_summary_is_earliest_record(self) -> None:
        """The earliest sighting's fields are kept."""
        summaries = ContactAggregator().summarize(
            [record("a", T0 + 100, rssi=-80), record("a", T0, rssi=-40)]
        )

        summary = summaries[0]
        assert summary.timestamp == T0
        assert summary.to_dict()["rssi"] == -40
        assert summary.to_dict()["contactTime"] == 100

    def test_one_summary_per_contact(self) -> None:
        """Records are grouped by contactId."""
        summaries = ContactAggregator().summarize(
            [record("a", T0), record("b", T0 + 10), record("a", T0 + 60), record("b", T0 + 20)]
        )

        by_contact = {s.contact_id: s.contact_time for s in summaries}
        assert by_contact == {"a": 60, "b": 10}

    def test_first_seen_order(self) -> None:
        """Without validity starts, groups follow upload order."""
        summaries = ContactAggregator().summarize(
            [record("b", T0), record("a", T0), record("c", T0), record("a", T0 + 1)]
        )
        assert [s.contact_id for s in summaries] == ["b", "a", "c"]

    def test_newest_identities_first(self) -> None:
        """Groups are ordered by validity start, newest first."""
        summaries = ContactAggregator().summarize(
            [
                record("old", T0, contact_id_valid_from=T0 - 900),
                record("new", T0, contact_id_valid_from=T0),
            ]
        )
        assert [s.contact_id for s in summaries] == ["new", "old"]

    def test_empty_batch(self) -> None:
        """No records, no summaries."""
        assert ContactAggregator().summarize([]) == []

    def test_custom_gap(self) -> None:
        """The encounter gap is configurable."""
        aggregator = ContactAggregator({"contact_gap_seconds": 60})
        summaries = aggregator.summarize([record("a", T0), record("a", T0 + 59), record("a", T0 + 200)])
        assert summaries[0].contact_time == 59


class TestAggregate:
    """Tests for merging with stored summaries."""

    def test_prior_appended_unchanged(self) -> None:
        """Prior summaries follow the new ones, untouched and not deduplicated."""
        prior = [prior_summary("a"), prior_summary("z")]

        result = ContactAggregator().aggregate([record("a", T0), record("a", T0 + 30)], prior)

        assert len(result) == 3
        assert result[0].contact_time == 30
        assert result[1:] == prior

    def test_empty_batch_keeps_prior(self) -> None:
        """An empty batch still returns the prior summaries."""
        prior = [prior_summary("a")]
        assert ContactAggregator().aggregate([], prior) == prior

    def test_latest_by_contact(self) -> None:
        """The newest summary for a contact replaces stored ones."""
        prior = [prior_summary("a"), prior_summary("z")]

        result = ContactAggregator().aggregate(
            [record("a", T0)], prior, policy=MergePolicy.LATEST_BY_CONTACT
        )

        assert [(s.contact_id, s.msg) for s in result] == [("a", "blob"), ("z", "old")]

    def test_overwrite(self) -> None:
        """OVERWRITE drops prior summaries."""
        result = ContactAggregator().aggregate(
            [record("a", T0)], [prior_summary("z")], policy=MergePolicy.OVERWRITE
        )
        assert [s.contact_id for s in result] == ["a"]

    def test_policy_from_config(self) -> None:
        """The configured policy applies when none is passed."""
        aggregator = ContactAggregator({"merge_policy": "overwrite"})
        assert aggregator.aggregate([], [prior_summary("z")]) == []

    def test_contact_time_never_negative(self) -> None:
        """ContactSummary rejects negative contact time."""
        with pytest.raises(ValueError):
            ContactSummary(timestamp=T0, contact_time=-1)
