"""Tests for per-person, weekly and thread statistics."""

import math
from datetime import timedelta

import pytest

from ofw_analyzer.models import NEVER, PersonStats, ThreadStats
from ofw_analyzer.processing.stats import (
    accumulate_stats,
    enrich_thread_stats,
    finalize_person,
    read_latency_minutes,
    summarize_threads,
)


class TestReadLatency:
    """Usable read-time samples only."""

    def test_minutes(self, jan5):
        """Test latency is measured in minutes."""
        assert read_latency_minutes(jan5, jan5 + timedelta(minutes=15)) == 15

    def test_never(self, jan5):
        """Test unread recipients give no sample."""
        assert read_latency_minutes(jan5, NEVER) is None

    def test_negative_dropped(self, jan5):
        """Test a view before the send time gives no sample."""
        assert read_latency_minutes(jan5, jan5 - timedelta(minutes=1)) is None

    def test_malformed(self, jan5):
        """Test non-datetime values give no sample."""
        assert read_latency_minutes(jan5, "yesterday") is None
        assert read_latency_minutes(None, jan5) is None


class TestAccumulateStats:
    """Global and weekly per-person rollups."""

    def test_sender_and_reader_counts(self, make_message, jan5):
        """Test sent and read counters with latency."""
        msg = make_message(
            recipients={"B": jan5 + timedelta(minutes=15), "C": NEVER},
            sent=jan5,
            word_count=4,
            sentiment=2.0,
            tone=0.5,
        )
        result = accumulate_stats([msg])
        a, b, c = (result.totals[name] for name in ("A", "B", "C"))
        assert (a.messages_sent, a.total_words, a.avg_sentiment, a.tone) == (1, 4, 2.0, 0.5)
        assert (b.messages_read, b.total_read_time, b.average_read_time) == (1, 15, 15)
        assert (c.messages_sent, c.messages_read) == (0, 0)

    def test_negative_latency_counts_nothing(self, make_message, jan5):
        """Test a skewed view time adds neither a read nor read time."""
        msg = make_message(recipients={"B": jan5 - timedelta(hours=1)}, sent=jan5)
        b = accumulate_stats([msg]).totals["B"]
        assert b.messages_read == 0
        assert b.total_read_time == 0
        assert b.average_read_time == 0

    def test_placeholders_and_undated_skipped(self, make_message, jan5):
        """Test records that cannot be bucketed are left out."""
        messages = [
            make_message(sent=None),
            make_message(sender="OFW Report", recipients={}, non_message=True, sent=jan5),
            make_message(sent=jan5),
        ]
        result = accumulate_stats(messages)
        assert result.totals["A"].messages_sent == 1
        assert "OFW Report" not in result.totals

    def test_weeks_in_chronological_order(self, make_message, jan5):
        """Test weekly buckets are emitted by week start, not input order."""
        messages = [
            make_message(sent=jan5 + timedelta(days=14)),
            make_message(sent=jan5 - timedelta(days=7)),
            make_message(sent=jan5),
        ]
        weeks = list(accumulate_stats(messages).weekly)
        assert weeks == [
            "Dec 29 - Jan 04, 2025",
            "Jan 05 - Jan 11, 2025",
            "Jan 19 - Jan 25, 2025",
        ]

    def test_people_sorted_within_week(self, make_message, jan5):
        """Test names within a week are sorted."""
        msg = make_message(sender="Zoe", recipients={"Adam": NEVER}, sent=jan5)
        week = accumulate_stats([msg]).weekly["Jan 05 - Jan 11, 2025"]
        assert list(week) == ["Adam", "Zoe"]

    def test_weekly_sums_match_totals(self, make_message, jan5):
        """Test counts summed across weeks equal the global totals."""
        messages = []
        for day in range(0, 30, 3):
            sent = jan5 + timedelta(days=day, hours=day)
            messages.append(make_message(
                sender="A" if day % 2 else "B",
                recipients={"B" if day % 2 else "A": sent + timedelta(minutes=day + 1)},
                sent=sent,
                word_count=day,
            ))
        result = accumulate_stats(messages)
        for person, totals in result.totals.items():
            weeks = [w[person] for w in result.weekly.values() if person in w]
            assert sum(w.messages_sent for w in weeks) == totals.messages_sent
            assert sum(w.messages_read for w in weeks) == totals.messages_read
            assert sum(w.total_words for w in weeks) == totals.total_words
            assert sum(w.total_read_time for w in weeks) == pytest.approx(totals.total_read_time)

    def test_thread_stats(self, make_message, jan5):
        """Test thread counts globally and per week."""
        messages = [
            make_message(sent=jan5, thread_id=1),
            make_message(sent=jan5 + timedelta(hours=1), thread_id=1),
            make_message(sent=jan5 + timedelta(days=8), thread_id=2),
        ]
        result = accumulate_stats(messages)
        assert result.thread_stats.total_threads == 2
        assert result.thread_stats.average_thread_length == 1.5
        assert result.weekly_thread_stats["Jan 05 - Jan 11, 2025"].total_threads == 1
        assert result.weekly_thread_stats["Jan 05 - Jan 11, 2025"].average_thread_length == 2

    def test_empty_input(self):
        """Test no messages yields empty, finite results."""
        result = accumulate_stats([])
        assert result.totals == {}
        assert result.weekly == {}
        assert result.thread_stats.total_threads == 0
        assert result.thread_stats.average_thread_length == 0


class TestFinalizePerson:
    def test_no_nan_for_zero_counts(self):
        """Test averages of empty counters are zero, not NaN."""
        stats = finalize_person(PersonStats())
        for value in (stats.average_read_time, stats.avg_sentiment, stats.tone):
            assert value == 0.0
            assert math.isfinite(value)

    def test_tone_clamped(self):
        """Test the averaged tone stays within bounds."""
        stats = finalize_person(PersonStats(messages_sent=1, tone_total=5.0))
        assert stats.tone == 1.0


class TestSummarizeThreads:
    """Per-thread rollups."""

    def test_rollup(self, make_message, jan5):
        """Test counts, span, participants and averages."""
        messages = [
            make_message(sender="A", recipients={"B": NEVER}, subject="Pickup", sent=jan5,
                         thread_id=1, thread_key="pickup|A|B", word_count=3, sentiment=1.0, tone=0.2),
            make_message(sender="B", recipients={"A": NEVER}, subject="RE: Pickup",
                         sent=jan5 + timedelta(days=1, hours=12), thread_id=1,
                         thread_key="pickup|A|B", word_count=5, sentiment=-2.0, tone=-0.4),
        ]
        (summary,) = summarize_threads(messages)
        assert summary.messages == 2
        assert summary.span_days == 1.5
        assert summary.participants == ["A", "B"]
        assert summary.total_words == 8
        assert summary.avg_sentiment == -0.5
        assert summary.tone == -0.1
        assert summary.first_sent == jan5

    def test_subject_mode_tie_break(self, make_message, jan5):
        """Test equal subject counts resolve to the first seen."""
        messages = [
            make_message(subject="Pickup", sent=jan5, thread_id=1),
            make_message(subject="RE: Pickup", sent=jan5, thread_id=1),
        ]
        assert summarize_threads(messages)[0].subject == "Pickup"

    def test_subject_mode(self, make_message, jan5):
        """Test the most frequent literal subject wins."""
        messages = [
            make_message(subject="Pickup", sent=jan5, thread_id=1),
            make_message(subject="RE: Pickup", sent=jan5, thread_id=1),
            make_message(subject="RE: Pickup", sent=jan5, thread_id=1),
        ]
        assert summarize_threads(messages)[0].subject == "RE: Pickup"

    def test_subject_tie_break_ignores_input_order(self, make_message, jan5):
        """Test a subject tie resolves to the earliest message in any input order."""
        messages = [
            make_message(subject="Pickup", body="a", sent=jan5, thread_id=1),
            make_message(subject="RE: Pickup", body="b", sent=jan5 + timedelta(hours=1), thread_id=1),
        ]
        assert summarize_threads(messages)[0].subject == "Pickup"
        assert summarize_threads(messages[::-1])[0].subject == "Pickup"

    def test_same_time_tie_break_uses_body(self, make_message, jan5):
        """Test simultaneous messages fall back to body order."""
        messages = [
            make_message(subject="Later", body="zz", sent=jan5, thread_id=1),
            make_message(subject="Earlier", body="aa", sent=jan5, thread_id=1),
        ]
        assert summarize_threads(messages)[0].subject == "Earlier"
        assert summarize_threads(messages[::-1])[0].subject == "Earlier"

    def test_sorted_by_first_send_undated_last(self, make_message, jan5):
        """Test summaries are ordered by first send time."""
        messages = [
            make_message(sent=None, thread_id=3),
            make_message(sent=jan5 + timedelta(days=2), thread_id=1),
            make_message(sent=jan5, thread_id=2),
        ]
        assert [s.thread_id for s in summarize_threads(messages)] == [2, 1, 3]

    def test_enrich(self, make_message, jan5):
        """Test per-thread averages are added to the thread stats."""
        messages = [
            make_message(sent=jan5, thread_id=1, word_count=4),
            make_message(sent=jan5 + timedelta(days=1), thread_id=1, word_count=2),
            make_message(sent=jan5, thread_id=2, word_count=6),
        ]
        stats = enrich_thread_stats(ThreadStats(total_threads=2), summarize_threads(messages))
        assert stats.avg_messages_per_thread == 1.5
        assert stats.avg_days_per_thread == 0.5
        assert stats.avg_words_per_thread == 6

    def test_to_dict_keys(self, make_message, jan5):
        """Test serialized summaries use the report's field names."""
        data = summarize_threads([make_message(sent=jan5, thread_id=1)])[0].to_dict()
        assert data["firstSentISO"] == "2025-01-05T10:00:00"
        assert data["threadId"] == 1
        assert data["spanDays"] == 0
