"""Per-person, per-week and per-thread statistics over threaded messages."""

import logging
import math
from collections import Counter, defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from ..ingestion.dates import week_label, week_start
from ..models import NEVER, NO_SUBJECT, Message, PersonStats, StatsResult, ThreadStats, ThreadSummary
from .metrics import clamp

logger = logging.getLogger(__name__)


def _finite(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def _ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return _finite(numerator / denominator)


def read_latency_minutes(sent: datetime, viewed) -> Optional[float]:
    """Minutes between sending and first view, or None if not a usable sample.

    Unread recipients, clock skew (negative latency) and malformed values all
    yield None.
    """
    if viewed == NEVER or not isinstance(viewed, datetime) or sent is None:
        return None
    minutes = (viewed - sent).total_seconds() / 60
    if not math.isfinite(minutes) or minutes < 0:
        return None
    return minutes


def _thread_ref(message: Message) -> str:
    if message.thread_id is not None:
        return f"id:{message.thread_id}"
    if message.thread_key:
        return f"key:{message.thread_key}"
    return "subj:{}".format((message.subject or "").lower().strip())


def _add_sent(stats: PersonStats, message: Message) -> None:
    stats.messages_sent += 1
    stats.total_words += int(message.word_count or 0)
    stats.sentiment += _finite(message.sentiment)
    stats.sentiment_natural += _finite(message.sentiment_natural)
    stats.sentiment_per_word += _finite(message.sentiment_per_word)
    stats.natural_per_word += _finite(message.natural_per_word)
    stats.tone_total += _finite(message.tone)


def _add_read(stats: PersonStats, minutes: float) -> None:
    stats.messages_read += 1
    stats.total_read_time += minutes


def finalize_person(stats: PersonStats) -> PersonStats:
    """Compute averages in place; never leaves NaN or infinity behind."""
    stats.average_read_time = _ratio(stats.total_read_time, stats.messages_read)
    stats.avg_sentiment = _ratio(stats.sentiment, stats.messages_sent)
    stats.avg_sentiment_natural = _ratio(stats.sentiment_natural, stats.messages_sent)
    stats.avg_sentiment_per_word = _ratio(stats.sentiment_per_word, stats.messages_sent)
    stats.avg_natural_per_word = _ratio(stats.natural_per_word, stats.messages_sent)
    stats.tone = clamp(_ratio(stats.tone_total, stats.messages_sent))
    return stats


def _thread_stats(counts: Counter) -> ThreadStats:
    total = len(counts)
    average = sum(counts.values()) / total if total else 0.0
    return ThreadStats(total_threads=total, average_thread_length=round(_finite(average), 2))


def accumulate_stats(messages: Iterable[Message]) -> StatsResult:
    """Fold messages into global and weekly per-person statistics.

    Placeholders and messages without a send date are skipped. Weeks run
    Sunday to Saturday and are emitted chronologically; people within a week
    are sorted by name.
    """
    totals: Dict[str, PersonStats] = {}
    weekly: Dict[str, Dict[str, PersonStats]] = defaultdict(dict)
    week_starts = {}
    global_threads: Counter = Counter()
    weekly_threads: Dict[str, Counter] = defaultdict(Counter)
    skipped = 0
    dropped_reads = 0

    for message in messages:
        if message.non_message or message.sent_date is None or not message.sender:
            skipped += 1
            continue

        week = week_label(message.sent_date)
        week_starts.setdefault(week, week_start(message.sent_date))
        bucket = weekly[week]

        ref = _thread_ref(message)
        global_threads[ref] += 1
        weekly_threads[week][ref] += 1

        sender = message.sender
        _add_sent(totals.setdefault(sender, PersonStats()), message)
        _add_sent(bucket.setdefault(sender, PersonStats()), message)

        for recipient, viewed in message.recipient_read_times.items():
            person_total = totals.setdefault(recipient, PersonStats())
            person_week = bucket.setdefault(recipient, PersonStats())
            if viewed == NEVER:
                continue
            minutes = read_latency_minutes(message.sent_date, viewed)
            if minutes is None:
                dropped_reads += 1
                continue
            _add_read(person_total, minutes)
            _add_read(person_week, minutes)

    for stats in totals.values():
        finalize_person(stats)

    ordered_weeks = sorted(weekly, key=lambda w: week_starts[w])
    weekly_sorted = {}
    for week in ordered_weeks:
        weekly_sorted[week] = {
            person: finalize_person(stats) for person, stats in sorted(weekly[week].items())
        }

    if skipped:
        logger.info("Skipped %d placeholders/undated messages in statistics", skipped)
    if dropped_reads:
        logger.info("Dropped %d negative or malformed read-time samples", dropped_reads)

    return StatsResult(
        totals=totals,
        weekly=weekly_sorted,
        thread_stats=_thread_stats(global_threads),
        weekly_thread_stats={week: _thread_stats(weekly_threads[week]) for week in ordered_weeks},
    )


def _member_order(message: Message):
    sent = message.sent_date
    return (sent is not None, sent or datetime.min, message.body or "")


def _pick_subject(counts: Counter) -> str:
    # Counter.most_common keeps first-seen order among equal counts
    if not counts:
        return NO_SUBJECT
    return counts.most_common(1)[0][0]


def summarize_threads(messages: Iterable[Message]) -> List[ThreadSummary]:
    """One summary per thread id, sorted by first send time (undated last)."""
    groups: Dict[object, List[Message]] = {}
    for message in messages:
        if message.non_message:
            continue
        ref = message.thread_id if message.thread_id is not None else (message.thread_key or "unknown")
        groups.setdefault(ref, []).append(message)

    summaries = []
    for ref, members in groups.items():
        # Subject ties go to the earliest message whatever the input order
        members = sorted(members, key=_member_order)
        dates = [m.sent_date for m in members if m.sent_date is not None]
        first = min(dates) if dates else None
        last = max(dates) if dates else None
        span_days = (last - first).total_seconds() / 86400 if dates else 0.0

        people = set()
        for m in members:
            if m.sender:
                people.add(m.sender.strip())
            people.update(name.strip() for name in m.recipient_read_times if name)

        subjects = Counter(m.subject.strip() for m in members if m.subject and m.subject.strip())
        count = len(members)
        summaries.append(
            ThreadSummary(
                thread_id=ref,
                thread_key=next((m.thread_key for m in members if m.thread_key), None),
                subject=_pick_subject(subjects),
                messages=count,
                first_sent=first,
                last_sent=last,
                span_days=round(_finite(span_days), 2),
                participants=sorted(people),
                total_words=sum(int(m.word_count or 0) for m in members),
                avg_sentiment=round(_ratio(sum(_finite(m.sentiment) for m in members), count), 2),
                tone=round(clamp(_ratio(sum(_finite(m.tone) for m in members), count)), 2),
            )
        )

    summaries.sort(key=lambda s: (s.first_sent is None, s.first_sent or datetime.min))
    return summaries


def enrich_thread_stats(thread_stats: ThreadStats, summaries: Sequence[ThreadSummary]) -> ThreadStats:
    """Add per-thread averages (messages, days, words) from the summaries."""
    count = len(summaries)
    thread_stats.avg_messages_per_thread = round(_ratio(sum(s.messages for s in summaries), count), 2)
    thread_stats.avg_days_per_thread = round(_ratio(sum(s.span_days for s in summaries), count), 2)
    thread_stats.avg_words_per_thread = round(_ratio(sum(s.total_words for s in summaries), count), 2)
    return thread_stats
