"""CSV renderings of the weekly and per-thread statistics."""

import csv
import io
from typing import Dict, List, Sequence

from ..ingestion.dates import parse_week_label
from ..models import PersonStats, ThreadSummary

WEEKLY_HEADER = [
    "Week Start",
    "Week End",
    "Name",
    "Messages Sent",
    "Messages Read",
    "Average Read Time (minutes)",
    "Total Words",
    "Sentiment",
    "Sentiment_natural",
]

THREADS_HEADER = [
    "Thread Id",
    "Thread Key",
    "Subject",
    "Messages",
    "First Sent",
    "Last Sent",
    "Span Days",
    "Participants",
    "Total Words",
    "Avg Sentiment",
    "Tone",
]


def _render(rows: List[list]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerows(rows)
    return buf.getvalue()


def format_weekly_csv(weekly: Dict[str, Dict[str, PersonStats]]) -> str:
    """One row per week and person."""
    rows = [WEEKLY_HEADER]
    for week, people in weekly.items():
        start, end = parse_week_label(week)
        for person, stats in people.items():
            rows.append([
                start,
                end,
                person,
                stats.messages_sent,
                stats.messages_read,
                "{:.2f}".format(stats.average_read_time),
                stats.total_words,
                "{:.2f}".format(stats.avg_sentiment),
                "{:.2f}".format(stats.avg_sentiment_natural),
            ])
    return _render(rows)


def top_senders(totals: Dict[str, PersonStats], limit: int = 2) -> List[str]:
    """Most active senders, ties broken by name."""
    ranked = sorted(
        (person for person, stats in totals.items() if stats.messages_sent > 0),
        key=lambda person: (-totals[person].messages_sent, person),
    )
    return ranked[:limit]


def format_top2_csv(weekly: Dict[str, Dict[str, PersonStats]], totals: Dict[str, PersonStats]) -> str:
    """Side-by-side weekly comparison of the two most active senders."""
    people = top_senders(totals)
    header = ["Week Start", "Week End"]
    for column in ("Sent", "Words", "Avg Read Time", "Tone"):
        header.extend("{} {}".format(person, column) for person in people)

    rows = [header]
    for week, bucket in weekly.items():
        start, end = parse_week_label(week)
        row = [start, end]
        stats = [bucket.get(person) or PersonStats() for person in people]
        row.extend(s.messages_sent for s in stats)
        row.extend(s.total_words for s in stats)
        row.extend("{:.2f}".format(s.average_read_time) for s in stats)
        row.extend("{:.2f}".format(s.tone) for s in stats)
        rows.append(row)
    return _render(rows)


def format_threads_csv(summaries: Sequence[ThreadSummary]) -> str:
    """One row per thread summary."""
    rows = [THREADS_HEADER]
    for summary in summaries:
        data = summary.to_dict()
        rows.append([
            data["threadId"],
            data["threadKey"] or "",
            data["subject"],
            data["messages"],
            data["firstSentISO"],
            data["lastSentISO"],
            "{:.2f}".format(data["spanDays"]),
            "; ".join(data["participants"]),
            data["totalWords"],
            "{:.2f}".format(data["avgSentiment"]),
            "{:.2f}".format(data["tone"]),
        ])
    return _render(rows)
