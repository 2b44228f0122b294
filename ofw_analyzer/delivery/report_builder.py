"""Build Markdown reports from a pipeline result."""

import logging
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader

from ..ingestion.dates import format_date
from ..models import Message, PersonStats, ThreadSummary
from ..pipeline import PipelineResult

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
SNIPPET_CHARS = 80

_TO_LABEL_RE = re.compile(r"^\s*To:", re.IGNORECASE)


def create_name_filter(exclude_patterns: Optional[Iterable[str]] = None) -> Callable[[str], bool]:
    """Return a predicate that is True for names to hide from tables.

    Hides blank names, stray "To:" fragments and any name containing one of
    *exclude_patterns* (case-insensitive).
    """
    patterns = [str(p).lower() for p in (exclude_patterns or []) if p]

    def should_hide(name: str) -> bool:
        if not name or not name.strip():
            return True
        if _TO_LABEL_RE.match(name):
            return True
        lower = name.lower()
        return any(p in lower for p in patterns)

    return should_hide


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def _person_row(name: str, stats: PersonStats) -> dict:
    return {
        "name": name,
        "sent": stats.messages_sent,
        "read": stats.messages_read,
        "words": stats.total_words if stats.messages_sent else "",
        "total_read": stats.total_read_time,
        "avg_read": stats.average_read_time,
        "avg_sentiment": stats.avg_sentiment,
        "avg_natural": stats.avg_sentiment_natural,
        "tone": stats.tone,
    }


def _message_entry(message: Message, number: int) -> dict:
    return {
        "subject": message.subject,
        "sender": message.sender,
        "sent": format_date(message.sent_date),
        "recipients": [
            {"name": name, "viewed": format_date(viewed)}
            for name, viewed in message.recipient_read_times.items()
        ],
        "number": number,
        "word_count": message.word_count,
        "sentiment": message.sentiment,
        "sentiment_natural": round(message.sentiment_natural, 4),
        "thread_id": message.thread_id,
        "thread_index": message.thread_index or 0,
        "body": message.body,
    }


def format_messages_markdown(messages: List[Message]) -> str:
    """One section per real message; placeholders are skipped but counted."""
    entries = [
        _message_entry(message, number)
        for number, message in enumerate(messages, 1)
        if not message.non_message
    ]
    template = _environment().get_template("messages.md.j2")
    return template.render(messages=entries, total=len(messages))


def format_summary_markdown(
    result: PipelineResult,
    exclude_patterns: Optional[Iterable[str]] = None,
    title: str = "Communication Summary",
) -> str:
    """Weekly and total tables plus thread statistics."""
    should_hide = create_name_filter(exclude_patterns)

    weekly_rows = []
    for week, people in result.stats.weekly.items():
        first = True
        for person, stats in people.items():
            if should_hide(person):
                continue
            row = _person_row(person, stats)
            row["week"] = week if first else ""
            first = False
            weekly_rows.append(row)

    total_rows = [
        _person_row(person, stats)
        for person, stats in result.stats.totals.items()
        if not should_hide(person)
    ]

    template = _environment().get_template("summary.md.j2")
    return template.render(
        title=title,
        weekly_rows=weekly_rows,
        total_rows=total_rows,
        thread_stats=result.stats.thread_stats,
    )


def _snippet(body: str) -> str:
    text = " ".join(body.split())
    if len(text) > SNIPPET_CHARS:
        return text[:SNIPPET_CHARS].rstrip() + "..."
    return text


def format_thread_tree_markdown(messages: List[Message], summaries: List[ThreadSummary]) -> str:
    """Tree view: each thread's opening message with its replies beneath."""
    by_thread: Dict[object, List[Message]] = {}
    for message in messages:
        if message.non_message or message.thread_id is None:
            continue
        by_thread.setdefault(message.thread_id, []).append(message)

    threads = []
    for summary in summaries:
        members = sorted(by_thread.get(summary.thread_id, []), key=lambda m: m.thread_index or 0)
        entry = summary.to_dict()
        entry.update(
            thread_id=summary.thread_id,
            span_days=summary.span_days,
            entries=[
                {
                    "depth": 0 if not m.thread_index else 1,
                    "sent": format_date(m.sent_date),
                    "sender": m.sender,
                    "word_count": m.word_count,
                    "snippet": _snippet(m.body),
                }
                for m in members
            ],
        )
        threads.append(entry)

    template = _environment().get_template("threads.md.j2")
    return template.render(threads=threads)


def format_rapid_fire_markdown(sender: str, clusters: List[List[Message]]) -> str:
    """List each burst with the minutes elapsed between its messages."""
    bursts = []
    for cluster in clusters:
        entries = []
        previous = None
        for message in cluster:
            gap = None
            if previous is not None:
                gap = (message.sent_date - previous.sent_date).total_seconds() / 60
            entries.append({
                "stamp": message.sent_date.strftime("%I:%M %p"),
                "subject": message.subject,
                "word_count": message.word_count,
                "minutes": gap,
            })
            previous = message
        bursts.append({"day": cluster[0].sent_date.strftime("%b %d, %Y"), "entries": entries})

    template = _environment().get_template("rapid_fire.md.j2")
    return template.render(sender=sender, clusters=bursts)


def build_report(
    result: PipelineResult,
    exclude_patterns: Optional[Iterable[str]] = None,
    title: str = "Communication Summary",
) -> Dict[str, str]:
    """Render every Markdown report.

    Returns {"messages": str, "threads": str, "summary": str}.
    """
    report = {
        "messages": format_messages_markdown(result.messages),
        "threads": format_thread_tree_markdown(result.messages, result.thread_summaries),
        "summary": format_summary_markdown(result, exclude_patterns, title),
    }
    logger.debug("Rendered %d Markdown reports", len(report))
    return report
