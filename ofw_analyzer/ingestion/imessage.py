"""Parse plain-text iMessage exports.

Each message starts with a timestamp line such as
"Mar 05, 2024 09:12:11 AM (Read)", followed by the sender's name and then
one or more lines of content.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from ..models import UNKNOWN_SENDER, Message
from ..processing.metrics import count_words
from .dates import parse_date
from .parser import ParserError

logger = logging.getLogger(__name__)

TIMESTAMP_LINE_RE = re.compile(r"\d{1,2}:\d{2}:\d{2} [AP]M")
_YEAR_RE = re.compile(r"\b(\d{4})\b")


@dataclass
class IMessage:
    timestamp: str
    read_info: Optional[str] = None
    sender: Optional[str] = None
    content: str = ""
    sent_date: Optional[datetime] = None
    year: str = ""


def year_from_timestamp(timestamp: str) -> str:
    """Year of an export timestamp; the current year when none is present."""
    parsed = parse_date(timestamp.split("(")[0]) if timestamp else None
    if parsed is not None:
        return str(parsed.year)
    match = _YEAR_RE.search(timestamp or "")
    if match:
        return match.group(1)
    return str(datetime.now().year)


def _start_message(line: str) -> IMessage:
    timestamp, _, rest = line.partition("(")
    read_info = rest.split(")")[0].strip() if rest else None
    timestamp = timestamp.strip()
    return IMessage(
        timestamp=timestamp,
        read_info=read_info or None,
        sent_date=parse_date(timestamp),
        year=year_from_timestamp(timestamp),
    )


def parse_imessage_text(text: str) -> Dict[str, List[IMessage]]:
    """Parse an export into messages grouped by year, in source order."""
    if not isinstance(text, str):
        raise ParserError(f"Expected iMessage export as str, got {type(text).__name__}")

    messages: List[IMessage] = []
    current: Optional[IMessage] = None
    orphan_lines = 0

    for line in text.split("\n"):
        if not line.strip():
            continue
        if TIMESTAMP_LINE_RE.search(line):
            if current:
                messages.append(current)
            current = _start_message(line)
        elif current is None:
            orphan_lines += 1
        elif not current.sender:
            current.sender = line.strip()
        else:
            current.content += line.strip() + "\n"
    if current:
        messages.append(current)

    if orphan_lines:
        logger.debug("Ignored %d lines before the first timestamp", orphan_lines)

    grouped: Dict[str, List[IMessage]] = {}
    for message in messages:
        grouped.setdefault(message.year, []).append(message)
    logger.info("Parsed %d iMessages across %d years", len(messages), len(grouped))
    return grouped


def summarize_grouped_messages(grouped: Dict[str, List]) -> dict:
    """Message totals overall and per year."""
    by_year = {year: len(items) for year, items in grouped.items()}
    return {"total_messages": sum(by_year.values()), "by_year": by_year}


def to_messages(grouped: Dict[str, List[IMessage]]) -> List[Message]:
    """Convert parsed iMessages into Message records for the common pipeline.

    The export carries no recipient list or subject, so those stay at their
    defaults and threading falls back to day buckets.
    """
    records = []
    for items in grouped.values():
        for item in items:
            body = item.content.strip()
            records.append(
                Message(
                    sender=item.sender or UNKNOWN_SENDER,
                    body=body,
                    sent_date=item.sent_date,
                    word_count=count_words(body),
                )
            )
    return records
