"""Group messages into conversational threads.

Messages sharing a normalized subject and participant set form a thread
class (the thread key). Within a class, a gap longer than the inactivity
threshold starts a new thread segment with its own thread id.
"""

import logging
import math
import re
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import Message

logger = logging.getLogger(__name__)

NO_SUBJECT_KEY = "no subject"
MAX_PREFIX_PASSES = 5

_PREFIX_RE = re.compile(r"^(re|fw|fwd)\s*:\s*", re.IGNORECASE)
_TAG_RE = re.compile(r"^\[[^\]]+\]\s*")
_PUNCT_RE = re.compile(r"[\-\u2013\u2014_~*\[\](){}<>\"'`.,!?#:;]+")
_SPACE_RE = re.compile(r"\s+")


def _collapse_whitespace(text: Optional[str]) -> str:
    text = str(text or "").replace("\u00a0", " ").replace("\u200e", " ").replace("\u200f", " ")
    return _SPACE_RE.sub(" ", text).strip()


def _strip_repeated(pattern: re.Pattern, text: str) -> str:
    for _ in range(MAX_PREFIX_PASSES):
        stripped = pattern.sub("", text, count=1)
        if stripped == text:
            break
        text = stripped
    return text


def normalize_subject(subject: Optional[str]) -> str:
    """Canonical subject for grouping.

    "Re: Re: Update!!!" and "update" both normalize to "update"; an empty
    result becomes "no subject".
    """
    text = _collapse_whitespace(subject).lower()
    text = _strip_repeated(_PREFIX_RE, text)
    text = _strip_repeated(_TAG_RE, text)
    text = _PUNCT_RE.sub(" ", text)
    text = _SPACE_RE.sub(" ", text).strip()
    return text or NO_SUBJECT_KEY


def participants(message: Message) -> List[str]:
    """Sender plus recipients, deduplicated and sorted."""
    names = set()
    if message.sender and message.sender.strip():
        names.add(message.sender.strip())
    for name in message.recipient_read_times:
        if name and name.strip():
            names.add(name.strip())
    return sorted(names)


def compute_thread_key(message: Message) -> str:
    """Stable grouping key from normalized subject and participants.

    Subjectless messages are additionally bucketed by calendar day so that
    unrelated exchanges months apart are not merged.
    """
    subject = normalize_subject(message.subject)
    people = "|".join(participants(message))
    if subject == NO_SUBJECT_KEY:
        day = message.sent_date.strftime("%Y-%m-%d") if message.sent_date else "unknown"
        return f"nosubj|{day}|{people}"
    return f"{subject}|{people}"


def _sort_key(message: Message, key: str) -> Tuple:
    # Undated messages sort first, as if sent at the epoch
    sent = message.sent_date
    return (sent is not None, sent or datetime.min, message.body or "", key)


def assign_threads(messages: Sequence[Message], *, inactivity_days: float) -> List[Message]:
    """Return copies of *messages* with thread_id, thread_key and thread_index.

    Output keeps the input order. Thread ids are numbered in the order each
    thread is first seen after canonical (time, body, key) ordering, so the
    result does not depend on how the input was ordered. A non-positive
    or non-finite *inactivity_days* disables gap splitting. Placeholders are
    left unthreaded.
    """
    days = float(inactivity_days)
    max_gap = None
    if math.isfinite(days) and days > 0:
        max_gap = timedelta(days=min(days, timedelta.max.days))

    keyed = []
    for pos, message in enumerate(messages):
        if message.non_message:
            continue
        key = compute_thread_key(message)
        keyed.append((_sort_key(message, key), pos, key))
    keyed.sort(key=lambda item: item[0])

    groups: Dict[str, List[int]] = defaultdict(list)
    for _, pos, key in keyed:
        groups[key].append(pos)  # insertion order == first-seen order

    result = list(messages)
    next_id = 1
    for key, positions in groups.items():
        last_sent = None
        thread_id = None
        index = 0
        for pos in positions:
            message = messages[pos]
            sent = message.sent_date
            split = (
                max_gap is not None
                and last_sent is not None
                and sent is not None
                and sent - last_sent > max_gap
            )
            if thread_id is None or split:
                thread_id = next_id
                next_id += 1
                index = 0
            else:
                index += 1
            result[pos] = replace(message, thread_id=thread_id, thread_key=key, thread_index=index)
            if sent is not None:
                last_sent = sent

    logger.info(
        "Assigned %d threads across %d thread keys (inactivity %.1f days)",
        next_id - 1,
        len(groups),
        float(inactivity_days),
    )
    return result
