import logging
import re
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..models import NEVER, NO_SUBJECT, UNKNOWN_SENDER, Message, ReadTime
from ..processing.metrics import count_words
from .dates import parse_date

logger = logging.getLogger(__name__)

# A true message boundary is the whole line; banners that merely contain
# "Message ... Page n of m" must not split the stream.
BOUNDARY_RE = re.compile(r"^\s*Message\s+\d+\s+of\s+\d+\s*$")
LABEL_RE = re.compile(r"^(Sent|From|To|Subject)\s*:\s*(.*)$", re.IGNORECASE)
# The name is whatever precedes each "(First Viewed: ...)" group, so it may
# itself contain parentheses, e.g. "Jane Doe (Mom) (First Viewed: Never)".
FIRST_VIEWED_RE = re.compile(r"\(First Viewed:\s*([^)]*?)\s*\)", re.IGNORECASE)

# Pagination and report-banner noise
_NOISE_PATTERNS = [
    re.compile(r"Page\s+\d+\s+of\s+\d+", re.IGNORECASE),
    re.compile(r"^\s*\|\s*Message\s*Report\s*Page", re.IGNORECASE),
    re.compile(r"^\s*(OFW\s+)?Message\s+Report\s*(\|.*)?$", re.IGNORECASE),
]

HEAD_WINDOW = 10  # labels starting within this many lines read as head layout

PLACEHOLDER_SENDER = "OFW Report"
PLACEHOLDER_SUBJECT = "Page Banner"


class ParserError(Exception):
    """Raised when the parser is handed something that is not text."""
    pass


class Layout(Enum):
    HEAD = "head"  # labels first, body after
    TAIL = "tail"  # body first, labels after


def normalize_line(raw: str) -> str:
    """Collapse NBSPs, drop LTR/RTL marks, unify full-width colons, trim."""
    return (
        str(raw)
        .replace("\u00a0", " ")
        .replace("\u200e", "")
        .replace("\u200f", "")
        .replace("\uff1a", ":")
        .strip()
    )


def _is_noise(line: str) -> bool:
    return any(pat.search(line) for pat in _NOISE_PATTERNS)


def _is_content(line: str) -> bool:
    return bool(line) and not LABEL_RE.match(line) and not _is_noise(line)


def has_labels(block: str) -> bool:
    """Return True if any line of *block* is a Sent/From/To/Subject label."""
    return any(LABEL_RE.match(normalize_line(line)) for line in block.split("\n"))


def split_blocks(text: str) -> List[str]:
    """Split export text on standalone "Message n of m" lines.

    Every segment between two boundaries is kept, in source order. The text
    before the first boundary and after the last one is kept only if it
    carries field labels, so report headers and trailing banners do not
    inflate the block count.
    """
    if not isinstance(text, str):
        raise ParserError(f"Expected export text as str, got {type(text).__name__}")

    blocks: List[str] = []
    current: List[str] = []
    seen_boundary = False

    for line in text.split("\n"):
        if BOUNDARY_RE.match(line):
            block = "\n".join(current)
            if seen_boundary:
                blocks.append(block)
            elif has_labels(block):
                blocks.append(block)
            elif block.strip():
                logger.debug("Dropping %d unlabelled lines before first boundary", len(current))
            current = []
            seen_boundary = True
            continue
        current.append(line)

    tail = "\n".join(current)
    if has_labels(tail):
        blocks.append(tail)
    elif tail.strip():
        logger.debug("Dropping %d unlabelled trailing lines", len(current))

    return blocks


def _next_non_empty(lines: List[str], idx: int) -> Optional[int]:
    j = idx + 1
    while j < len(lines) and not lines[j]:
        j += 1
    return j if j < len(lines) else None


def _field_value(lines: List[str], label_idx: int, inline: str) -> Tuple[str, int]:
    """Return (value, index of the line it came from) for a label.

    The value sits either after the colon or on the next non-empty line,
    provided that line is not itself a label.
    """
    if inline:
        return inline, label_idx
    j = _next_non_empty(lines, label_idx)
    if j is not None and not LABEL_RE.match(lines[j]):
        return lines[j], j
    return "", label_idx


def _parse_recipients(lines: List[str], to_idx: int, inline: str) -> Tuple[Dict[str, ReadTime], int]:
    """Collect "Name (First Viewed: value)" entries under the To label.

    Scans the To line and its continuation lines until the next label.
    Returns the mapping and the index of the last recipient line.
    """
    recipients: Dict[str, ReadTime] = {}
    last_idx = to_idx
    candidates = [(to_idx, inline)]
    j = to_idx + 1
    while j < len(lines) and not LABEL_RE.match(lines[j]):
        candidates.append((j, lines[j]))
        j += 1

    for idx, text in candidates:
        start = 0
        for match in FIRST_VIEWED_RE.finditer(text):
            name = text[start:match.start()].strip().lstrip(",;").strip()
            viewed = match.group(1).strip()
            start = match.end()
            if not name:
                continue
            recipients[name] = NEVER if viewed.lower() == NEVER.lower() else parse_date(viewed)
            if recipients[name] is None:
                # Unparsable view time: keep the recipient, treat as unread
                logger.debug("Unparsable First Viewed value %r for %s", viewed, name)
                recipients[name] = NEVER
            last_idx = max(last_idx, idx)

    return recipients, last_idx


def classify_layout(lines: List[str], first_meta: int, last_meta: int) -> Layout:
    """Decide whether the body follows or precedes the labelled region."""
    lead = any(_is_content(line) for line in lines[:first_meta])
    trail = any(_is_content(line) for line in lines[last_meta + 1:])
    if trail and not lead:
        return Layout.HEAD
    if lead and not trail:
        return Layout.TAIL
    return Layout.HEAD if first_meta < HEAD_WINDOW else Layout.TAIL


def make_placeholder() -> Message:
    """Stand-in for a boundary block that carried no message metadata."""
    return Message(
        sender=PLACEHOLDER_SENDER,
        subject=PLACEHOLDER_SUBJECT,
        non_message=True,
    )


def parse_message(block: str) -> Message:
    """Parse one message block into a Message.

    Labels are located by scanning from the end of the block so the last
    occurrence wins. Blocks without any label become placeholders.
    """
    if not isinstance(block, str):
        raise ParserError(f"Expected message block as str, got {type(block).__name__}")

    lines = [normalize_line(line) for line in block.split("\n")]

    found: Dict[str, Tuple[int, str]] = {}
    for idx in range(len(lines) - 1, -1, -1):
        match = LABEL_RE.match(lines[idx])
        if match:
            found.setdefault(match.group(1).lower(), (idx, match.group(2).strip()))

    if not found:
        return make_placeholder()

    spans = []
    values = {}
    for key, (idx, inline) in found.items():
        if key == "to":
            continue
        value, value_idx = _field_value(lines, idx, inline)
        values[key] = value
        spans.extend([idx, value_idx])

    recipients: Dict[str, ReadTime] = {}
    if "to" in found:
        to_idx, to_inline = found["to"]
        recipients, last_recipient = _parse_recipients(lines, to_idx, to_inline)
        spans.extend([to_idx, last_recipient])

    first_meta, last_meta = min(spans), max(spans)
    layout = classify_layout(lines, first_meta, last_meta)
    region = lines[last_meta + 1:] if layout is Layout.HEAD else lines[:first_meta]
    body = "\n".join(line for line in region if _is_content(line)).strip()

    sent_date = parse_date(values["sent"]) if values.get("sent") else None
    if values.get("sent") and sent_date is None:
        logger.debug("Message from %s has unparsable Sent value %r", values.get("from"), values["sent"])

    return Message(
        sender=values.get("from") or UNKNOWN_SENDER,
        subject=values.get("subject") or NO_SUBJECT,
        body=body,
        sent_date=sent_date,
        recipient_read_times=recipients,
        word_count=count_words(body),
    )


def process_messages(text: str) -> List[Message]:
    """Convert an OFW export's text into Message records, in source order."""
    messages = []
    for block in split_blocks(text):
        message = parse_message(block)
        if message.non_message:
            logger.debug("Block %d has no metadata; recorded as placeholder", len(messages) + 1)
        messages.append(message)

    logger.info(
        "Parsed %d blocks (%d placeholders)",
        len(messages),
        sum(1 for m in messages if m.non_message),
    )
    return messages
