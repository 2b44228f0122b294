import logging
from typing import Iterable, List

from ..models import Message

logger = logging.getLogger(__name__)


def find_rapid_fire_clusters(
    messages: Iterable[Message],
    sender: str,
    threshold_seconds: int = 1800,
) -> List[List[Message]]:
    """Find bursts of consecutive messages from one sender.

    Messages from *sender* are ordered by send time and split wherever the
    gap exceeds *threshold_seconds*. Only runs of two or more are returned.
    Undated messages and placeholders are ignored.
    """
    own = sorted(
        (m for m in messages if m.sender == sender and m.sent_date is not None and not m.non_message),
        key=lambda m: m.sent_date,
    )

    clusters: List[List[Message]] = []
    current: List[Message] = []
    for message in own:
        if current and (message.sent_date - current[-1].sent_date).total_seconds() > threshold_seconds:
            if len(current) > 1:
                clusters.append(current)
            current = []
        current.append(message)
    if len(current) > 1:
        clusters.append(current)

    logger.debug("Found %d rapid-fire clusters for %s", len(clusters), sender)
    return clusters
