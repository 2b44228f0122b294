"""End-to-end processing of one export's extracted text.

Steps:
    1) process_messages: split on "Message n of m" and parse each block
    2) assign_threads: subject/participant grouping with inactivity splits
    3) apply_metrics: word counts, sentiment and tone per message
    4) accumulate_stats: per-person totals and weekly buckets
    5) summarize_threads: per-thread rollup
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .ingestion.imessage import parse_imessage_text, to_messages
from .ingestion.parser import process_messages
from .models import Message, StatsResult, ThreadSummary
from .processing.metrics import SentimentScorer, apply_metrics
from .processing.stats import accumulate_stats, enrich_thread_stats, summarize_threads
from .processing.threads import assign_threads

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    messages: List[Message] = field(default_factory=list)
    stats: StatsResult = field(default_factory=StatsResult)
    thread_summaries: List[ThreadSummary] = field(default_factory=list)


def analyze_messages(
    messages: List[Message],
    *,
    inactivity_days: float,
    scorer: Optional[SentimentScorer] = None,
) -> PipelineResult:
    """Thread, score and aggregate already-parsed messages."""
    scorer = scorer or SentimentScorer()

    threaded = assign_threads(messages, inactivity_days=inactivity_days)
    scored = apply_metrics(threaded, scorer)
    stats = accumulate_stats(scored)
    summaries = summarize_threads(scored)
    enrich_thread_stats(stats.thread_stats, summaries)

    logger.info(
        "Aggregated %d people over %d weeks, %d threads",
        len(stats.totals),
        len(stats.weekly),
        len(summaries),
    )
    return PipelineResult(messages=scored, stats=stats, thread_summaries=summaries)


def run_pipeline(
    text: str,
    *,
    inactivity_days: float,
    scorer: Optional[SentimentScorer] = None,
) -> PipelineResult:
    """Run the full OFW pipeline over extracted export text."""
    messages = process_messages(text)
    logger.info("Processed %d messages", len(messages))
    return analyze_messages(messages, inactivity_days=inactivity_days, scorer=scorer)


def run_imessage_pipeline(
    text: str,
    *,
    inactivity_days: float,
    scorer: Optional[SentimentScorer] = None,
) -> PipelineResult:
    """Run the same analysis over a plain-text iMessage export."""
    messages = to_messages(parse_imessage_text(text))
    return analyze_messages(messages, inactivity_days=inactivity_days, scorer=scorer)
