#!/usr/bin/env python3
"""Communication-pattern report for an OFW or iMessage export.

Reads text already extracted from the export, reconstructs the messages,
threads them, computes per-person and per-week statistics, and writes
JSON, Markdown and CSV outputs.

Usage:
    python scripts/run_report.py export.txt                     # Full run
    python scripts/run_report.py export.txt --no-markdown       # Skip per-message Markdown
    python scripts/run_report.py export.txt --no-csv            # Skip CSV files
    python scripts/run_report.py export.txt --exclude "ofw,bot" # Hide names in tables
    python scripts/run_report.py chat.txt --format imessage     # iMessage text export
    python scripts/run_report.py export.txt --rapid-fire "Jane" # List bursts from a sender
"""
import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path so we can import ofw_analyzer
sys.path.insert(0, str(Path(__file__).parent.parent))

from ofw_analyzer.config import (
    LOG_LEVEL,
    OUTPUT_DIR,
    RAPID_FIRE_SECONDS,
    THREAD_INACTIVITY_DAYS,
    load_exclude_patterns,
)
from ofw_analyzer.delivery.report_builder import format_rapid_fire_markdown, format_summary_markdown
from ofw_analyzer.delivery.writer import write_outputs
from ofw_analyzer.ingestion.parser import ParserError
from ofw_analyzer.pipeline import run_imessage_pipeline, run_pipeline
from ofw_analyzer.processing.clusters import find_rapid_fire_clusters
from ofw_analyzer.processing.metrics import SentimentScorer

logger = logging.getLogger(__name__)


def setup_logging(output_dir):
    """Configure logging to both console and a daily log file."""
    log_dir = Path(output_dir) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "report_{}.log".format(date.today().isoformat())

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file),
        ],
    )


def parse_exclude(value):
    """Split a comma-separated --exclude value into lowercase patterns."""
    return [p.strip().lower() for p in (value or "").split(",") if p.strip()]


def run(input_path, fmt="ofw", write_markdown=True, write_csv=True,
        exclude=None, inactivity_days=THREAD_INACTIVITY_DAYS, output_dir=OUTPUT_DIR,
        rapid_fire_sender=None):
    """Main pipeline orchestrator. Returns a process exit code."""
    setup_logging(output_dir)
    input_path = Path(input_path)
    logger.info("=" * 60)
    logger.info("Communication report for %s", input_path)
    logger.info(
        "Options: format=%s, markdown=%s, csv=%s, inactivity_days=%s",
        fmt, write_markdown, write_csv, inactivity_days,
    )
    logger.info("=" * 60)

    try:
        text = input_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Could not read %s: %s", input_path, e)
        return 1

    exclude_patterns = exclude if exclude is not None else load_exclude_patterns()
    scorer = SentimentScorer()
    pipeline = run_imessage_pipeline if fmt == "imessage" else run_pipeline

    try:
        result = pipeline(text, inactivity_days=inactivity_days, scorer=scorer)
    except ParserError as e:
        logger.error("Could not parse %s: %s", input_path, e)
        return 1

    write_outputs(
        result,
        Path(output_dir),
        input_path.stem,
        write_markdown=write_markdown,
        write_csv=write_csv,
        exclude_patterns=exclude_patterns,
    )

    print(format_summary_markdown(result, exclude_patterns, title=input_path.stem))

    if rapid_fire_sender:
        clusters = find_rapid_fire_clusters(result.messages, rapid_fire_sender, RAPID_FIRE_SECONDS)
        print(format_rapid_fire_markdown(rapid_fire_sender, clusters))

    logger.info("Done: %d messages, %d threads", len(result.messages), len(result.thread_summaries))
    return 0


def main():
    parser = argparse.ArgumentParser(description="Analyze an OFW or iMessage text export")
    parser.add_argument("input", help="Path to the extracted export text")
    parser.add_argument("--format", choices=["ofw", "imessage"], default="ofw",
                        help="Export layout (default: ofw)")
    parser.add_argument("--no-markdown", action="store_true",
                        help="Skip the per-message and thread Markdown files")
    parser.add_argument("--no-csv", action="store_true", help="Skip CSV outputs")
    parser.add_argument("--exclude", default=None,
                        help="Comma-separated name substrings to hide in tables")
    parser.add_argument("--inactivity-days", type=float, default=THREAD_INACTIVITY_DAYS,
                        help="Gap that starts a new thread (default: %(default)s)")
    parser.add_argument("--output-dir", default=str(OUTPUT_DIR),
                        help="Where to write outputs (default: %(default)s)")
    parser.add_argument("--rapid-fire", metavar="SENDER", default=None,
                        help="Also list rapid-fire bursts from this sender")
    args = parser.parse_args()

    sys.exit(run(
        args.input,
        fmt=args.format,
        write_markdown=not args.no_markdown,
        write_csv=not args.no_csv,
        exclude=parse_exclude(args.exclude) if args.exclude is not None else None,
        inactivity_days=args.inactivity_days,
        output_dir=args.output_dir,
        rapid_fire_sender=args.rapid_fire,
    ))


if __name__ == "__main__":
    main()
