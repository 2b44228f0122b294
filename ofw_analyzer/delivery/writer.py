"""Write pipeline results to the output directory."""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

from ..pipeline import PipelineResult
from .csv_writer import format_threads_csv, format_top2_csv, format_weekly_csv
from .report_builder import build_report

logger = logging.getLogger(__name__)


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("Wrote %s", path)
    return path


def write_json(result: PipelineResult, path: Path) -> Path:
    """Messages as a JSON list (ISO timestamps, "Never" kept literal)."""
    payload = [message.to_dict() for message in result.messages]
    return _write(path, json.dumps(payload, indent=2, ensure_ascii=False))


def write_outputs(
    result: PipelineResult,
    output_dir: Path,
    stem: str,
    write_markdown: bool = True,
    write_csv: bool = True,
    exclude_patterns: Optional[Iterable[str]] = None,
) -> Dict[str, Path]:
    """Write JSON, Markdown and CSV outputs named after *stem*.

    Returns a mapping of output kind to the path written.
    """
    output_dir = Path(output_dir)
    written = {"json": write_json(result, output_dir / f"{stem}.json")}

    report = build_report(result, exclude_patterns=exclude_patterns, title=stem)
    written["summary"] = _write(output_dir / f"{stem}-summary.md", report["summary"])

    if write_markdown:
        written["messages"] = _write(output_dir / f"{stem}.md", report["messages"])
        written["threads"] = _write(output_dir / f"{stem}.threads.md", report["threads"])
    else:
        logger.info("Markdown output disabled.")

    if write_csv:
        weekly = result.stats.weekly
        written["senders_csv"] = _write(output_dir / f"{stem}-senders.csv", format_weekly_csv(weekly))
        written["top2_csv"] = _write(
            output_dir / f"{stem}-top2-comparison.csv",
            format_top2_csv(weekly, result.stats.totals),
        )
        written["threads_csv"] = _write(
            output_dir / f"{stem}-threads.csv", format_threads_csv(result.thread_summaries)
        )
    else:
        logger.info("CSV output disabled.")

    return written
