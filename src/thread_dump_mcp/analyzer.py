import logging
import uuid
from datetime import datetime
from typing import Optional, Sequence

from .models import Report, ReportStatus, ThreadRecord
from .parser import parse_thread_dump
from .rules import run_detectors
from .statistics import compute_statistics
from .synthesizer import suggest_fixes, summarize

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "mcp-input"


def _build_report(report_id: str, records: Sequence[ThreadRecord], source: str) -> Report:
    stats = compute_statistics(records)
    logger.debug("Generated statistics for %d threads", stats.total_threads)

    findings = run_detectors(records, stats)
    logger.debug("Generated %d diagnostic findings", len(findings))

    return Report(
        id=report_id,
        timestamp=datetime.now(),
        source=source,
        statistics=stats,
        findings=findings,
        suggested_fixes=suggest_fixes(stats, findings),
        status=ReportStatus.COMPLETED,
        summary=summarize(stats, findings),
    )


def _error_report(report_id: str, source: str, exc: BaseException) -> Report:
    return Report(
        id=report_id,
        timestamp=datetime.now(),
        source=source,
        statistics=None,
        findings=[],
        suggested_fixes=["Review thread dump format and content"],
        status=ReportStatus.ERROR,
        summary=f"Analysis failed: {exc}",
    )


def analyze_records(records: Sequence[ThreadRecord], source: Optional[str] = None) -> Report:
    """Run statistics, detectors and synthesis over already-built records.

    Never raises: an unexpected failure yields an ERROR report with no
    statistics and no findings.
    """
    source = source or DEFAULT_SOURCE
    report_id = str(uuid.uuid4())
    try:
        report = _build_report(report_id, list(records), source)
    except Exception as exc:
        logger.exception("Error analyzing thread records for source: %s", source)
        return _error_report(report_id, source, exc)
    logger.info("Thread dump analysis completed for source: %s, report ID: %s", source, report_id)
    return report


def analyze_thread_dump(raw_text: Optional[str], source: Optional[str] = None) -> Report:
    """Parse raw dump text and analyze it into a report."""
    source = source or DEFAULT_SOURCE
    logger.info("Starting thread dump analysis for source: %s", source)
    report_id = str(uuid.uuid4())
    try:
        records = parse_thread_dump(raw_text)
        unnamed = sum(1 for r in records if not r.name)
        if unnamed:
            logger.debug("%d thread segments had no parseable header", unnamed)
        report = _build_report(report_id, records, source)
    except Exception as exc:
        logger.exception("Error analyzing thread dump for source: %s", source)
        return _error_report(report_id, source, exc)
    logger.info("Thread dump analysis completed for source: %s, report ID: %s", source, report_id)
    return report
