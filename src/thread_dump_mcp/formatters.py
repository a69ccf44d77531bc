"""
Report formatters: JSON, XML and plain text renderings of a Report.
"""

import json
import xml.etree.ElementTree as ET
from typing import Any, Callable, Dict, List, Optional

from .models import Report, ReportFormat, TIMESTAMP_FORMAT

# Element name for items of a list-valued field; anything else uses "item".
_XML_ITEM_TAGS = {
    "findings": "finding",
    "suggestedFixes": "fix",
    "affectedThreads": "thread",
    "stackTrace": "frame",
}

# Dicts under these tags are records with field-name keys; any other dict is a
# free-form map (lock names, categories) rendered as <entry key="...">.
_XML_RECORD_TAGS = ("statistics", "finding", "details")


def format_json(report: Report) -> str:
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)


def _append_xml(parent: ET.Element, tag: str, value: Any, key: Optional[str] = None) -> None:
    elem = ET.SubElement(parent, tag)
    if key is not None:
        elem.set("key", key)
    if value is None:
        return
    if isinstance(value, dict):
        for k, item in value.items():
            if tag in _XML_RECORD_TAGS:
                _append_xml(elem, str(k), item)
            else:
                _append_xml(elem, "entry", item, key=str(k))
    elif isinstance(value, (list, tuple)):
        item_tag = _XML_ITEM_TAGS.get(tag, "item")
        for item in value:
            _append_xml(elem, item_tag, item)
    elif isinstance(value, bool):
        elem.text = "true" if value else "false"
    else:
        elem.text = str(value)


def format_xml(report: Report) -> str:
    root = ET.Element("DiagnosticReport")
    for key, value in report.to_dict().items():
        _append_xml(root, key, value)
    ET.indent(root)
    body = ET.tostring(root, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body


def format_text(report: Report) -> str:
    lines: List[str] = [
        "THREAD DUMP DIAGNOSTIC REPORT",
        "============================",
        "",
        f"Report ID: {report.id}",
        f"Timestamp: {report.timestamp.strftime(TIMESTAMP_FORMAT)}",
        f"Source: {report.source}",
        f"Status: {report.status.value}",
        "",
        "SUMMARY",
        "-------",
        report.summary,
        "",
    ]

    stats = report.statistics
    if stats is not None:
        lines += [
            "THREAD STATISTICS",
            "-----------------",
            f"Total Threads: {stats.total_threads}",
            f"Daemon Threads: {stats.daemon_threads}",
            f"Runnable Threads: {stats.runnable_threads}",
            f"Blocked Threads: {stats.blocked_threads}",
            f"Waiting Threads: {stats.waiting_threads}",
            "",
            "Threads by State:",
        ]
        lines += [f"  {state.value}: {count}" for state, count in stats.threads_by_state.items()]
        lines.append("")
        if stats.thread_groups:
            lines.append("Threads by Group:")
            lines += [f"  {group}: {count}" for group, count in stats.thread_groups.items()]
            lines.append("")

    if report.findings:
        lines += ["DIAGNOSTIC FINDINGS", "-------------------"]
        for i, finding in enumerate(report.findings, 1):
            lines.append(f"{i}. {finding.type.value} [{finding.severity.value}]")
            lines.append(f"   Description: {finding.description}")
            if finding.affected_threads:
                lines.append(f"   Affected Threads: {', '.join(finding.affected_threads)}")
            if finding.recommendation:
                lines.append(f"   Recommendation: {finding.recommendation}")
            lines.append("")

    if report.suggested_fixes:
        lines += ["SUGGESTED FIXES", "---------------"]
        lines += [f"{i}. {fix}" for i, fix in enumerate(report.suggested_fixes, 1)]
        lines.append("")

    lines.append("End of Report")
    return "\n".join(lines) + "\n"


FORMATTERS: Dict[ReportFormat, Callable[[Report], str]] = {
    ReportFormat.JSON: format_json,
    ReportFormat.XML: format_xml,
    ReportFormat.TEXT: format_text,
}


def format_report(report: Report, fmt: Any = ReportFormat.JSON) -> str:
    """Render a report; raises ValueError for an unknown format name."""
    report_format = ReportFormat.parse(fmt)
    return FORMATTERS[report_format](report)
