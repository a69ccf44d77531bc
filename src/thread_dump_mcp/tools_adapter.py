import json
import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .analyzer import analyze_thread_dump
from .config import get_default_format, get_max_file_bytes
from .formatters import format_report
from .models import ReportFormat, ReportStatus
from .processes import ThreadDumpGenerationError, generate_thread_dump, list_java_processes
from .store import ReportNotFoundError, ReportStore

logger = logging.getLogger(__name__)

DEFAULT_STORE = ReportStore()


@dataclass
class Result:
    ok: bool
    text: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @staticmethod
    def ok_text(text: str) -> "Result":
        return Result(ok=True, text=text)

    @staticmethod
    def ok_json(payload: Dict) -> "Result":
        return Result(ok=True, text=json.dumps(payload))

    @staticmethod
    def err(code: str, message: str) -> "Result":
        return Result(ok=False, error_code=code, error_message=message)


# Tool logic shared by __main__.py, kept free of MCP types

def _resolve_format(fmt: Any) -> ReportFormat:
    if fmt is None or (isinstance(fmt, str) and not fmt.strip()):
        return get_default_format()
    return ReportFormat.parse(fmt)


def _read_dump_file(path: str) -> Result:
    if not os.path.exists(path):
        return Result.err("INVALID_PARAMS", f"File not found: {path}")
    if os.path.isdir(path):
        return Result.err("INVALID_PARAMS", f"Path is a directory: {path}")
    limit = get_max_file_bytes()
    if os.path.getsize(path) > limit:
        return Result.err("INTERNAL_ERROR", f"File too large (>{limit} bytes)")
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return Result.ok_text(f.read())


def analyze_tool_call(
    path: Optional[str] = None,
    content: Optional[str] = None,
    fmt: Any = None,
    source: Optional[str] = None,
    store: ReportStore = DEFAULT_STORE,
) -> Result:
    if path is not None and (not isinstance(path, str) or not path):
        return Result.err("INVALID_PARAMS", "'path' must be a non-empty string")
    if content is not None and not isinstance(content, str):
        return Result.err("INVALID_PARAMS", "'content' must be a string")
    if path is None and (content is None or not content.strip()):
        return Result.err("INVALID_PARAMS", "Either 'path' or non-empty 'content' is required")
    if source is not None and not isinstance(source, str):
        return Result.err("INVALID_PARAMS", "'source' must be a string")
    try:
        report_format = _resolve_format(fmt)
    except ValueError as e:
        return Result.err("INVALID_PARAMS", str(e))

    try:
        if path is not None:
            loaded = _read_dump_file(path)
            if not loaded.ok:
                return loaded
            text = loaded.text or ""
            source = source or path
        else:
            text = content or ""

        report = store.save(analyze_thread_dump(text, source))
        if report.status is ReportStatus.ERROR:
            logger.warning("Analysis of %s failed: %s", report.source, report.summary)
        return Result.ok_text(format_report(report, report_format))
    except Exception as e:  # pragma: no cover
        logger.exception("Error analyzing thread dump")
        return Result.err("INTERNAL_ERROR", f"Exception: {e}")


def get_report_call(report_id: str, fmt: Any = None, store: ReportStore = DEFAULT_STORE) -> Result:
    if not isinstance(report_id, str) or not report_id:
        return Result.err("INVALID_PARAMS", "'report_id' must be a non-empty string")
    try:
        report_format = _resolve_format(fmt)
        return Result.ok_text(format_report(store.get(report_id), report_format))
    except ReportNotFoundError as e:
        return Result.err("INVALID_PARAMS", str(e))
    except ValueError as e:
        return Result.err("INVALID_PARAMS", str(e))


def list_reports_call(store: ReportStore = DEFAULT_STORE) -> Result:
    reports = sorted(store.list(), key=lambda r: r.timestamp)
    payload = {
        "reports": [
            {
                "id": r.id,
                "timestamp": r.to_dict()["timestamp"],
                "source": r.source,
                "status": r.status.value,
                "summary": r.summary,
            }
            for r in reports
        ],
        "count": len(reports),
    }
    return Result.ok_json(payload)


def delete_report_call(report_id: str, store: ReportStore = DEFAULT_STORE) -> Result:
    if not isinstance(report_id, str) or not report_id:
        return Result.err("INVALID_PARAMS", "'report_id' must be a non-empty string")
    try:
        store.delete(report_id)
    except ReportNotFoundError as e:
        return Result.err("INVALID_PARAMS", str(e))
    return Result.ok_json({"deleted": report_id})


def _format_processes(processes, report_format: ReportFormat) -> str:
    if report_format is ReportFormat.TEXT:
        lines = [f"Running Java Processes ({len(processes)} found):", "=" * 37, ""]
        for p in processes:
            lines.append(f"PID: {p.pid}")
            lines.append(f"Main Class: {p.main_class}")
            lines.append(f"Display Name: {p.display_name}")
            if p.jvm_arguments:
                lines.append(f"JVM Arguments: {p.jvm_arguments}")
            if p.application_arguments:
                lines.append(f"Application Arguments: {p.application_arguments}")
            lines.append("")
        return "\n".join(lines)
    if report_format is ReportFormat.XML:
        root = ET.Element("javaProcesses", count=str(len(processes)))
        for p in processes:
            node = ET.SubElement(root, "process")
            for key, value in p.to_dict().items():
                ET.SubElement(node, key).text = str(value)
        ET.indent(root)
        return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")
    return json.dumps({"javaProcesses": [p.to_dict() for p in processes], "count": len(processes)}, indent=2)


def list_processes_call(fmt: Any = None) -> Result:
    try:
        report_format = _resolve_format(fmt)
    except ValueError as e:
        return Result.err("INVALID_PARAMS", str(e))
    return Result.ok_text(_format_processes(list_java_processes(), report_format))


def generate_dump_call(
    pid: int,
    analyze: bool = True,
    fmt: Any = None,
    store: ReportStore = DEFAULT_STORE,
) -> Result:
    if isinstance(pid, bool) or not isinstance(pid, int) or pid <= 0:
        return Result.err("INVALID_PARAMS", "'pid' must be a positive integer")
    try:
        report_format = _resolve_format(fmt)
    except ValueError as e:
        return Result.err("INVALID_PARAMS", str(e))

    try:
        dump = generate_thread_dump(pid)
    except ValueError as e:
        return Result.err("INVALID_PARAMS", str(e))
    except ThreadDumpGenerationError as e:
        return Result.err("INTERNAL_ERROR", str(e))

    if not analyze:
        return Result.ok_text(dump)
    report = store.save(analyze_thread_dump(dump, f"pid:{pid}"))
    return Result.ok_text(format_report(report, report_format))
