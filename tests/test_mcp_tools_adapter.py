from pathlib import Path
import json

import pytest

from thread_dump_mcp import processes
from thread_dump_mcp.processes import JavaProcess, ThreadDumpGenerationError
from thread_dump_mcp.store import ReportStore
from thread_dump_mcp.tools_adapter import (
    analyze_tool_call,
    delete_report_call,
    generate_dump_call,
    get_report_call,
    list_processes_call,
    list_reports_call,
)

BASE_DIR = Path(__file__).parent


@pytest.fixture
def store():
    return ReportStore()


def test_analyze_adapter_happy_path(store):
    path = str(BASE_DIR / "sample_thread_dump.txt")
    result = analyze_tool_call(path, store=store)
    assert result.ok, f"expected ok result, got error {result.error_code}: {result.error_message}"

    payload = json.loads(result.text or "{}")
    assert payload["status"] == "COMPLETED"
    assert payload["source"] == path
    states = payload["statistics"]["threadsByState"]
    assert states["RUNNABLE"] == 2
    assert states["WAITING"] == 2
    assert states["BLOCKED"] == 2
    assert states["TIMED_WAITING"] == 1
    assert states["NEW"] == 0
    assert states["TERMINATED"] == 0
    assert payload["findings"] == []
    assert len(store) == 1


def test_analyze_adapter_inline_content_and_source(store):
    content = (BASE_DIR / "sample_thread_dump_2.txt").read_text(encoding="utf-8")
    result = analyze_tool_call(content=content, source="prod-node-3", store=store)
    assert result.ok

    payload = json.loads(result.text or "{}")
    assert payload["source"] == "prod-node-3"
    types = [f["type"] for f in payload["findings"]]
    assert "THREAD_STARVATION" in types
    assert "IDENTICAL_STACK_TRACES" in types


def test_analyze_adapter_text_format(store):
    path = str(BASE_DIR / "sample_thread_dump_2.txt")
    result = analyze_tool_call(path, fmt="text", store=store)
    assert result.ok
    assert result.text.startswith("THREAD DUMP DIAGNOSTIC REPORT")
    assert "DIAGNOSTIC FINDINGS" in result.text


def test_analyze_adapter_missing_file_error(store):
    result = analyze_tool_call("/path/that/does/not/exist.txt", store=store)
    assert not result.ok
    assert result.error_code == "INVALID_PARAMS"
    assert len(store) == 0


def test_analyze_adapter_invalid_arguments(store):
    assert analyze_tool_call(store=store).error_code == "INVALID_PARAMS"
    assert analyze_tool_call(content="   ", store=store).error_code == "INVALID_PARAMS"
    assert analyze_tool_call(content=42, store=store).error_code == "INVALID_PARAMS"

    bad_format = analyze_tool_call(content='"main" #1 prio=5\n', fmt="yaml", store=store)
    assert not bad_format.ok
    assert bad_format.error_code == "INVALID_PARAMS"
    assert "Supported formats: JSON, XML, TEXT" in bad_format.error_message


def test_analyze_adapter_file_too_large(store, tmp_path, monkeypatch):
    monkeypatch.setenv("THREAD_DUMP_MAX_FILE_BYTES", "16")
    dump = tmp_path / "big.txt"
    dump.write_text('"main" #1 prio=5 os_prio=0 tid=0x1 nid=0x1 runnable\n', encoding="utf-8")
    result = analyze_tool_call(str(dump), store=store)
    assert not result.ok
    assert result.error_code == "INTERNAL_ERROR"


def test_report_lifecycle(store):
    created = json.loads(analyze_tool_call(str(BASE_DIR / "sample_thread_dump.txt"), store=store).text)
    report_id = created["id"]

    fetched = get_report_call(report_id, fmt="XML", store=store)
    assert fetched.ok
    assert fetched.text.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert f"<id>{report_id}</id>" in fetched.text

    listed = json.loads(list_reports_call(store=store).text)
    assert listed["count"] == 1
    assert listed["reports"][0]["id"] == report_id
    assert listed["reports"][0]["status"] == "COMPLETED"

    deleted = delete_report_call(report_id, store=store)
    assert json.loads(deleted.text) == {"deleted": report_id}
    assert json.loads(list_reports_call(store=store).text)["count"] == 0

    missing = get_report_call(report_id, store=store)
    assert missing.error_code == "INVALID_PARAMS"
    assert missing.error_message == f"Report not found: {report_id}"
    assert delete_report_call(report_id, store=store).error_code == "INVALID_PARAMS"


def test_get_report_requires_id(store):
    assert get_report_call("", store=store).error_code == "INVALID_PARAMS"
    assert delete_report_call(None, store=store).error_code == "INVALID_PARAMS"


def test_list_processes_formats(monkeypatch):
    running = [JavaProcess(4242, "com.example.App", "com.example.App", "-Xmx1g", "--port 80")]
    monkeypatch.setattr("thread_dump_mcp.tools_adapter.list_java_processes", lambda: running)

    as_json = json.loads(list_processes_call().text)
    assert as_json["count"] == 1
    assert as_json["javaProcesses"][0]["pid"] == 4242

    as_text = list_processes_call(fmt="TEXT").text
    assert "Running Java Processes (1 found):" in as_text
    assert "JVM Arguments: -Xmx1g" in as_text

    assert "<pid>4242</pid>" in list_processes_call(fmt="xml").text
    assert list_processes_call(fmt="csv").error_code == "INVALID_PARAMS"


@pytest.mark.parametrize("pid", [0, -3, "123", True, None])
def test_generate_dump_rejects_bad_pid(store, pid):
    result = generate_dump_call(pid, store=store)
    assert not result.ok
    assert result.error_code == "INVALID_PARAMS"


def test_generate_dump_unknown_process(store, monkeypatch):
    monkeypatch.setattr(processes, "list_java_processes", lambda: [])
    result = generate_dump_call(999999, store=store)
    assert result.error_code == "INVALID_PARAMS"
    assert "not a valid Java process" in result.error_message


def test_generate_dump_failure(store, monkeypatch):
    def fail(pid):
        raise ThreadDumpGenerationError("jstack exploded")

    monkeypatch.setattr("thread_dump_mcp.tools_adapter.generate_thread_dump", fail)
    result = generate_dump_call(77, store=store)
    assert result.error_code == "INTERNAL_ERROR"
    assert result.error_message == "jstack exploded"


def test_generate_dump_raw_and_analyzed(store, monkeypatch):
    dump = (BASE_DIR / "sample_thread_dump.txt").read_text(encoding="utf-8")
    monkeypatch.setattr("thread_dump_mcp.tools_adapter.generate_thread_dump", lambda pid: dump)

    raw = generate_dump_call(77, analyze=False, store=store)
    assert raw.text == dump
    assert len(store) == 0

    analyzed = json.loads(generate_dump_call(77, store=store).text)
    assert analyzed["source"] == "pid:77"
    assert analyzed["statistics"]["totalThreads"] == 7
    assert len(store) == 1
