import subprocess

import pytest

from thread_dump_mcp import processes
from thread_dump_mcp.processes import (
    ThreadDumpGenerationError,
    generate_thread_dump,
    get_java_process,
    jstack_available,
    list_java_processes,
    parse_jps_line,
)

JPS_OUTPUT = """\
4242 com.example.App -Xmx512m -Dspring.profiles.active=prod --port 8080
5151 /opt/services/billing.jar -server -javaagent:/opt/agent.jar batch
6060 Jps -Dapplication.home=/usr/lib/jvm -Xms8m
"""


def _completed(args, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)


def test_parse_jps_line_splits_arguments():
    process = parse_jps_line("4242 com.example.App -Xmx512m -Dspring.profiles.active=prod --port 8080")
    assert process.pid == 4242
    assert process.main_class == "com.example.App"
    assert process.display_name == "com.example.App"
    assert process.jvm_arguments == "-Xmx512m -Dspring.profiles.active=prod"
    assert process.application_arguments == "--port 8080"


def test_parse_jps_line_jar_display_name():
    process = parse_jps_line("5151 /opt/services/billing.jar")
    assert process.display_name == "billing.jar"
    assert process.jvm_arguments == ""


@pytest.mark.parametrize("line", ["", "   ", "6060 Jps -Xms8m", "abc com.example.App", "1234"])
def test_parse_jps_line_rejects(line):
    assert parse_jps_line(line) is None


def test_list_java_processes(monkeypatch):
    calls = []

    def fake_run(args, **kwargs):
        calls.append(args)
        return _completed(args, stdout=JPS_OUTPUT)

    monkeypatch.setattr(subprocess, "run", fake_run)
    found = list_java_processes()
    assert [p.pid for p in found] == [4242, 5151]
    assert calls == [["jps", "-v"]]
    assert found[1].to_dict()["jvmArguments"] == "-server -javaagent:/opt/agent.jar"


def test_list_java_processes_without_jps(monkeypatch):
    def missing(args, **kwargs):
        raise FileNotFoundError("jps")

    monkeypatch.setattr(subprocess, "run", missing)
    assert list_java_processes() == []


def test_get_java_process(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda args, **kw: _completed(args, stdout=JPS_OUTPUT))
    assert get_java_process(5151).display_name == "billing.jar"
    assert get_java_process(6060) is None


def test_jstack_available(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda args, **kw: _completed(args, returncode=1))
    assert jstack_available()
    monkeypatch.setattr(subprocess, "run", lambda args, **kw: _completed(args, returncode=127))
    assert not jstack_available()


def test_generate_thread_dump(monkeypatch):
    dump = '"main" #1 prio=5 os_prio=0 tid=0x1 nid=0x1 runnable\n'

    def fake_run(args, **kwargs):
        if args[0] == "jps":
            return _completed(args, stdout=JPS_OUTPUT)
        assert args == ["jstack", "4242"]
        return _completed(args, stdout=dump)

    monkeypatch.setattr(subprocess, "run", fake_run)
    assert generate_thread_dump(4242) == dump


def test_generate_thread_dump_unknown_pid(monkeypatch):
    monkeypatch.setattr(processes, "list_java_processes", lambda: [])
    with pytest.raises(ValueError, match="PID 99 is not a valid Java process"):
        generate_thread_dump(99)


@pytest.mark.parametrize(
    "result, message",
    [
        (dict(returncode=1, stderr="Unable to open socket file"), "Unable to open socket file"),
        (dict(returncode=1, stderr=""), "Unknown error"),
        (dict(returncode=0, stdout="  \n"), "produced no output"),
    ],
)
def test_generate_thread_dump_failures(monkeypatch, result, message):
    def fake_run(args, **kwargs):
        if args[0] == "jps":
            return _completed(args, stdout=JPS_OUTPUT)
        return _completed(args, **result)

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(ThreadDumpGenerationError, match=message):
        generate_thread_dump(4242)


def test_generate_thread_dump_timeout(monkeypatch):
    def fake_run(args, **kwargs):
        if args[0] == "jps":
            return _completed(args, stdout=JPS_OUTPUT)
        raise subprocess.TimeoutExpired(args, kwargs["timeout"])

    monkeypatch.setenv("THREAD_DUMP_COMMAND_TIMEOUT", "2.5")
    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(ThreadDumpGenerationError, match="Failed to generate thread dump for PID 4242"):
        generate_thread_dump(4242)
