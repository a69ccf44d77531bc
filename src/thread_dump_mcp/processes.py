"""Discover local JVMs with ``jps`` and capture their thread dumps with ``jstack``."""

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from .config import get_command_timeout

logger = logging.getLogger(__name__)

JPS_COMMAND = "jps"
JSTACK_COMMAND = "jstack"
JVM_ARG_PREFIXES = ("-D", "-X", "-server", "-client", "-javaagent")


class ThreadDumpGenerationError(RuntimeError):
    pass


@dataclass
class JavaProcess:
    pid: int
    main_class: str
    display_name: str
    jvm_arguments: str
    application_arguments: str

    def to_dict(self):
        return {
            "pid": self.pid,
            "mainClass": self.main_class,
            "displayName": self.display_name,
            "jvmArguments": self.jvm_arguments,
            "applicationArguments": self.application_arguments,
        }


def parse_jps_line(line: str) -> Optional[JavaProcess]:
    """Parse one ``jps -v`` line: "PID MainClass args..."; None for anything else."""
    line = (line or "").strip()
    if not line or "Jps" in line:
        return None

    parts = line.split(None, 2)
    if len(parts) < 2:
        return None
    try:
        pid = int(parts[0])
    except ValueError:
        logger.warning("Failed to parse PID from jps line: %s", line)
        return None

    main_class = parts[1]
    jvm_args: List[str] = []
    app_args: List[str] = []
    for arg in (parts[2].split() if len(parts) > 2 else []):
        (jvm_args if arg.startswith(JVM_ARG_PREFIXES) else app_args).append(arg)

    display_name = main_class
    if main_class.endswith(".jar"):
        display_name = main_class.rsplit("/", 1)[-1]

    return JavaProcess(
        pid=pid,
        main_class=main_class,
        display_name=display_name,
        jvm_arguments=" ".join(jvm_args),
        application_arguments=" ".join(app_args),
    )


def list_java_processes() -> List[JavaProcess]:
    """Running JVMs as reported by ``jps -v``; empty when jps is unavailable."""
    try:
        proc = subprocess.run(
            [JPS_COMMAND, "-v"],
            capture_output=True,
            text=True,
            timeout=get_command_timeout(),
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.error("Error running jps command to detect Java processes: %s", e)
        return []

    if proc.returncode != 0:
        logger.warning("jps command exited with code: %d", proc.returncode)

    processes = [p for p in (parse_jps_line(line) for line in proc.stdout.splitlines()) if p]
    logger.info("Found %d Java processes", len(processes))
    return processes


def get_java_process(pid: int) -> Optional[JavaProcess]:
    for process in list_java_processes():
        if process.pid == pid:
            return process
    return None


def jstack_available() -> bool:
    try:
        proc = subprocess.run(
            [JSTACK_COMMAND, "-h"],
            capture_output=True,
            text=True,
            timeout=get_command_timeout(),
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("Thread dump generation not available: %s", e)
        return False
    # jstack -h exits 0 or 1; 127 means the command was not found
    return proc.returncode != 127


def generate_thread_dump(pid: int) -> str:
    """Run ``jstack <pid>`` and return its output.

    Raises:
        ValueError: pid is not a running Java process
        ThreadDumpGenerationError: jstack failed or printed nothing
    """
    logger.info("Generating thread dump for PID: %d", pid)
    if get_java_process(pid) is None:
        raise ValueError(f"PID {pid} is not a valid Java process or not found")

    try:
        proc = subprocess.run(
            [JSTACK_COMMAND, str(pid)],
            capture_output=True,
            text=True,
            timeout=get_command_timeout(),
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise ThreadDumpGenerationError(f"Failed to generate thread dump for PID {pid}: {e}") from e

    if proc.returncode != 0:
        error = proc.stderr.strip() or "Unknown error"
        logger.error("jstack command failed with exit code: %d, error: %s", proc.returncode, error)
        raise ThreadDumpGenerationError(f"Failed to generate thread dump for PID {pid}: {error}")
    if not proc.stdout.strip():
        raise ThreadDumpGenerationError(f"Thread dump generation produced no output for PID {pid}")

    logger.info("Successfully generated thread dump for PID: %d (%d characters)", pid, len(proc.stdout))
    return proc.stdout
