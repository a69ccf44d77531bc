"""Configuration from environment."""

import os

from .models import ReportFormat

DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024
DEFAULT_COMMAND_TIMEOUT = 30.0


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def get_max_file_bytes() -> int:
    """Largest dump file the analyze tool will read. Default: 10 MiB."""
    return _int_env("THREAD_DUMP_MAX_FILE_BYTES", DEFAULT_MAX_FILE_BYTES)


def get_default_format() -> ReportFormat:
    """Report format used when a tool call names none. Default: JSON."""
    raw = os.environ.get("THREAD_DUMP_DEFAULT_FORMAT", "JSON").strip()
    try:
        return ReportFormat.parse(raw)
    except ValueError:
        return ReportFormat.JSON


def get_log_level() -> str:
    return os.environ.get("THREAD_DUMP_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"


def get_command_timeout() -> float:
    """Seconds to wait for jps/jstack before giving up."""
    raw = os.environ.get("THREAD_DUMP_COMMAND_TIMEOUT", "").strip()
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_COMMAND_TIMEOUT
    return value if value > 0 else DEFAULT_COMMAND_TIMEOUT
