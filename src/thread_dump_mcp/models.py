from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# Plain data only: no MCP imports here so the analysis core can be used
# (and tested) without the MCP runtime libraries.

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class ThreadState(str, Enum):
    NEW = "NEW"
    RUNNABLE = "RUNNABLE"
    BLOCKED = "BLOCKED"
    WAITING = "WAITING"
    TIMED_WAITING = "TIMED_WAITING"
    TERMINATED = "TERMINATED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_word(cls, word: Optional[str]) -> "ThreadState":
        """Map a raw state word to a member, degrading to UNKNOWN."""
        if not word:
            return cls.UNKNOWN
        try:
            return cls[word.strip().upper()]
        except KeyError:
            return cls.UNKNOWN


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class FindingType(str, Enum):
    POTENTIAL_DEADLOCK = "POTENTIAL_DEADLOCK"
    HIGH_THREAD_COUNT = "HIGH_THREAD_COUNT"
    HIGH_BLOCKED_THREADS = "HIGH_BLOCKED_THREADS"
    HIGH_WAITING_THREADS = "HIGH_WAITING_THREADS"
    CPU_HOTSPOT = "CPU_HOTSPOT"
    LOCK_CONTENTION_HOTSPOT = "LOCK_CONTENTION_HOTSPOT"
    EXCESSIVE_HTTP_THREADS = "EXCESSIVE_HTTP_THREADS"
    DATABASE_CONNECTION_CONTENTION = "DATABASE_CONNECTION_CONTENTION"
    THREAD_STARVATION = "THREAD_STARVATION"
    EXCESSIVE_BLOCKING = "EXCESSIVE_BLOCKING"
    IDENTICAL_STACK_TRACES = "IDENTICAL_STACK_TRACES"


class ReportStatus(str, Enum):
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class ReportFormat(str, Enum):
    JSON = "JSON"
    XML = "XML"
    TEXT = "TEXT"

    @classmethod
    def parse(cls, value: Any) -> "ReportFormat":
        if isinstance(value, ReportFormat):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        supported = ", ".join(f.value for f in cls)
        raise ValueError(f"Unsupported format '{value}'. Supported formats: {supported}")


@dataclass(frozen=True)
class ThreadRecord:
    name: str = ""
    id: int = 0
    state: ThreadState = ThreadState.UNKNOWN
    priority: int = 0
    daemon: bool = False
    lock_name: Optional[str] = None
    lock_owner: Optional[str] = None
    stack_trace: Tuple[str, ...] = ()
    group: Optional[str] = None
    tid: Optional[str] = None
    nid: Optional[str] = None


@dataclass
class Statistics:
    total_threads: int
    threads_by_state: Dict[ThreadState, int]
    daemon_threads: int
    blocked_threads: int
    waiting_threads: int
    runnable_threads: int
    thread_groups: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalThreads": self.total_threads,
            "threadsByState": {s.value: n for s, n in self.threads_by_state.items()},
            "daemonThreads": self.daemon_threads,
            "blockedThreads": self.blocked_threads,
            "waitingThreads": self.waiting_threads,
            "runnableThreads": self.runnable_threads,
            "threadGroups": dict(self.thread_groups),
        }


@dataclass
class Finding:
    type: FindingType
    description: str
    severity: Severity
    affected_threads: Optional[List[str]]
    recommendation: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "description": self.description,
            "severity": self.severity.value,
            "affectedThreads": list(self.affected_threads) if self.affected_threads is not None else None,
            "recommendation": self.recommendation,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class Report:
    id: str
    timestamp: datetime
    source: str
    statistics: Optional[Statistics]
    findings: List[Finding]
    suggested_fixes: List[str]
    status: ReportStatus
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.strftime(TIMESTAMP_FORMAT),
            "source": self.source,
            "statistics": self.statistics.to_dict() if self.statistics is not None else None,
            "findings": [f.to_dict() for f in self.findings],
            "suggestedFixes": list(self.suggested_fixes),
            "status": self.status.value,
            "summary": self.summary,
        }
