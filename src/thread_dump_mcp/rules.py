"""Rule-based diagnostics over parsed thread records.

Each detector takes the full record list plus the statistics computed from it
and returns zero or more findings. ``DETECTORS`` fixes the order in which they
run; ``run_detectors`` concatenates their output.
"""

from typing import Callable, Dict, List, Sequence, Tuple

from .models import Finding, FindingType, Severity, Statistics, ThreadRecord, ThreadState
from .statistics import DATABASE, HTTP_WEB, group_by_category

Detector = Callable[[Sequence[ThreadRecord], Statistics], List[Finding]]

HIGH_THREAD_COUNT = 1000
HIGH_BLOCKED_COUNT = 10
SEVERE_BLOCKED_COUNT = 50
HIGH_WAITING_COUNT = 50
SEVERE_WAITING_COUNT = 200
CPU_HOTSPOT_MIN = 3
CPU_HOTSPOT_SEVERE = 10
CPU_HOTSPOT_LIMIT = 5
LOCK_HOTSPOT_MIN = 2
LOCK_HOTSPOT_LIMIT = 3
HTTP_THREAD_LIMIT = 200
DB_BLOCKED_LIMIT = 5
STARVATION_RUNNABLE_MIN = 2
EXCESSIVE_BLOCKING_PERCENT = 30.0
IDENTICAL_STACK_DEPTH = 5
IDENTICAL_STACK_MIN_GROUP = 3
SAMPLE_SIZE = 10


def extract_method_name(stack_line: str) -> str:
    """Return the frame token between "at " and "(", or the whole line."""
    if "(" in stack_line:
        start = stack_line.find("at ")
        start = start + 3 if start >= 0 else 0
        return stack_line[start:stack_line.index("(")]
    return stack_line


def _with_state(records: Sequence[ThreadRecord], *states: ThreadState) -> List[ThreadRecord]:
    return [r for r in records if r.state in states]


def _ranked(counts: Dict[str, int]) -> List[Tuple[str, int]]:
    # sorted() is stable, so equal counts keep first-encountered order
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def _method_counts(records: Sequence[ThreadRecord]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for record in records:
        for line in record.stack_trace:
            if "at " not in line:
                continue
            method = extract_method_name(line)
            counts[method] = counts.get(method, 0) + 1
    return counts


def _threads_with_method(records: Sequence[ThreadRecord], method: str) -> List[str]:
    return [
        r.name for r in records
        if any("at " in line and extract_method_name(line) == method for line in r.stack_trace)
    ]


def _group_by_lock(records: Sequence[ThreadRecord]) -> Dict[str, List[ThreadRecord]]:
    by_lock: Dict[str, List[ThreadRecord]] = {}
    for record in records:
        if record.lock_name is not None:
            by_lock.setdefault(record.lock_name, []).append(record)
    return by_lock


def detect_deadlocks(records: Sequence[ThreadRecord], stats: Statistics) -> List[Finding]:
    blocked = [r for r in records if r.state is ThreadState.BLOCKED and r.lock_name is not None]
    by_lock = _group_by_lock(blocked)
    contended = [lock for lock, waiters in by_lock.items() if len(waiters) > 1]

    if not contended and len(blocked) < 2:
        return []

    # Any lock with several waiters counts as a circular-wait signal; the
    # wait-for graph is not traced.
    severity = Severity.CRITICAL if contended else Severity.HIGH
    owners = {r.lock_name: r.lock_owner for r in blocked if r.lock_owner is not None}

    return [Finding(
        type=FindingType.POTENTIAL_DEADLOCK,
        description=(
            f"Multiple threads are blocked waiting for locks. {len(blocked)} threads involved."
        ),
        severity=severity,
        affected_threads=[r.name for r in blocked],
        recommendation=(
            "Implement consistent lock ordering across all threads and consider using timeout-based locking"
        ),
        details={
            "blockedThreadCount": len(blocked),
            "lockContention": {lock: len(waiters) for lock, waiters in by_lock.items()},
            "lockOwners": owners,
        },
    )]


def check_thread_count(records: Sequence[ThreadRecord], stats: Statistics) -> List[Finding]:
    total = len(records)
    if total <= HIGH_THREAD_COUNT:
        return []
    return [Finding(
        type=FindingType.HIGH_THREAD_COUNT,
        description=f"High number of threads detected: {total}",
        severity=Severity.MEDIUM,
        affected_threads=None,
        recommendation="Consider using thread pools and reducing thread creation",
        details={"threadCount": total},
    )]


def check_blocked_threads(records: Sequence[ThreadRecord], stats: Statistics) -> List[Finding]:
    blocked = _with_state(records, ThreadState.BLOCKED)
    if len(blocked) <= HIGH_BLOCKED_COUNT:
        return []

    by_lock = _group_by_lock(blocked)
    top_locks = _ranked({lock: len(waiters) for lock, waiters in by_lock.items()})[:3]
    sample = blocked[:SAMPLE_SIZE]
    lock_summary = ", ".join(f"{lock}({n} threads)" for lock, n in top_locks) or "none recorded"

    return [Finding(
        type=FindingType.HIGH_BLOCKED_THREADS,
        description=f"High number of blocked threads: {len(blocked)}. Top contended locks: {lock_summary}",
        severity=Severity.HIGH if len(blocked) > SEVERE_BLOCKED_COUNT else Severity.MEDIUM,
        affected_threads=[r.name for r in sample],
        recommendation=(
            "Review synchronization logic and reduce lock contention. "
            "Consider lock-free alternatives or finer-grained locking."
        ),
        details={
            "blockedCount": len(blocked),
            "topContendedLocks": [lock for lock, _ in top_locks],
            "lockContention": {lock: len(waiters) for lock, waiters in by_lock.items()},
            "waitingFor": {r.name: r.lock_name or "unknown" for r in sample},
        },
    )]


def _wait_pattern(record: ThreadRecord) -> str:
    if record.stack_trace:
        top = record.stack_trace[0]
        if "Object.wait" in top or "Thread.sleep" in top:
            idx = top.find("at ")
            return top[idx + 3:] if idx >= 0 else top
    return "Unknown wait"


def check_waiting_threads(records: Sequence[ThreadRecord], stats: Statistics) -> List[Finding]:
    waiting = _with_state(records, ThreadState.WAITING, ThreadState.TIMED_WAITING)
    if len(waiting) <= HIGH_WAITING_COUNT:
        return []

    patterns: Dict[str, int] = {}
    for record in waiting:
        pattern = _wait_pattern(record)
        patterns[pattern] = patterns.get(pattern, 0) + 1
    common = ", ".join(f"{p}({n})" for p, n in _ranked(patterns)[:3])

    return [Finding(
        type=FindingType.HIGH_WAITING_THREADS,
        description=f"High number of waiting threads: {len(waiting)}. Common wait patterns: {common}",
        severity=Severity.MEDIUM if len(waiting) > SEVERE_WAITING_COUNT else Severity.LOW,
        affected_threads=[r.name for r in waiting[:SAMPLE_SIZE]],
        recommendation=(
            "Review thread coordination and consider reducing wait times. "
            "Check if waiting is necessary or can be optimized."
        ),
        details={"waitingCount": len(waiting), "waitingPatterns": patterns},
    )]


def detect_cpu_hotspots(records: Sequence[ThreadRecord], stats: Statistics) -> List[Finding]:
    runnable = _with_state(records, ThreadState.RUNNABLE)
    hot = [(m, n) for m, n in _ranked(_method_counts(runnable)) if n > CPU_HOTSPOT_MIN]

    findings: List[Finding] = []
    for method, count in hot[:CPU_HOTSPOT_LIMIT]:
        affected = _threads_with_method(runnable, method)
        findings.append(Finding(
            type=FindingType.CPU_HOTSPOT,
            description=(
                f"Method frequently appears in runnable thread stack traces: {method} ({count} occurrences)"
            ),
            severity=Severity.HIGH if count > CPU_HOTSPOT_SEVERE else Severity.MEDIUM,
            affected_threads=affected,
            recommendation=(
                "Profile and optimize this frequently executed method. "
                "Consider caching or algorithm improvements."
            ),
            details={"method": method, "occurrences": count, "threadCount": len(affected)},
        ))
    return findings


def detect_lock_hotspots(records: Sequence[ThreadRecord], stats: Statistics) -> List[Finding]:
    blocked = _with_state(records, ThreadState.BLOCKED)
    hot = [(m, n) for m, n in _ranked(_method_counts(blocked)) if n > LOCK_HOTSPOT_MIN]

    findings: List[Finding] = []
    for method, count in hot[:LOCK_HOTSPOT_LIMIT]:
        affected = _threads_with_method(blocked, method)
        findings.append(Finding(
            type=FindingType.LOCK_CONTENTION_HOTSPOT,
            description=f"Method frequently causes thread blocking: {method} ({count} blocked threads)",
            severity=Severity.HIGH,
            affected_threads=affected,
            recommendation=(
                "Review synchronization in this method. "
                "Consider reducing lock scope or using lock-free alternatives."
            ),
            details={"method": method, "blockedCount": count, "threadCount": len(affected)},
        ))
    return findings


def analyze_thread_groups(records: Sequence[ThreadRecord], stats: Statistics) -> List[Finding]:
    groups = group_by_category(records)
    findings: List[Finding] = []

    http_threads = groups.get(HTTP_WEB, [])
    if len(http_threads) > HTTP_THREAD_LIMIT:
        findings.append(Finding(
            type=FindingType.EXCESSIVE_HTTP_THREADS,
            description=f"High number of HTTP/Web threads: {len(http_threads)}",
            severity=Severity.MEDIUM,
            affected_threads=[r.name for r in http_threads[:SAMPLE_SIZE]],
            recommendation="Review HTTP thread pool configuration and connection handling",
            details={"threadCount": len(http_threads), "category": HTTP_WEB},
        ))

    db_threads = groups.get(DATABASE, [])
    db_blocked = _with_state(db_threads, ThreadState.BLOCKED)
    if len(db_blocked) > DB_BLOCKED_LIMIT:
        findings.append(Finding(
            type=FindingType.DATABASE_CONNECTION_CONTENTION,
            description=(
                f"Multiple database threads are blocked: {len(db_blocked)} out of {len(db_threads)}"
            ),
            severity=Severity.HIGH,
            affected_threads=[r.name for r in db_blocked],
            recommendation="Check database connection pool configuration and query performance",
            details={"blockedThreads": len(db_blocked), "totalDbThreads": len(db_threads)},
        ))

    return findings


def detect_starvation(records: Sequence[ThreadRecord], stats: Statistics) -> List[Finding]:
    blocked = _with_state(records, ThreadState.BLOCKED)
    runnable_count = len(_with_state(records, ThreadState.RUNNABLE))
    total = len(records)
    findings: List[Finding] = []

    if blocked and runnable_count < STARVATION_RUNNABLE_MIN:
        findings.append(Finding(
            type=FindingType.THREAD_STARVATION,
            description=(
                f"Potential thread starvation: {len(blocked)} blocked threads "
                f"with only {runnable_count} runnable"
            ),
            severity=Severity.CRITICAL,
            affected_threads=[r.name for r in blocked[:5]],
            recommendation="Investigate lock contention and consider increasing thread pool sizes",
            details={"blockedThreads": len(blocked), "runnableThreads": runnable_count},
        ))

    percentage = len(blocked) * 100.0 / total if total else 0.0
    if percentage > EXCESSIVE_BLOCKING_PERCENT:
        findings.append(Finding(
            type=FindingType.EXCESSIVE_BLOCKING,
            description=(
                f"High percentage of blocked threads: {percentage:.1f}% ({len(blocked)} out of {total})"
            ),
            severity=Severity.HIGH,
            affected_threads=[r.name for r in blocked[:SAMPLE_SIZE]],
            recommendation="Review synchronization mechanisms and reduce lock contention",
            details={"blockingPercentage": percentage},
        ))

    return findings


def detect_identical_stacks(records: Sequence[ThreadRecord], stats: Statistics) -> List[Finding]:
    clusters: Dict[str, List[ThreadRecord]] = {}
    for record in records:
        if not record.stack_trace:
            continue
        key = "|".join(record.stack_trace[:IDENTICAL_STACK_DEPTH])
        clusters.setdefault(key, []).append(record)

    findings: List[Finding] = []
    for members in clusters.values():
        if len(members) < IDENTICAL_STACK_MIN_GROUP:
            continue
        findings.append(Finding(
            type=FindingType.IDENTICAL_STACK_TRACES,
            description=f"Multiple threads with identical stack traces: {len(members)} threads",
            severity=Severity.MEDIUM,
            affected_threads=[r.name for r in members],
            recommendation="Investigate potential resource contention or inefficient synchronization",
            details={
                "threadCount": len(members),
                "stackTrace": list(members[0].stack_trace[:3]),
            },
        ))
    return findings


DETECTORS: List[Detector] = [
    detect_deadlocks,
    check_thread_count,
    check_blocked_threads,
    check_waiting_threads,
    detect_cpu_hotspots,
    detect_lock_hotspots,
    analyze_thread_groups,
    detect_starvation,
    detect_identical_stacks,
]


def run_detectors(records: Sequence[ThreadRecord], stats: Statistics) -> List[Finding]:
    findings: List[Finding] = []
    for detector in DETECTORS:
        findings.extend(detector(records, stats))
    return findings
