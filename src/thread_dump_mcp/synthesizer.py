from typing import Dict, List, Sequence

from .models import Finding, FindingType, Severity, Statistics
from .rules import HIGH_BLOCKED_COUNT, HIGH_THREAD_COUNT, HIGH_WAITING_COUNT

GROUP_ADVISORY_COUNT = 100

FIXES_BY_TYPE: Dict[FindingType, List[str]] = {
    FindingType.POTENTIAL_DEADLOCK: [
        "Implement consistent lock ordering across all threads",
        "Use timeout-based locking mechanisms (tryLock with timeout)",
        "Consider using higher-level concurrency utilities like java.util.concurrent",
        "Review lock acquisition patterns and minimize lock holding time",
    ],
    FindingType.HIGH_THREAD_COUNT: [
        "Implement thread pooling with appropriate pool sizes",
        "Review thread lifecycle management and ensure proper cleanup",
        "Consider using virtual threads (Project Loom) if available",
    ],
    FindingType.CPU_HOTSPOT: [
        "Profile and optimize frequently called methods",
        "Consider caching results for expensive operations",
        "Review algorithms for performance improvements",
        "Consider parallel processing for CPU-intensive tasks",
    ],
    FindingType.LOCK_CONTENTION_HOTSPOT: [
        "Reduce synchronization scope and use finer-grained locking",
        "Consider lock-free data structures and algorithms",
        "Use concurrent collections instead of synchronized collections",
        "Implement read-write locks where appropriate",
    ],
    FindingType.HIGH_BLOCKED_THREADS: [
        "Analyze lock contention and reduce synchronization overhead",
        "Consider using non-blocking algorithms and data structures",
        "Review critical sections and minimize lock holding time",
    ],
    FindingType.THREAD_STARVATION: [
        "Increase thread pool sizes or use adaptive sizing",
        "Review thread priorities and scheduling",
        "Implement fair locking mechanisms",
        "Consider using separate thread pools for different task types",
    ],
    FindingType.EXCESSIVE_HTTP_THREADS: [
        "Tune HTTP connector thread pool configuration",
        "Implement connection pooling and keep-alive optimization",
        "Review request processing efficiency",
    ],
    FindingType.DATABASE_CONNECTION_CONTENTION: [
        "Increase database connection pool size",
        "Optimize database queries and reduce query execution time",
        "Implement connection leak detection and prevention",
        "Consider using read replicas for read-heavy workloads",
    ],
    FindingType.EXCESSIVE_BLOCKING: [
        "Review synchronization patterns and reduce lock usage",
        "Implement asynchronous processing where possible",
        "Use message queues for decoupling components",
    ],
    FindingType.IDENTICAL_STACK_TRACES: [
        "Investigate shared resource bottlenecks",
        "Consider load balancing or partitioning strategies",
        "Review serialization points in the application",
    ],
}

HEALTHY_FIXES = [
    "Thread dump appears healthy. Continue monitoring for performance trends.",
    "Consider implementing thread dump collection automation for trend analysis.",
]


def suggest_fixes(stats: Statistics, findings: Sequence[Finding]) -> List[str]:
    fixes: List[str] = []

    if stats.total_threads > HIGH_THREAD_COUNT:
        fixes.append("Consider implementing thread pooling to reduce the total number of threads")
    if stats.blocked_threads > HIGH_BLOCKED_COUNT:
        fixes.append("Review synchronization mechanisms to reduce thread blocking")
        fixes.append("Consider using lock-free data structures or reducing lock scope")
    if stats.waiting_threads > HIGH_WAITING_COUNT:
        fixes.append("Optimize thread coordination and reduce unnecessary waiting")
        fixes.append("Review timeout values for blocking operations")

    for finding in findings:
        fixes.extend(FIXES_BY_TYPE.get(finding.type, []))

    for group, count in stats.thread_groups.items():
        if count > GROUP_ADVISORY_COUNT:
            fixes.append(f"Review {group} thread group usage - {count} threads may be excessive")

    if not fixes:
        fixes.extend(HEALTHY_FIXES)
    return fixes


def _findings_clause(findings: Sequence[Finding]) -> str:
    if not findings:
        return "No significant issues detected."

    tiers = []
    for severity in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM):
        count = sum(1 for f in findings if f.severity is severity)
        if count:
            tiers.append(f"{count} {severity.value.lower()}")
    breakdown = ", ".join(tiers) if tiers else "all low severity"
    return f"Found {len(findings)} issues ({breakdown})."


def summarize(stats: Statistics, findings: Sequence[Finding]) -> str:
    """One-paragraph summary: thread counts, busiest categories, finding tiers."""
    parts = [f"Analyzed {stats.total_threads} threads. "]
    if stats.blocked_threads > 0:
        parts.append(f"{stats.blocked_threads} blocked, ")
    if stats.waiting_threads > 0:
        parts.append(f"{stats.waiting_threads} waiting, ")
    parts.append(f"{stats.runnable_threads} runnable. ")

    if stats.thread_groups:
        top = sorted(stats.thread_groups.items(), key=lambda item: item[1], reverse=True)[:3]
        parts.append("Top groups: " + ", ".join(f"{g}({n})" for g, n in top) + ". ")

    parts.append(_findings_clause(findings))
    return "".join(parts)
