from thread_dump_mcp.models import Finding, FindingType, Severity, ThreadRecord, ThreadState
from thread_dump_mcp.statistics import compute_statistics
from thread_dump_mcp.synthesizer import HEALTHY_FIXES, suggest_fixes, summarize


def _finding(finding_type: FindingType, severity: Severity) -> Finding:
    return Finding(
        type=finding_type,
        description="d",
        severity=severity,
        affected_threads=[],
        recommendation="r",
    )


def test_empty_statistics_summary_and_fixes():
    stats = compute_statistics([])
    assert summarize(stats, []) == "Analyzed 0 threads. 0 runnable. No significant issues detected."
    assert suggest_fixes(stats, []) == HEALTHY_FIXES


def test_summary_counts_and_top_groups():
    records = (
        [ThreadRecord(name=f"pool-1-thread-{i}", state=ThreadState.WAITING) for i in range(3)]
        + [ThreadRecord(name="main", state=ThreadState.RUNNABLE)]
        + [ThreadRecord(name="Thread-9", state=ThreadState.BLOCKED)]
        + [ThreadRecord(name="http-nio-1", state=ThreadState.RUNNABLE)]
        + [ThreadRecord(name="http-nio-2", state=ThreadState.RUNNABLE)]
    )
    stats = compute_statistics(records)
    findings = [
        _finding(FindingType.THREAD_STARVATION, Severity.CRITICAL),
        _finding(FindingType.IDENTICAL_STACK_TRACES, Severity.MEDIUM),
        _finding(FindingType.IDENTICAL_STACK_TRACES, Severity.MEDIUM),
    ]
    assert summarize(stats, findings) == (
        "Analyzed 7 threads. 1 blocked, 3 waiting, 3 runnable. "
        "Top groups: Thread-Pool(3), HTTP/Web(2), Application(1). "
        "Found 3 issues (1 critical, 2 medium)."
    )


def test_summary_high_only_and_low_only():
    stats = compute_statistics([ThreadRecord(name="main", state=ThreadState.RUNNABLE)])
    high = [_finding(FindingType.LOCK_CONTENTION_HOTSPOT, Severity.HIGH)]
    assert summarize(stats, high).endswith("Found 1 issues (1 high).")
    low = [_finding(FindingType.HIGH_WAITING_THREADS, Severity.LOW)]
    assert summarize(stats, low).endswith("Found 1 issues (all low severity).")


def test_fix_order_statistics_then_findings_then_groups():
    records = (
        [ThreadRecord(name=f"worker-{i}", state=ThreadState.BLOCKED) for i in range(11)]
        + [ThreadRecord(name=f"http-nio-{i}", state=ThreadState.WAITING) for i in range(101)]
    )
    stats = compute_statistics(records)
    fixes = suggest_fixes(stats, [_finding(FindingType.POTENTIAL_DEADLOCK, Severity.HIGH)])

    assert fixes[:4] == [
        "Review synchronization mechanisms to reduce thread blocking",
        "Consider using lock-free data structures or reducing lock scope",
        "Optimize thread coordination and reduce unnecessary waiting",
        "Review timeout values for blocking operations",
    ]
    assert fixes[4] == "Implement consistent lock ordering across all threads"
    assert fixes[-1] == "Review HTTP/Web thread group usage - 101 threads may be excessive"
    assert HEALTHY_FIXES[0] not in fixes


def test_unmapped_finding_type_adds_nothing():
    stats = compute_statistics([])
    fixes = suggest_fixes(stats, [_finding(FindingType.HIGH_WAITING_THREADS, Severity.LOW)])
    assert fixes == HEALTHY_FIXES


def test_each_finding_contributes_its_fixes():
    stats = compute_statistics([])
    findings = [
        _finding(FindingType.CPU_HOTSPOT, Severity.MEDIUM),
        _finding(FindingType.CPU_HOTSPOT, Severity.MEDIUM),
    ]
    fixes = suggest_fixes(stats, findings)
    assert len(fixes) == 8
    assert fixes.count("Profile and optimize frequently called methods") == 2
