from typing import Dict, Iterable, List, Sequence, Tuple

from .models import Statistics, ThreadRecord, ThreadState

GC = "GC"
HTTP_WEB = "HTTP/Web"
DATABASE = "Database"
THREAD_POOL = "Thread-Pool"
JVM_INTERNAL = "JVM-Internal"
APPLICATION = "Application"
OTHER = "Other"

# Evaluated top to bottom; the first category with a matching substring wins.
CATEGORY_PATTERNS: List[Tuple[str, Tuple[str, ...]]] = [
    (GC, ("gc", "concurrent mark", "parallel gc", "g1")),
    (HTTP_WEB, ("http", "nio", "tomcat", "jetty", "netty")),
    (DATABASE, ("connection", "db", "hikari", "datasource", "sql")),
    (THREAD_POOL, ("pool", "executor", "worker", "scheduler")),
    (JVM_INTERNAL, ("jvm", "vm thread", "compiler", "sweeper", "finalizer", "reference handler")),
    (APPLICATION, ("main", "application", "business", "service")),
]


def categorize_thread(name: str) -> str:
    lower_name = (name or "").lower()
    for category, needles in CATEGORY_PATTERNS:
        if any(needle in lower_name for needle in needles):
            return category
    return OTHER


def group_by_category(records: Iterable[ThreadRecord]) -> Dict[str, List[ThreadRecord]]:
    groups: Dict[str, List[ThreadRecord]] = {}
    for record in records:
        groups.setdefault(categorize_thread(record.name), []).append(record)
    return groups


def compute_statistics(records: Sequence[ThreadRecord]) -> Statistics:
    """Count threads per state and per name category.

    waiting_threads covers both WAITING and TIMED_WAITING.
    """
    by_state: Dict[ThreadState, int] = {s: 0 for s in ThreadState}
    groups: Dict[str, int] = {}
    daemon = blocked = waiting = runnable = 0

    for record in records:
        by_state[record.state] += 1
        category = categorize_thread(record.name)
        groups[category] = groups.get(category, 0) + 1

        if record.daemon:
            daemon += 1
        if record.state is ThreadState.BLOCKED:
            blocked += 1
        elif record.state in (ThreadState.WAITING, ThreadState.TIMED_WAITING):
            waiting += 1
        elif record.state is ThreadState.RUNNABLE:
            runnable += 1

    return Statistics(
        total_threads=len(records),
        threads_by_state=by_state,
        daemon_threads=daemon,
        blocked_threads=blocked,
        waiting_threads=waiting,
        runnable_threads=runnable,
        thread_groups=groups,
    )
