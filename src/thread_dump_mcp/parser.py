import re
from typing import Any, List, Mapping, Optional, Tuple

from .models import ThreadRecord, ThreadState

# A segment starts at a line whose first token is a quoted name followed by "#<id>".
segment_start_re = re.compile(r'^[ \t]*(?P<quote>")[^"\n]*"\s*#\d+', re.MULTILINE)

# "pool-1-thread-3" #15 daemon prio=5 os_prio=0 tid=0x00007f... nid=0x1234 waiting on condition
thread_header_re = re.compile(
    r'"(?P<name>[^"\n]*)"\s*#(?P<id>\d+)'
    r'[^\n]*?\bprio=(?P<prio>\d+)'
    r'(?:[^\n]*?\btid=(?P<tid>0x[0-9a-fA-F]+|\w+))?'
    r'(?:[^\n]*?\bnid=(?P<nid>0x[0-9a-fA-F]+|\w+))?'
)
state_re = re.compile(r'java\.lang\.Thread\.State:\s*(?P<state>\w+)')


def split_segments(text: str) -> List[str]:
    """Split dump text into per-thread segments; text before the first header is dropped."""
    starts = [m.start('quote') for m in segment_start_re.finditer(text)]
    segments: List[str] = []
    for idx, start in enumerate(starts):
        end = starts[idx + 1] if idx + 1 < len(starts) else len(text)
        segments.append(text[start:end])
    return segments


def extract_stack_trace(segment: str) -> List[str]:
    frames: List[str] = []
    for line in segment.splitlines():
        stripped = line.strip()
        if stripped.startswith("at "):
            frames.append(stripped)
        elif frames and not stripped:
            break
    return frames


def parse_segment(segment: str) -> ThreadRecord:
    name = ""
    thread_id = 0
    priority = 0
    tid: Optional[str] = None
    nid: Optional[str] = None

    m_header = thread_header_re.match(segment)
    if m_header:
        name = m_header.group('name')
        thread_id = int(m_header.group('id'))
        priority = int(m_header.group('prio'))
        tid = m_header.group('tid')
        nid = m_header.group('nid')

    m_state = state_re.search(segment)
    state = ThreadState.from_word(m_state.group('state')) if m_state else ThreadState.UNKNOWN

    return ThreadRecord(
        name=name,
        id=thread_id,
        state=state,
        priority=priority,
        daemon="daemon" in segment,
        stack_trace=tuple(extract_stack_trace(segment)),
        tid=tid,
        nid=nid,
    )


def parse_thread_dump(text: Optional[str]) -> List[ThreadRecord]:
    """Parse raw jstack-style text into thread records.

    Never raises: a segment whose header cannot be matched still yields a
    record with zero-valued name/id/priority and an UNKNOWN state.
    """
    if not text or not text.strip():
        return []
    return [parse_segment(segment) for segment in split_segments(text)]


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _to_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _to_frames(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        lines = value.splitlines()
    else:
        lines = [str(frame) for frame in value]
    return tuple(line.strip() for line in lines if line.strip())


def record_from_mapping(data: Mapping[str, Any]) -> ThreadRecord:
    """Build a record from structured introspection output (e.g. a JMX thread export).

    Accepts camelCase or snake_case keys. Unlike text parsing this carries
    lock name and owner through to the record. Values that do not convert
    (a non-numeric id, say) fall back to the zero value; a string stack trace
    is split into one frame per line.
    """
    state = _pick(data, "state", "threadState")
    if not isinstance(state, ThreadState):
        state = ThreadState.from_word(str(state) if state is not None else None)
    return ThreadRecord(
        name=str(_pick(data, "name", "threadName", default="")),
        id=_to_int(_pick(data, "id", "threadId")),
        state=state,
        priority=_to_int(_pick(data, "priority")),
        daemon=_to_bool(_pick(data, "daemon", default=False)),
        lock_name=_pick(data, "lockName", "lock_name"),
        lock_owner=_pick(data, "lockOwner", "lock_owner", "lockOwnerName"),
        stack_trace=_to_frames(_pick(data, "stackTrace", "stack_trace")),
        group=_pick(data, "group"),
        tid=_pick(data, "tid"),
        nid=_pick(data, "nid"),
    )
