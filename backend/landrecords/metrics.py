"""In-process metrics rendered in the Prometheus text exposition format.

A series is a metric name plus a sorted tuple of label pairs. Label values
must come from a bounded set (route templates, enum values, outcome names),
never from raw request input, or the registry grows with every new value.
"""
from __future__ import annotations

import threading
from typing import Dict, List, Mapping, Optional, Tuple

LabelSet = Tuple[Tuple[str, str], ...]
SeriesKey = Tuple[str, LabelSet]

_lock = threading.Lock()
_counters: Dict[SeriesKey, float] = {}
_gauges: Dict[SeriesKey, float] = {}
# name -> [sum, count]
_summaries: Dict[SeriesKey, List[float]] = {}


def _series(name: str, labels: Optional[Mapping[str, str]]) -> SeriesKey:
    return name, tuple(sorted((k, str(v)) for k, v in (labels or {}).items()))


def counter_inc(name: str, labels: Optional[Mapping[str, str]] = None, amount: float = 1.0) -> None:
    key = _series(name, labels)
    with _lock:
        _counters[key] = _counters.get(key, 0.0) + float(amount)


def counter_value(name: str, labels: Optional[Mapping[str, str]] = None) -> float:
    with _lock:
        return _counters.get(_series(name, labels), 0.0)


def gauge_add(name: str, delta: float, labels: Optional[Mapping[str, str]] = None) -> None:
    key = _series(name, labels)
    with _lock:
        _gauges[key] = _gauges.get(key, 0.0) + float(delta)


def summary_observe(name: str, value: float, labels: Optional[Mapping[str, str]] = None) -> None:
    key = _series(name, labels)
    with _lock:
        acc = _summaries.setdefault(key, [0.0, 0])
        acc[0] += float(value)
        acc[1] += 1


def summary_count(name: str, labels: Optional[Mapping[str, str]] = None) -> int:
    with _lock:
        acc = _summaries.get(_series(name, labels))
        return int(acc[1]) if acc else 0


def series_count(name: str) -> int:
    """Number of distinct label sets recorded under ``name``."""
    with _lock:
        return sum(1 for store in (_counters, _gauges, _summaries) for n, _ in store if n == name)


def _fmt(labels: LabelSet) -> str:
    if not labels:
        return ""
    body = ",".join('{}="{}"'.format(k, v.replace("\\", "\\\\").replace('"', '\\"')) for k, v in labels)
    return "{" + body + "}"


def render_prometheus() -> str:
    lines: List[str] = []
    with _lock:
        for kind, store in (("counter", _counters), ("gauge", _gauges)):
            seen = set()
            for (name, labels), value in sorted(store.items()):
                if name not in seen:
                    lines.append(f"# TYPE {name} {kind}")
                    seen.add(name)
                lines.append(f"{name}{_fmt(labels)} {value}")
        seen = set()
        for (name, labels), (total, count) in sorted(_summaries.items()):
            if name not in seen:
                lines.append(f"# TYPE {name} summary")
                seen.add(name)
            lines.append(f"{name}_sum{_fmt(labels)} {total}")
            lines.append(f"{name}_count{_fmt(labels)} {int(count)}")
    return "\n".join(lines) + "\n"
