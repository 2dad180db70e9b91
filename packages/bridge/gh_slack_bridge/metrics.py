"""
Request and notification counters with Prometheus text exposition.

Counters live in process memory, so a serverless host that recycles the
process starts them over from zero.
"""

from __future__ import annotations

import time
from collections import defaultdict

PREFIX = "ghslack_"

LabelSet = tuple[tuple[str, str], ...]


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class MetricsCollector:
    """
    Labelled counters for webhook deliveries, notifications and subscriptions.

    ``inc("webhooks_received_total", github_event="issues")`` and
    ``inc("notifications_sent_total")`` are both valid; each distinct label
    set is its own series.
    """

    def __init__(self) -> None:
        self._counters: dict[str, dict[LabelSet, int]] = defaultdict(lambda: defaultdict(int))
        self._start_time = time.time()

    def inc(self, name: str, value: int = 1, **labels: str) -> None:
        self._counters[name][tuple(sorted(labels.items()))] += value

    def get(self, name: str, **labels: str) -> int:
        """One series when labels are given, otherwise the sum over all series."""
        series = self._counters.get(name, {})
        if labels:
            return series.get(tuple(sorted(labels.items())), 0)
        return sum(series.values())

    def to_prometheus(self) -> str:
        lines = []
        for name, series in sorted(self._counters.items()):
            lines.append(f"# TYPE {PREFIX}{name} counter")
            for label_set, value in sorted(series.items()):
                if label_set:
                    rendered = ",".join(f'{k}="{_escape(v)}"' for k, v in label_set)
                    lines.append(f"{PREFIX}{name}{{{rendered}}} {value}")
                else:
                    lines.append(f"{PREFIX}{name} {value}")
        uptime = time.time() - self._start_time
        lines.append(f"# TYPE {PREFIX}uptime_seconds gauge")
        lines.append(f"{PREFIX}uptime_seconds {uptime:.1f}")
        return "\n".join(lines) + "\n"
