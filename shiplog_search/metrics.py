"""In-process metrics collector with Prometheus text exposition."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any, Dict, Tuple


class MetricsCollector:
    """Thread-safe metrics collector for API/index instrumentation."""

    REQUEST_DURATION_BUCKETS = (
        0.001,
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
    )

    def __init__(self) -> None:
        self._lock = threading.Lock()

        # Counters
        self._requests_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
        self._queries_total: Dict[Tuple[str, str], int] = defaultdict(int)
        self._empty_results_total: Dict[str, int] = defaultdict(int)
        self._index_builds_total: Dict[str, int] = defaultdict(int)

        # Histogram (cumulative bucket counts)
        self._request_duration_bucket_counts: Dict[str, list[int]] = {}
        self._request_duration_sum: Dict[str, float] = defaultdict(float)
        self._request_duration_count: Dict[str, int] = defaultdict(int)

        # Gauges
        self._index_build_seconds: Dict[str, float] = {}
        self._index_size: Dict[Tuple[str, str], int] = {}

    def reset(self) -> None:
        """Reset all metrics (used by tests)."""
        with self._lock:
            self._requests_total.clear()
            self._queries_total.clear()
            self._empty_results_total.clear()
            self._index_builds_total.clear()
            self._request_duration_bucket_counts.clear()
            self._request_duration_sum.clear()
            self._request_duration_count.clear()
            self._index_build_seconds = {}
            self._index_size = {}

    def record_request(self, method: str, path: str, status: int, duration_seconds: float) -> None:
        """Record request counter and latency histogram observation."""
        method_norm = (method or "GET").upper()
        path_norm = path or "/"
        status_norm = str(status)
        duration = max(0.0, float(duration_seconds))

        with self._lock:
            self._requests_total[(method_norm, path_norm, status_norm)] += 1

            buckets = self._request_duration_bucket_counts.get(path_norm)
            if buckets is None:
                buckets = [0 for _ in self.REQUEST_DURATION_BUCKETS]
                self._request_duration_bucket_counts[path_norm] = buckets

            for idx, upper_bound in enumerate(self.REQUEST_DURATION_BUCKETS):
                if duration <= upper_bound:
                    buckets[idx] += 1

            self._request_duration_sum[path_norm] += duration
            self._request_duration_count[path_norm] += 1

    def record_query(self, map_id: str, kind: str, empty: bool) -> None:
        with self._lock:
            self._queries_total[(map_id, kind)] += 1
            if empty:
                self._empty_results_total[kind] += 1

    def record_index_build(self, map_id: str, duration_seconds: float, sizes: Dict[str, int]) -> None:
        """Count a rebuild and replace the map's size gauges."""
        with self._lock:
            self._index_builds_total[map_id] += 1
            self._index_build_seconds[map_id] = max(0.0, float(duration_seconds))
            for key in [k for k in self._index_size if k[0] == map_id]:
                del self._index_size[key]
            for kind, count in sizes.items():
                self._index_size[(map_id, kind)] = max(0, int(count))

    def forget_map(self, map_id: str) -> None:
        with self._lock:
            self._index_build_seconds.pop(map_id, None)
            for key in [k for k in self._index_size if k[0] == map_id]:
                del self._index_size[key]

    def snapshot(self) -> Dict[str, Any]:
        """Take an immutable snapshot for exposition."""
        with self._lock:
            return {
                "requests_total": dict(self._requests_total),
                "request_duration_bucket_counts": {
                    path: list(counts)
                    for path, counts in self._request_duration_bucket_counts.items()
                },
                "request_duration_sum": dict(self._request_duration_sum),
                "request_duration_count": dict(self._request_duration_count),
                "queries_total": dict(self._queries_total),
                "empty_results_total": dict(self._empty_results_total),
                "index_builds_total": dict(self._index_builds_total),
                "index_build_seconds": dict(self._index_build_seconds),
                "index_size": dict(self._index_size),
            }

    def render_prometheus(self) -> str:
        """Render snapshot in Prometheus exposition format (text/plain)."""
        snap = self.snapshot()
        lines: list[str] = []

        lines.append("# HELP shiplog_search_requests_total Total HTTP requests processed.")
        lines.append("# TYPE shiplog_search_requests_total counter")
        for (method, path, status), count in sorted(snap["requests_total"].items()):
            lines.append(
                "shiplog_search_requests_total"
                f'{{method="{_label_escape(method)}",path="{_label_escape(path)}",status="{_label_escape(status)}"}} '
                f"{int(count)}"
            )

        lines.append("# HELP shiplog_search_request_duration_seconds HTTP request latency in seconds.")
        lines.append("# TYPE shiplog_search_request_duration_seconds histogram")
        duration_buckets: Dict[str, list[int]] = snap["request_duration_bucket_counts"]
        duration_sum: Dict[str, float] = snap["request_duration_sum"]
        duration_count: Dict[str, int] = snap["request_duration_count"]
        for path in sorted(duration_buckets.keys()):
            path_label = _label_escape(path)
            buckets = duration_buckets[path]
            for upper_bound, bucket_value in zip(self.REQUEST_DURATION_BUCKETS, buckets):
                lines.append(
                    "shiplog_search_request_duration_seconds_bucket"
                    f'{{path="{path_label}",le="{_format_bucket(upper_bound)}"}} '
                    f"{int(bucket_value)}"
                )

            lines.append(
                "shiplog_search_request_duration_seconds_bucket"
                f'{{path="{path_label}",le="+Inf"}} '
                f"{int(duration_count.get(path, 0))}"
            )
            lines.append(
                "shiplog_search_request_duration_seconds_sum"
                f'{{path="{path_label}"}} '
                f"{_format_float(float(duration_sum.get(path, 0.0)))}"
            )
            lines.append(
                "shiplog_search_request_duration_seconds_count"
                f'{{path="{path_label}"}} '
                f"{int(duration_count.get(path, 0))}"
            )

        lines.append("# HELP shiplog_search_queries_total Suggest/search calls, by map and kind.")
        lines.append("# TYPE shiplog_search_queries_total counter")
        for (map_id, kind), count in sorted(snap["queries_total"].items()):
            lines.append(
                "shiplog_search_queries_total"
                f'{{map="{_label_escape(map_id)}",kind="{_label_escape(kind)}"}} '
                f"{int(count)}"
            )

        lines.append("# HELP shiplog_search_empty_results_total Calls that matched nothing, by kind.")
        lines.append("# TYPE shiplog_search_empty_results_total counter")
        for kind, count in sorted(snap["empty_results_total"].items()):
            lines.append(
                "shiplog_search_empty_results_total"
                f'{{kind="{_label_escape(kind)}"}} '
                f"{int(count)}"
            )

        lines.append("# HELP shiplog_search_index_builds_total Full index rebuilds, by map.")
        lines.append("# TYPE shiplog_search_index_builds_total counter")
        for map_id, count in sorted(snap["index_builds_total"].items()):
            lines.append(
                "shiplog_search_index_builds_total"
                f'{{map="{_label_escape(map_id)}"}} '
                f"{int(count)}"
            )

        lines.append("# HELP shiplog_search_index_build_seconds Duration of the last rebuild, by map.")
        lines.append("# TYPE shiplog_search_index_build_seconds gauge")
        for map_id, seconds in sorted(snap["index_build_seconds"].items()):
            lines.append(
                "shiplog_search_index_build_seconds"
                f'{{map="{_label_escape(map_id)}"}} '
                f"{_format_float(seconds)}"
            )

        lines.append("# HELP shiplog_search_index_entries Index keys per structure, by map.")
        lines.append("# TYPE shiplog_search_index_entries gauge")
        for (map_id, kind), count in sorted(snap["index_size"].items()):
            lines.append(
                "shiplog_search_index_entries"
                f'{{map="{_label_escape(map_id)}",structure="{_label_escape(kind)}"}} '
                f"{int(count)}"
            )

        return "\n".join(lines) + "\n"


collector = MetricsCollector()


def record_request_metric(*, method: str, path: str, status: int, duration_seconds: float) -> None:
    collector.record_request(method=method, path=path, status=status, duration_seconds=duration_seconds)


def record_query(map_id: str, kind: str, empty: bool) -> None:
    collector.record_query(map_id, kind, empty)


def record_index_build(map_id: str, duration_seconds: float, sizes: Dict[str, int]) -> None:
    collector.record_index_build(map_id, duration_seconds, sizes)


def forget_map(map_id: str) -> None:
    collector.forget_map(map_id)


def render_prometheus_metrics() -> str:
    return collector.render_prometheus()


def reset_metrics() -> None:
    collector.reset()


def _label_escape(value: str) -> str:
    return str(value).replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _format_bucket(value: float) -> str:
    return f"{float(value):g}"


def _format_float(value: float) -> str:
    text = f"{float(value):.9f}".rstrip("0").rstrip(".")
    return text if text else "0"
