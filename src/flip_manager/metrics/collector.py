"""Metrics collector — Prometheus counters, gauges, histograms.

- ``flips_total`` gauge-vec (flips per lifecycle type)
- ``flips_transitions_total`` counter-vec (reconciliation outcomes)
- ``flips_submit_histogram`` / ``flips_delete_histogram``
- ``flips_lookup_transaction_histogram``
- ``flips_cron_histogram`` / ``flips_cron_last_execution_gauge``
"""

from __future__ import annotations

import time
from collections import Counter as Tally
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from flip_manager.engine.records import FlipType

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from flip_manager.engine.records import FlipRecord

_PREFIX = "flips"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`EngineMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        return Counter(name, doc, labels, registry=self._registry)


class EngineMetrics:
    """High-level flip engine metrics.

    All histograms track operation duration in seconds.
    """

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._flips = self._collector.gauge(
            f"{_PREFIX}_total",
            "Flips held by the engine, per lifecycle type",
            ("type",),
        )
        self._transitions = self._collector.counter(
            f"{_PREFIX}_transitions",
            "Flip type changes applied by reconciliation",
            ("from_type", "to_type"),
        )
        self._submit = self._collector.histogram(
            f"{_PREFIX}_submit_histogram",
            "Duration of flip submission calls",
        )
        self._delete = self._collector.histogram(
            f"{_PREFIX}_delete_histogram",
            "Duration of flip deletion calls",
        )
        self._lookup = self._collector.histogram(
            f"{_PREFIX}_lookup_transaction_histogram",
            "Duration of transaction lookups",
        )
        self._cron_histogram = self._collector.histogram(
            f"{_PREFIX}_cron_histogram",
            "Duration of cron job executions",
            ("job_name",),
        )
        self._cron_last = self._collector.gauge(
            f"{_PREFIX}_cron_last_execution_gauge",
            "Timestamp of last cron execution",
            ("job_name",),
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    def set_flip_counts(self, flips: Iterable[FlipRecord]) -> None:
        """Publish per-type counts for the current collection."""
        counts = Tally(f.type for f in flips)
        for flip_type in FlipType:
            self._flips.labels(type=flip_type.value).set(counts.get(flip_type, 0))

    def record_transition(self, from_type: FlipType, to_type: FlipType) -> None:
        self._transitions.labels(from_type=from_type.value, to_type=to_type.value).inc()

    @contextmanager
    def track_submit(self) -> Iterator[None]:
        """Track the duration of a flip submission."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._submit.observe(time.monotonic() - start)

    @contextmanager
    def track_delete(self) -> Iterator[None]:
        start = time.monotonic()
        try:
            yield
        finally:
            self._delete.observe(time.monotonic() - start)

    @contextmanager
    def track_lookup(self) -> Iterator[None]:
        start = time.monotonic()
        try:
            yield
        finally:
            self._lookup.observe(time.monotonic() - start)

    @contextmanager
    def track_cron(self, job_name: str) -> Iterator[None]:
        """Track the duration of a cron job and record last execution time."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._cron_histogram.labels(job_name=job_name).observe(time.monotonic() - start)
            self._cron_last.labels(job_name=job_name).set(time.time())
