"""Metrics — Prometheus metrics collection and exposure."""

from __future__ import annotations

from flip_manager.metrics.collector import EngineMetrics, MetricsCollector

__all__ = ["EngineMetrics", "MetricsCollector"]
