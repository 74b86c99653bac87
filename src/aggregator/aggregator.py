"""
Windowed aggregator.

Rolls up raw telemetry from the trailing window into one Snapshot and writes
it to the snapshot store.
"""

import math
import time
from datetime import datetime
from typing import Any

import pandas as pd
import structlog

from src.core.config import PipelineConfig

from .database import AggregatorDatabase
from .models import (
    CPU_SPIKE_PERCENT,
    ERROR_RATE_SPIKE_PERCENT,
    LATENCY_SPIKE_MS,
    MEMORY_SPIKE_PERCENT,
    AnomalousSpike,
    LogsSummary,
    OperationTraces,
    RequestVolume,
    ServiceLogCounts,
    ServiceMetrics,
    SlowEndpoint,
    Snapshot,
    utc_timestamp,
)
from .store import SnapshotStore

logger = structlog.get_logger(__name__)

UNKNOWN = "unknown"


def _to_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def _to_int(value: Any) -> int:
    return int(_to_float(value))


def _name(value: Any) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)) or value == "":
        return UNKNOWN
    return str(value)


class WindowedAggregator:
    """Builds one Snapshot per cycle from the raw telemetry store"""

    def __init__(
        self,
        config: PipelineConfig,
        database: AggregatorDatabase,
        store: SnapshotStore,
    ):
        self.config = config
        self.db = database
        self.store = store

        self.stats = {
            "cycles": 0,
            "snapshots_written": 0,
            "failures": 0,
        }

        logger.info(
            "Aggregator initialized",
            window_minutes=config.aggregation_window_minutes,
            snapshot_ttl_seconds=config.snapshot_ttl_seconds,
        )

    def aggregate(self, window_minutes: int | None = None, now: datetime | None = None) -> Snapshot:
        """Aggregate the last N minutes of raw telemetry

        Raises whatever the raw store raises; no partial snapshot is produced.
        """
        window = (
            self.config.aggregation_window_minutes if window_minutes is None else window_minutes
        )
        timestamp = utc_timestamp(now)

        logger.info("Starting aggregation", window_minutes=window)

        logs_df = self.db.get_logs_data(window)
        metrics_df = self.db.get_metrics_data(window)
        traces_df = self.db.get_traces_data(window)
        slow_df = self.db.get_slow_endpoints(window)

        logs = self.summarize_logs(logs_df)
        metrics = self.summarize_metrics(metrics_df)
        traces = self.summarize_traces(traces_df)
        slow_endpoints = self.summarize_slow_endpoints(slow_df)

        request_volume = RequestVolume(
            total=sum(m.total_requests for m in metrics),
            by_service={m.service: m.total_requests for m in metrics},
        )
        error_counts = {
            service: counts.errors for service, counts in logs.by_service.items() if counts.errors
        }

        snapshot = Snapshot(
            timestamp=timestamp,
            window_minutes=window,
            logs=logs,
            metrics=metrics,
            traces=traces,
            slow_endpoints=slow_endpoints,
            error_counts=error_counts,
            request_volume=request_volume,
            anomalous_spikes=self.flag_spikes(metrics, timestamp),
        )

        logger.info(
            "Aggregation complete",
            timestamp=timestamp,
            logs_total=logs.total_count,
            logs_errors=logs.error_count,
            services=len(metrics),
            operations=len(traces),
            slow_endpoints=len(slow_endpoints),
            anomalous_spikes=len(snapshot.anomalous_spikes),
        )
        return snapshot

    def run_cycle(self) -> bool:
        """Aggregate and store one snapshot

        Returns:
            True if a snapshot was written, False if the cycle was abandoned
        """
        self.stats["cycles"] += 1
        start_time = time.time()

        try:
            snapshot = self.aggregate()
        except Exception as e:
            self.stats["failures"] += 1
            logger.error("Aggregation cycle failed", error=str(e), exc_info=True)
            return False

        if not self.store.put(snapshot, self.config.snapshot_ttl_seconds):
            self.stats["failures"] += 1
            logger.error("Aggregation cycle failed to store snapshot", timestamp=snapshot.timestamp)
            return False

        self.stats["snapshots_written"] += 1
        logger.info(
            "Aggregation cycle complete",
            timestamp=snapshot.timestamp,
            elapsed_sec=round(time.time() - start_time, 3),
        )
        return True

    @staticmethod
    def summarize_logs(logs_df: pd.DataFrame) -> LogsSummary:
        """Totals by service and by level from (service, level, count) rows"""
        summary = LogsSummary()
        if logs_df.empty:
            return summary

        rows = pd.DataFrame(
            {
                "service": logs_df["service"].map(_name),
                "level": logs_df["level"].map(_name),
                "count": logs_df["count"].map(_to_int),
            }
        )
        errors = rows[rows["level"] == "error"]

        summary.total_count = int(rows["count"].sum())
        summary.error_count = int(errors["count"].sum())
        summary.by_level = {
            level: int(count) for level, count in rows.groupby("level")["count"].sum().items()
        }

        error_totals = errors.groupby("service")["count"].sum()
        for service, total in rows.groupby("service")["count"].sum().items():
            summary.by_service[service] = ServiceLogCounts(
                total=int(total), errors=int(error_totals.get(service, 0))
            )
        return summary

    @staticmethod
    def summarize_metrics(metrics_df: pd.DataFrame) -> list[ServiceMetrics]:
        return [
            ServiceMetrics(
                service=_name(row.get("service")),
                total_requests=_to_int(row.get("total_requests")),
                total_errors=_to_int(row.get("total_errors")),
                avg_response_time=_to_float(row.get("avg_response_time")),
                p95_latency=_to_float(row.get("p95_latency")),
                p99_latency=_to_float(row.get("p99_latency")),
                avg_cpu=_to_float(row.get("avg_cpu")),
                avg_memory=_to_float(row.get("avg_memory")),
                max_connections=_to_int(row.get("max_connections")),
                total_throughput=_to_int(row.get("total_throughput")),
            )
            for row in metrics_df.to_dict("records")
        ]

    @staticmethod
    def summarize_traces(traces_df: pd.DataFrame) -> list[OperationTraces]:
        return [
            OperationTraces(
                service=_name(row.get("service")),
                operation=_name(row.get("operation")),
                trace_count=_to_int(row.get("trace_count")),
                avg_duration=_to_float(row.get("avg_duration")),
                p95_duration=_to_float(row.get("p95_duration")),
                p99_duration=_to_float(row.get("p99_duration")),
                error_count=_to_int(row.get("error_count")),
                server_error_count=_to_int(row.get("server_error_count")),
            )
            for row in traces_df.to_dict("records")
        ]

    @staticmethod
    def summarize_slow_endpoints(slow_df: pd.DataFrame) -> list[SlowEndpoint]:
        endpoints = [
            SlowEndpoint(
                service=_name(row.get("service")),
                operation=_name(row.get("operation")),
                p95_duration=_to_float(row.get("p95_duration")),
                count=_to_int(row.get("count")),
            )
            for row in slow_df.to_dict("records")
        ]
        return sorted(endpoints, key=lambda e: e.p95_duration, reverse=True)

    @staticmethod
    def flag_spikes(metrics: list[ServiceMetrics], timestamp: str) -> list[AnomalousSpike]:
        """Threshold-only spike flags, grouped by spike type"""
        checks = [
            ("high_error_rate", ERROR_RATE_SPIKE_PERCENT, lambda m: m.error_rate),
            ("high_latency", LATENCY_SPIKE_MS, lambda m: m.p95_latency),
            ("high_cpu", CPU_SPIKE_PERCENT, lambda m: m.avg_cpu),
            ("high_memory", MEMORY_SPIKE_PERCENT, lambda m: m.avg_memory),
        ]
        spikes = []
        for spike_type, threshold, value_of in checks:
            for service_metrics in metrics:
                value = value_of(service_metrics)
                if value > threshold:
                    spikes.append(
                        AnomalousSpike(
                            type=spike_type,
                            service=service_metrics.service,
                            value=value,
                            threshold=threshold,
                            timestamp=timestamp,
                        )
                    )
        return spikes
