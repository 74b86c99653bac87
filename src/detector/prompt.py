"""
Prompt construction for root-cause analysis.
"""

import pandas as pd

from src.aggregator.models import Snapshot

from .models import Anomaly

MAX_ERROR_LOGS = 10
MAX_PROBLEM_TRACES = 10
SLOW_TRACE_MS = 1000


def format_error_logs(logs: pd.DataFrame) -> str:
    """Most recent error-level log lines, one per line"""
    if logs.empty or "level" not in logs.columns:
        return ""
    errors = logs[logs["level"] == "error"].head(MAX_ERROR_LOGS)
    return "\n".join(
        f"[{row['timestamp']}] {row['service']}: {row['message']}"
        for row in errors.to_dict("records")
    )


def format_problem_traces(traces: pd.DataFrame) -> str:
    """Failed (status >= 400) or slow traces, one per line"""
    if traces.empty or "status_code" not in traces.columns:
        return ""
    status = pd.to_numeric(traces["status_code"], errors="coerce").fillna(0)
    duration = pd.to_numeric(traces["duration"], errors="coerce").fillna(0)
    problems = traces[(status >= 400) | (duration > SLOW_TRACE_MS)].head(MAX_PROBLEM_TRACES)
    return "\n".join(
        f"[{row['start_time']}] {row['service']}/{row['operation']}: "
        f"{row['duration']}ms, status {row['status_code']}"
        for row in problems.to_dict("records")
    )


def format_service_metrics(snapshot: Snapshot) -> str:
    return "\n".join(
        f"{m.service}: {m.total_requests} req, {m.total_errors} errors, {m.p95_latency}ms P95"
        for m in snapshot.metrics
    )


def build_analysis_prompt(
    anomaly: Anomaly,
    recent_logs: pd.DataFrame,
    recent_traces: pd.DataFrame,
    snapshot: Snapshot,
) -> str:
    """Combine the anomaly, raw context and current service metrics into one prompt"""
    error_logs = format_error_logs(recent_logs)
    problem_traces = format_problem_traces(recent_traces)
    service_metrics = format_service_metrics(snapshot)

    return f"""Analyze this system anomaly and provide a complete postmortem:

ANOMALY DETECTED:
- Metric: {anomaly.metric.value}
- Current Value: {anomaly.current_value}
- Expected Range: {anomaly.expected_range.min} - {anomaly.expected_range.max}
- Severity: {anomaly.severity.value}
- Message: {anomaly.message}

RECENT ERROR LOGS:
{error_logs or "No error logs found"}

PROBLEMATIC TRACES:
{problem_traces or "No problematic traces found"}

CURRENT SERVICE METRICS:
{service_metrics or "No metrics available"}

Please provide:
1. ROOT CAUSE: What likely caused this anomaly? (be specific)
2. WHEN IT HAPPENED: Based on timestamps, when did the issue start?
3. WHY IT HAPPENED: Explain the underlying reason (e.g., code bug, resource exhaustion, external dependency)
4. IMPACT: What services/operations are affected?
5. RECOMMENDATIONS: What should developers do to fix or prevent this?

Format your response clearly so developers can understand and act on it."""
