"""
Tests for root-cause prompt construction.
"""

import pandas as pd
import pytest

from src.detector.models import Anomaly, ExpectedRange, MetricName, Severity
from src.detector.prompt import build_analysis_prompt, format_error_logs, format_problem_traces


@pytest.fixture
def anomaly():
    return Anomaly(
        metric=MetricName.ERROR_RATE,
        current_value=12.5,
        expected_range=ExpectedRange(min=0.0, max=4.0),
        z_score=4.2,
        severity=Severity.CRITICAL,
        message="Error rate anomaly detected: 12.50% (expected: 2.00% ± 1.00%)",
    )


@pytest.fixture
def logs_df():
    rows = [
        {
            "timestamp": f"2025-10-02 12:00:{i:02d}",
            "level": "error" if i % 2 == 0 else "info",
            "message": f"message {i}",
            "service": "api",
        }
        for i in range(30)
    ]
    return pd.DataFrame(rows)


@pytest.fixture
def traces_df():
    return pd.DataFrame(
        [
            {"start_time": "t1", "service": "api", "operation": "GET /a", "duration": 50, "status_code": 200},
            {"start_time": "t2", "service": "api", "operation": "GET /b", "duration": 80, "status_code": 503},
            {"start_time": "t3", "service": "db", "operation": "query", "duration": 1500, "status_code": 200},
            {"start_time": "t4", "service": "api", "operation": "GET /c", "duration": 1000, "status_code": 399},
        ]
    )


class TestFormatting:
    def test_error_logs_limited_to_ten(self, logs_df):
        lines = format_error_logs(logs_df).splitlines()

        assert len(lines) == 10
        assert lines[0] == "[2025-10-02 12:00:00] api: message 0"
        assert all("message" in line for line in lines)

    def test_problem_traces(self, traces_df):
        lines = format_problem_traces(traces_df).splitlines()

        assert lines == [
            "[t2] api/GET /b: 80ms, status 503",
            "[t3] db/query: 1500ms, status 200",
        ]

    def test_empty_context(self):
        assert format_error_logs(pd.DataFrame()) == ""
        assert format_problem_traces(pd.DataFrame()) == ""


class TestBuildAnalysisPrompt:
    def test_sections(self, anomaly, logs_df, traces_df, make_snapshot):
        snapshot = make_snapshot(services=[("api", 1000, 125, 850.0)])

        prompt = build_analysis_prompt(anomaly, logs_df, traces_df, snapshot)

        assert "ANOMALY DETECTED:" in prompt
        assert "- Metric: error_rate" in prompt
        assert "- Severity: critical" in prompt
        assert "- Expected Range: 0.0 - 4.0" in prompt
        assert "[t2] api/GET /b: 80ms, status 503" in prompt
        assert "api: 1000 req, 125 errors, 850.0ms P95" in prompt
        for heading in ("ROOT CAUSE", "WHEN IT HAPPENED", "WHY IT HAPPENED", "IMPACT", "RECOMMENDATIONS"):
            assert heading in prompt

    def test_placeholders_without_context(self, anomaly, make_snapshot):
        prompt = build_analysis_prompt(anomaly, pd.DataFrame(), pd.DataFrame(), make_snapshot())

        assert "No error logs found" in prompt
        assert "No problematic traces found" in prompt
        assert "No metrics available" in prompt
