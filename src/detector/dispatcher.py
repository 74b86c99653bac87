"""
Root-cause dispatcher.

For an anomaly that passed the cooldown governor:
1. Fetch recent raw logs and traces as context
2. Ask the configured providers, in order, for a root-cause narrative
3. Persist the analysis (Redis fast store, then PostgreSQL)
4. Publish a notification

Every step returns a StepResult; nothing here raises on infrastructure errors.
"""

from dataclasses import dataclass

import pandas as pd
import structlog

from src.aggregator.models import Snapshot, utc_timestamp
from src.core.config import PipelineConfig
from src.core.outcome import ErrorKind, StepResult

from .analysis_cache import AnalysisCache
from .database import DetectorDatabase
from .models import AnalysisRecord, Anomaly, AnomalyNotification
from .notifier import Notifier
from .prompt import build_analysis_prompt
from .providers import TextGenerationProvider

logger = structlog.get_logger(__name__)


@dataclass
class DispatchReport:
    """Outcome of each dispatch step; None means the step was not reached"""

    context: StepResult | None = None
    analysis: StepResult | None = None
    persistence: StepResult | None = None
    notification: StepResult | None = None
    record: AnalysisRecord | None = None

    @property
    def errors(self) -> list[StepResult]:
        steps = [self.context, self.analysis, self.persistence, self.notification]
        return [step for step in steps if step is not None and not step.ok]


class RootCauseDispatcher:
    """Turns an anomaly into a persisted, published root-cause analysis"""

    def __init__(
        self,
        config: PipelineConfig,
        database: DetectorDatabase,
        cache: AnalysisCache,
        providers: list[TextGenerationProvider],
        notifier: Notifier | None = None,
    ):
        self.config = config
        self.database = database
        self.cache = cache
        self.providers = providers
        self.notifier = notifier

    def fetch_context(self) -> StepResult[tuple[pd.DataFrame, pd.DataFrame]]:
        """Recent raw logs and traces from the lookback window"""
        minutes = self.config.data_lookback_minutes
        try:
            logs = self.database.get_recent_logs(minutes, limit=self.config.context_log_limit)
            traces = self.database.get_recent_traces(minutes, limit=self.config.context_trace_limit)
        except Exception as e:
            logger.error("Failed to fetch root-cause context", error=str(e))
            return StepResult.failure(ErrorKind.TRANSIENT_INFRA, str(e))

        logger.info("Fetched root-cause context", logs=len(logs), traces=len(traces))
        return StepResult.success((logs, traces))

    def generate_analysis(self, prompt: str) -> StepResult[tuple[str, str]]:
        """First successful provider wins

        Returns:
            StepResult holding (provider name, analysis text)
        """
        if not self.providers:
            logger.error("No text-generation provider available")
            return StepResult.failure(ErrorKind.PROVIDER_FAILURE, "no provider configured")

        failures = []
        for provider in self.providers:
            try:
                logger.info("Requesting analysis", provider=provider.name)
                text = provider.summarize(prompt)
                logger.info("Analysis generated", provider=provider.name, length=len(text))
                return StepResult.success((provider.name, text))
            except Exception as e:
                logger.warning("Provider failed, trying next", provider=provider.name, error=str(e))
                failures.append(f"{provider.name}: {e}")

        logger.error("All text-generation providers failed", failures=failures)
        return StepResult.failure(ErrorKind.PROVIDER_FAILURE, "; ".join(failures))

    def persist(self, record: AnalysisRecord) -> StepResult[int]:
        """Fast store first, then the permanent table

        A failed Redis write is logged and does not stop the PostgreSQL insert.
        A failed insert is not retried and does not undo the Redis write.
        """
        if not self.cache.save_analysis(record):
            logger.warning("Analysis not cached", timestamp=record.timestamp)

        try:
            row_id = self.database.insert_analysis(record)
        except Exception as e:
            logger.critical(
                "Failed to persist analysis to PostgreSQL",
                metric=record.metric,
                severity=record.severity,
                timestamp=record.timestamp,
                error=str(e),
            )
            return StepResult.failure(ErrorKind.PERSISTENCE_DEGRADATION, str(e))

        logger.info("Analysis persisted", id=row_id, provider=record.provider)
        return StepResult.success(row_id)

    def notify(self, record: AnalysisRecord) -> StepResult[None]:
        if self.notifier is None:
            logger.warning("No notifier configured, skipping notification")
            return StepResult.success()
        notification = AnomalyNotification.from_record(record, timestamp=utc_timestamp())
        return self.notifier.send(notification)

    def dispatch(self, anomaly: Anomaly, snapshot: Snapshot) -> DispatchReport:
        report = DispatchReport()

        report.context = self.fetch_context()
        if not report.context.ok:
            return report
        logs, traces = report.context.value

        prompt = build_analysis_prompt(anomaly, logs, traces, snapshot)
        report.analysis = self.generate_analysis(prompt)
        if not report.analysis.ok:
            return report
        provider, text = report.analysis.value

        report.record = AnalysisRecord(
            provider=provider,
            analysis=text,
            severity=anomaly.severity.value,
            metric=anomaly.metric.value,
            message=anomaly.message,
            timestamp=utc_timestamp(),
        )
        report.persistence = self.persist(report.record)
        report.notification = self.notify(report.record)
        return report
