"""
One detection cycle as an explicit state machine.

Idle -> HistoryLoaded -> NoAnomaly
                      -> AnomalyFound -> CooldownCheck -> Suppressed
                                                       -> Proceed -> ContextFetched
                                                          -> AnalysisAttempted
                                                          -> Persisted | PersistFailed
                                                          -> NotificationAttempted

Every cycle ends back in Idle. The report records each visited state.
"""

from dataclasses import dataclass, field
from enum import Enum

import structlog

from src.aggregator.store import SnapshotStore
from src.core.config import PipelineConfig
from src.core.outcome import ErrorKind, StepResult

from .checks import MIN_HISTORY
from .cooldown import CooldownGovernor
from .detector import AnomalyDetector
from .dispatcher import RootCauseDispatcher
from .models import AnalysisRecord, Anomaly

logger = structlog.get_logger(__name__)


class CycleState(Enum):
    IDLE = "idle"
    HISTORY_LOADED = "history_loaded"
    NO_ANOMALY = "no_anomaly"
    ANOMALY_FOUND = "anomaly_found"
    COOLDOWN_CHECK = "cooldown_check"
    SUPPRESSED = "suppressed"
    PROCEED = "proceed"
    CONTEXT_FETCHED = "context_fetched"
    ANALYSIS_ATTEMPTED = "analysis_attempted"
    PERSISTED = "persisted"
    PERSIST_FAILED = "persist_failed"
    NOTIFICATION_ATTEMPTED = "notification_attempted"


@dataclass
class CycleReport:
    states: list[CycleState] = field(default_factory=lambda: [CycleState.IDLE])
    anomaly: Anomaly | None = None
    record: AnalysisRecord | None = None
    errors: list[StepResult] = field(default_factory=list)

    def enter(self, state: CycleState) -> None:
        self.states.append(state)

    @property
    def final_state(self) -> CycleState:
        return self.states[-1]


class DetectionCycle:
    """Load snapshots, detect, gate on cooldown and dispatch"""

    def __init__(
        self,
        config: PipelineConfig,
        store: SnapshotStore,
        detector: AnomalyDetector,
        cooldown: CooldownGovernor,
        dispatcher: RootCauseDispatcher,
    ):
        self.config = config
        self.store = store
        self.detector = detector
        self.cooldown = cooldown
        self.dispatcher = dispatcher

    def run(self) -> CycleReport:
        report = CycleReport()
        try:
            self._run(report)
        except Exception as e:
            logger.exception("Detection cycle failed", error=str(e))
            report.errors.append(StepResult.failure(ErrorKind.CYCLE_FAILURE, str(e)))

        if report.final_state is not CycleState.IDLE:
            report.enter(CycleState.IDLE)
        return report

    def _run(self, report: CycleReport) -> None:
        snapshots = self.store.get_recent(self.config.historical_windows)
        report.enter(CycleState.HISTORY_LOADED)

        # The newest snapshot is evaluated against the ones before it
        if len(snapshots) < MIN_HISTORY:
            logger.info(
                "Not enough snapshots for detection",
                available=len(snapshots),
                required=MIN_HISTORY,
            )
            report.enter(CycleState.NO_ANOMALY)
            return

        history, current = snapshots[:-1], snapshots[-1]
        anomaly = self.detector.detect(history, current)
        if anomaly is None:
            logger.debug("No anomaly detected", snapshot=current.timestamp)
            report.enter(CycleState.NO_ANOMALY)
            return

        report.anomaly = anomaly
        report.enter(CycleState.ANOMALY_FOUND)

        report.enter(CycleState.COOLDOWN_CHECK)
        if self.cooldown.should_suppress(anomaly.metric, anomaly.severity):
            logger.info(
                "Anomaly in cooldown, skipping analysis",
                metric=anomaly.metric.value,
                severity=anomaly.severity.value,
            )
            report.enter(CycleState.SUPPRESSED)
            return
        report.enter(CycleState.PROCEED)

        dispatch = self.dispatcher.dispatch(anomaly, current)
        report.errors.extend(dispatch.errors)
        if dispatch.context is None or not dispatch.context.ok:
            return
        report.enter(CycleState.CONTEXT_FETCHED)

        report.enter(CycleState.ANALYSIS_ATTEMPTED)
        self.cooldown.mark_dispatched(anomaly.metric, anomaly.severity)
        if dispatch.analysis is None or not dispatch.analysis.ok:
            return
        report.record = dispatch.record

        if dispatch.persistence is not None and dispatch.persistence.ok:
            report.enter(CycleState.PERSISTED)
        else:
            report.enter(CycleState.PERSIST_FAILED)

        if dispatch.notification is not None:
            report.enter(CycleState.NOTIFICATION_ATTEMPTED)
