"""
CLI for the telemetry aggregation and anomaly detection service.

Usage:
    python -m src.service.run [options]
"""

import argparse
import os
import signal
import sys
import threading
from dataclasses import dataclass, field

import structlog
import uvicorn

from src.aggregator import AggregatorDatabase, SnapshotStore, WindowedAggregator
from src.core.config import PipelineConfig
from src.core.logger import level_from_name, setup_logging
from src.core.startup import connect_with_retry
from src.detector import AnomalyDetector, CooldownGovernor, DetectionCycle, RootCauseDispatcher
from src.detector.analysis_cache import AnalysisCache
from src.detector.database import DetectorDatabase
from src.detector.notifier import Notifier
from src.detector.providers import build_providers

from .health import create_app
from .scheduler import PipelineScheduler

logger = structlog.get_logger(__name__)

COMPONENTS = ["all", "aggregator", "detector"]


def _optional(value: str | None) -> str | None:
    return value or None


def parse_arguments(argv: list[str] | None = None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description="Telemetry aggregation and anomaly detection service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
        Examples:
        # Aggregator and detector with the health server on port 3007
        python -m src.service.run

        # Detector only, 10-minute cooldown
        python -m src.service.run --components detector --cooldown-minutes 10

        # Aggregator only, no HTTP server
        python -m src.service.run --components aggregator --no-health-server
        """,
    )

    parser.add_argument(
        "--components",
        choices=COMPONENTS,
        default="all",
        help="Pipeline components to run (default: all)",
    )
    parser.add_argument(
        "--no-health-server",
        action="store_true",
        help="Do not start the HTTP health server",
    )

    # PostgreSQL settings
    parser.add_argument(
        "--database-url",
        default=os.getenv("DATABASE_URL", ""),
        help="PostgreSQL connection URL (overrides --postgres-* options)",
    )
    parser.add_argument("--postgres-host", default=os.getenv("POSTGRES_HOST", ""))
    parser.add_argument("--postgres-port", type=int, default=int(os.getenv("POSTGRES_PORT", "5432")))
    parser.add_argument("--postgres-db", default=os.getenv("POSTGRES_DB", "telemetry"))
    parser.add_argument("--postgres-user", default=os.getenv("POSTGRES_USER", "telemetry"))
    parser.add_argument("--postgres-password", default=os.getenv("POSTGRES_PASSWORD", "telemetry"))

    # Redis settings
    parser.add_argument(
        "--redis-url",
        default=os.getenv("REDIS_URL", ""),
        help="Redis connection URL (overrides --redis-* options)",
    )
    parser.add_argument("--redis-host", default=os.getenv("REDIS_HOST", ""))
    parser.add_argument("--redis-port", type=int, default=int(os.getenv("REDIS_PORT", "6379")))
    parser.add_argument("--redis-db", type=int, default=int(os.getenv("REDIS_DB", "0")))
    parser.add_argument("--redis-password", default=os.getenv("REDIS_PASSWORD"))

    # Aggregation
    parser.add_argument(
        "--aggregation-interval-minutes",
        type=float,
        default=float(os.getenv("AGGREGATION_INTERVAL_MINUTES", "5")),
        help="Minutes between aggregation cycles (default: 5)",
    )
    parser.add_argument(
        "--aggregation-window-minutes",
        type=int,
        default=int(os.getenv("AGGREGATION_WINDOW_MINUTES", "5")),
        help="Length of the aggregated window in minutes (default: 5)",
    )
    parser.add_argument(
        "--snapshot-ttl-seconds",
        type=int,
        default=int(os.getenv("SNAPSHOT_TTL_SECONDS", "3600")),
        help="Snapshot expiry in Redis (default: 3600)",
    )

    # Detection
    parser.add_argument(
        "--detection-interval-minutes",
        type=float,
        default=float(os.getenv("DETECTION_INTERVAL_MINUTES", "1")),
        help="Minutes between detection cycles (default: 1)",
    )
    parser.add_argument(
        "--historical-windows",
        type=int,
        default=int(os.getenv("HISTORICAL_WINDOWS", "5")),
        help="Snapshots loaded per detection cycle (default: 5)",
    )
    parser.add_argument(
        "--data-lookback-minutes",
        type=int,
        default=int(os.getenv("DATA_LOOKBACK_MINUTES", "15")),
        help="Raw logs/traces lookback for root-cause context (default: 15)",
    )
    parser.add_argument(
        "--cooldown-minutes",
        type=float,
        default=float(os.getenv("ANOMALY_COOLDOWN_MINUTES", "30")),
        help="Suppress repeated analysis of the same anomaly class (default: 30)",
    )
    parser.add_argument(
        "--analysis-ttl-seconds",
        type=int,
        default=int(os.getenv("ANALYSIS_TTL_SECONDS", "7200")),
        help="Analysis expiry in Redis (default: 7200)",
    )

    # Text generation providers
    parser.add_argument("--groq-model", default=os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile"))
    parser.add_argument("--openai-model", default=os.getenv("OPENAI_MODEL", "gpt-4o-mini"))
    parser.add_argument(
        "--llm-timeout-seconds",
        type=float,
        default=float(os.getenv("LLM_TIMEOUT_SECONDS", "60")),
        help="Timeout of a single provider call (default: 60)",
    )

    # Notifications
    parser.add_argument(
        "--kafka-servers",
        default=os.getenv("KAFKA_BOOTSTRAP_SERVERS", ""),
        help="Kafka bootstrap servers for notifications (default: disabled)",
    )
    parser.add_argument(
        "--notify-topic",
        default=os.getenv("NOTIFY_TOPIC", "anomaly-notifications"),
        help="Notification topic (default: anomaly-notifications)",
    )

    # Service
    parser.add_argument("--host", default=os.getenv("HEALTH_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "3007")))
    parser.add_argument(
        "--startup-max-retries",
        type=int,
        default=int(os.getenv("STARTUP_MAX_RETRIES", "5")),
    )
    parser.add_argument(
        "--startup-retry-delay",
        type=float,
        default=float(os.getenv("STARTUP_RETRY_DELAY_SECONDS", "3")),
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_config(args) -> PipelineConfig:
    """Build configuration from arguments; API keys are read from the environment only"""
    return PipelineConfig(
        database_url=args.database_url,
        postgres_host=args.postgres_host,
        postgres_port=args.postgres_port,
        postgres_database=args.postgres_db,
        postgres_user=args.postgres_user,
        postgres_password=args.postgres_password,
        redis_url=args.redis_url,
        redis_host=args.redis_host,
        redis_port=args.redis_port,
        redis_db=args.redis_db,
        redis_password=_optional(args.redis_password),
        aggregation_interval_minutes=args.aggregation_interval_minutes,
        aggregation_window_minutes=args.aggregation_window_minutes,
        snapshot_ttl_seconds=args.snapshot_ttl_seconds,
        detection_interval_minutes=args.detection_interval_minutes,
        historical_windows=args.historical_windows,
        data_lookback_minutes=args.data_lookback_minutes,
        anomaly_cooldown_minutes=args.cooldown_minutes,
        analysis_ttl_seconds=args.analysis_ttl_seconds,
        groq_api_key=os.getenv("GROQ_API_KEY", ""),
        groq_model=args.groq_model,
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model=args.openai_model,
        openai_base_url=os.getenv("OPENAI_BASE_URL", ""),
        llm_timeout_seconds=args.llm_timeout_seconds,
        kafka_bootstrap_servers=args.kafka_servers,
        notify_topic=args.notify_topic,
        health_host=args.host,
        health_port=args.port,
        startup_max_retries=args.startup_max_retries,
        startup_retry_delay_seconds=args.startup_retry_delay,
    )


@dataclass
class Runtime:
    """Everything started by the service, closed in reverse on shutdown"""

    scheduler: PipelineScheduler
    components: list[str] = field(default_factory=list)
    readiness_checks: dict = field(default_factory=dict)
    closeables: list = field(default_factory=list)

    def connect(self, factory, name: str, config: PipelineConfig):
        connection = connect_with_retry(
            factory,
            name,
            max_retries=config.startup_max_retries,
            delay_seconds=config.startup_retry_delay_seconds,
        )
        if connection is None:
            raise ConnectionError(f"Could not connect {name}")
        self.closeables.append(connection)
        return connection

    def close(self):
        self.scheduler.shutdown()
        for resource in reversed(self.closeables):
            try:
                resource.close()
            except Exception as e:
                logger.warning("Failed to close resource", resource=repr(resource), error=str(e))
        self.closeables.clear()


def setup_aggregator(runtime: Runtime, config: PipelineConfig) -> WindowedAggregator:
    database = runtime.connect(lambda: AggregatorDatabase(config), "aggregator-postgres", config)
    store = runtime.connect(lambda: SnapshotStore(config), "aggregator-redis", config)
    aggregator = WindowedAggregator(config, database, store)

    runtime.scheduler.add_interval_job(
        "aggregation", aggregator.run_cycle, config.aggregation_interval_minutes
    )
    runtime.components.append("aggregator")
    runtime.readiness_checks.setdefault("postgres", database.check_health)
    runtime.readiness_checks.setdefault("redis", store.check_health)
    return aggregator


def build_notifier(config: PipelineConfig) -> Notifier | None:
    try:
        return Notifier(config)
    except Exception as e:
        logger.error("Notifications disabled, Kafka producer unavailable", error=str(e))
        return None


def setup_detector(runtime: Runtime, config: PipelineConfig) -> DetectionCycle:
    database = runtime.connect(lambda: DetectorDatabase(config), "detector-postgres", config)
    store = runtime.connect(lambda: SnapshotStore(config), "detector-redis", config)
    cache = runtime.connect(lambda: AnalysisCache(config), "analysis-redis", config)
    database.ensure_analysis_table_exists()

    notifier = build_notifier(config)
    if notifier is not None:
        runtime.closeables.append(notifier)

    dispatcher = RootCauseDispatcher(config, database, cache, build_providers(config), notifier)
    cycle = DetectionCycle(
        config,
        store,
        AnomalyDetector(),
        CooldownGovernor(config.anomaly_cooldown_minutes),
        dispatcher,
    )

    runtime.scheduler.add_interval_job("detection", cycle.run, config.detection_interval_minutes)
    runtime.components.append("detector")
    runtime.readiness_checks.setdefault("postgres", database.check_health)
    runtime.readiness_checks.setdefault("redis", store.check_health)
    return cycle


def wait_for_shutdown(stop: threading.Event | None = None) -> None:
    """Block until SIGINT or SIGTERM"""
    stop = stop or threading.Event()

    def handle_signal(signum, frame):
        logger.info("Shutdown signal received", signal=signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)
    stop.wait()


def run(config: PipelineConfig, components: str = "all", health_server: bool = True) -> int:
    runtime = Runtime(scheduler=PipelineScheduler())
    try:
        try:
            if components in ("all", "aggregator"):
                setup_aggregator(runtime, config)
            if components in ("all", "detector"):
                setup_detector(runtime, config)
        except ConnectionError as e:
            logger.error("Startup failed", error=str(e))
            return 1

        runtime.scheduler.start()
        logger.info(
            "Service started",
            components=runtime.components,
            aggregation_interval_minutes=config.aggregation_interval_minutes,
            detection_interval_minutes=config.detection_interval_minutes,
            cooldown_minutes=config.anomaly_cooldown_minutes,
        )

        if health_server:
            app = create_app(
                config,
                components=runtime.components,
                readiness_checks=runtime.readiness_checks,
                scheduler_running=lambda: runtime.scheduler.running,
            )
            uvicorn.run(app, host=config.health_host, port=config.health_port, log_level="warning")
        else:
            wait_for_shutdown()

        return 0
    finally:
        runtime.close()
        logger.info("Service stopped")


def main(argv: list[str] | None = None) -> int:
    """Main entry point"""
    args = parse_arguments(argv)

    setup_logging(level=level_from_name(args.log_level))

    logger.info("Starting telemetry pipeline", components=args.components)

    try:
        config = build_config(args)
        return run(config, components=args.components, health_server=not args.no_health_server)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except Exception as e:
        logger.error("Service failed", error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
