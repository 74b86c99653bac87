"""
Configuration for the aggregation and anomaly detection pipeline.
"""

from dataclasses import dataclass


@dataclass
class PipelineConfig:
    """Configuration shared by the aggregator, the detector and the service"""

    # PostgreSQL settings (DATABASE_URL takes precedence over host/port/...)
    database_url: str = ""
    postgres_host: str = ""
    postgres_port: int = 5432
    postgres_database: str = "telemetry"
    postgres_user: str = "telemetry"
    postgres_password: str = "telemetry"

    # Redis settings (REDIS_URL takes precedence over host/port/...)
    redis_url: str = ""
    redis_host: str = ""
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None

    # Aggregation
    aggregation_interval_minutes: float = 5
    aggregation_window_minutes: int = 5
    snapshot_ttl_seconds: int = 3600
    slow_endpoint_threshold_ms: float = 500.0
    slow_endpoint_limit: int = 10

    # Detection
    detection_interval_minutes: float = 1
    historical_windows: int = 5
    data_lookback_minutes: int = 15
    anomaly_cooldown_minutes: float = 30
    analysis_ttl_seconds: int = 7200
    context_log_limit: int = 100
    context_trace_limit: int = 50

    # Text generation providers, tried in order (Groq, then OpenAI)
    groq_api_key: str = ""
    groq_model: str = "llama-3.3-70b-versatile"
    groq_base_url: str = "https://api.groq.com/openai/v1"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = ""
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2000
    llm_timeout_seconds: float = 60.0

    # Notification sink (empty bootstrap servers disables notifications)
    kafka_bootstrap_servers: str = ""
    notify_topic: str = "anomaly-notifications"

    # Service
    health_host: str = "0.0.0.0"
    health_port: int = 3007
    startup_max_retries: int = 5
    startup_retry_delay_seconds: float = 3.0

    @property
    def database_configured(self) -> bool:
        """True when DATABASE_URL or POSTGRES_HOST was set (an empty host connects to localhost)"""
        return bool(self.database_url or self.postgres_host)

    @property
    def redis_configured(self) -> bool:
        """True when REDIS_URL or REDIS_HOST was set"""
        return bool(self.redis_url or self.redis_host)

    @property
    def notifications_configured(self) -> bool:
        return bool(self.kafka_bootstrap_servers)
