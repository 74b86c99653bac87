"""
HTTP health endpoints.

GET /health  liveness, static configuration summary
GET /ready   readiness, live PostgreSQL and Redis checks (503 when one fails)
"""

from collections.abc import Callable

import structlog
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.core.config import PipelineConfig

logger = structlog.get_logger(__name__)

SERVICE_NAME = "telemetry-pipeline"


class ComponentHealth(BaseModel):
    name: str
    status: str
    detail: str | None = None


class HealthResponse(BaseModel):
    status: str
    service: str
    components: list[str]
    database: str
    redis: str
    aggregation_interval_minutes: float
    aggregation_window_minutes: int
    detection_interval_minutes: float
    historical_windows: int
    cooldown_minutes: float
    scheduler_running: bool


class ReadinessResponse(BaseModel):
    status: str
    components: list[ComponentHealth]


def _configured(flag: bool) -> str:
    return "configured" if flag else "not configured"


def create_app(
    config: PipelineConfig,
    components: list[str] | None = None,
    readiness_checks: dict[str, Callable[[], bool]] | None = None,
    scheduler_running: Callable[[], bool] | None = None,
) -> FastAPI:
    """Build the health app

    Args:
        config: Pipeline configuration reported by /health
        components: Names of the running pipeline components
        readiness_checks: Component name -> live health check, used by /ready
        scheduler_running: Reports whether the scheduler thread is alive
    """
    app = FastAPI(title="Telemetry Pipeline Health")
    checks = readiness_checks or {}

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            service=SERVICE_NAME,
            components=components or [],
            database=_configured(config.database_configured),
            redis=_configured(config.redis_configured),
            aggregation_interval_minutes=config.aggregation_interval_minutes,
            aggregation_window_minutes=config.aggregation_window_minutes,
            detection_interval_minutes=config.detection_interval_minutes,
            historical_windows=config.historical_windows,
            cooldown_minutes=config.anomaly_cooldown_minutes,
            scheduler_running=scheduler_running() if scheduler_running else False,
        )

    @app.get("/ready", response_model=ReadinessResponse)
    def ready():
        results: list[ComponentHealth] = []
        for name, check in checks.items():
            try:
                healthy = check()
                results.append(
                    ComponentHealth(name=name, status="healthy" if healthy else "unhealthy")
                )
            except Exception as exc:
                results.append(ComponentHealth(name=name, status="unhealthy", detail=str(exc)))

        if all(c.status == "healthy" for c in results):
            return ReadinessResponse(status="ready", components=results)

        logger.warning(
            "Readiness check failed",
            unhealthy=[c.name for c in results if c.status != "healthy"],
        )
        body = ReadinessResponse(status="degraded", components=results)
        return JSONResponse(status_code=503, content=body.model_dump())

    return app
