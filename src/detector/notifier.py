"""
Kafka publisher for anomaly notifications.

Delivery (chat, email) is handled by downstream consumers of the topic.
"""

import json

import structlog
from kafka import KafkaProducer

from src.core.config import PipelineConfig
from src.core.outcome import ErrorKind, StepResult

from .models import AnomalyNotification

logger = structlog.get_logger(__name__)


class Notifier:
    """Publishes AnomalyNotification payloads to the notification topic"""

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.topic = config.notify_topic
        self.producer = None

        if not config.notifications_configured:
            logger.warning("KAFKA_BOOTSTRAP_SERVERS not configured, notifications disabled")
            return

        try:
            self.producer = KafkaProducer(
                bootstrap_servers=config.kafka_bootstrap_servers,
                value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            )
            logger.info(
                "Kafka producer initialized",
                bootstrap_servers=config.kafka_bootstrap_servers,
                topic=self.topic,
            )
        except Exception as e:
            logger.error("Failed to initialize Kafka producer", error=str(e))
            raise

    def send(self, notification: AnomalyNotification, timeout: float = 10.0) -> StepResult[None]:
        """Publish one notification; failures are returned, never raised"""
        if self.producer is None:
            logger.warning("Notifications disabled, skipping", metric=notification.metric)
            return StepResult.success()

        try:
            future = self.producer.send(
                self.topic,
                value=notification.to_dict(),
                headers=[
                    ("type", notification.type.encode("utf-8")),
                    ("severity", notification.severity.encode("utf-8")),
                ],
            )
            future.get(timeout=timeout)
            logger.info(
                "Notification sent",
                topic=self.topic,
                metric=notification.metric,
                severity=notification.severity,
            )
            return StepResult.success()
        except Exception as e:
            logger.error("Failed to send notification", topic=self.topic, error=str(e))
            return StepResult.failure(ErrorKind.NOTIFICATION_FAILURE, str(e))

    def close(self):
        if self.producer is not None:
            self.producer.close()
            logger.info("Kafka producer closed")
