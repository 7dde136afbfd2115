import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from kyc_backend.core.logging import get_logger

logger = get_logger("observability")


class SinkBackend(Protocol):
    def emit(self, level: int, event: str, fields: Dict[str, Any]) -> None:
        ...


class LoggerBackend:
    """Writes events through the standard logging tree (console and local log files)."""

    def __init__(self, name: str = "identity-events"):
        self._logger = get_logger(name)

    def emit(self, level: int, event: str, fields: Dict[str, Any]) -> None:
        if fields:
            details = " ".join(f"{key}={value}" for key, value in fields.items())
            self._logger.log(level, f"{event} {details}")
        else:
            self._logger.log(level, event)


class CloudWatchBackend:
    """
    Ships events to a CloudWatch Logs stream as JSON lines.

    The log stream is created on first use. Delivery problems are reported to the
    local logger and never raised, so a CloudWatch outage cannot fail a request.
    """

    def __init__(self, logs_client, log_group: str, log_stream: str):
        self._client = logs_client
        self.log_group = log_group
        self.log_stream = log_stream
        self._stream_ready = False

    def _ensure_stream(self) -> None:
        if self._stream_ready:
            return
        try:
            self._client.create_log_stream(logGroupName=self.log_group, logStreamName=self.log_stream)
        except ClientError as e:
            if e.response['Error']['Code'] != 'ResourceAlreadyExistsException':
                raise
        self._stream_ready = True

    def emit(self, level: int, event: str, fields: Dict[str, Any]) -> None:
        message = json.dumps({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": logging.getLevelName(level),
            "event": event,
            **fields,
        }, default=str)
        try:
            self._ensure_stream()
            self._client.put_log_events(
                logGroupName=self.log_group,
                logStreamName=self.log_stream,
                logEvents=[{"timestamp": int(time.time() * 1000), "message": message}],
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Could not ship event '{event}' to CloudWatch group '{self.log_group}': {e}")


class EventSink:
    """
    Single entry point for structured events emitted by the request handlers.
    Every event is fanned out to all configured back-ends.
    """

    def __init__(self, backends: Optional[Iterable[SinkBackend]] = None):
        self.backends: List[SinkBackend] = list(backends) if backends is not None else [LoggerBackend()]

    def emit(self, level: int, event: str, **fields: Any) -> None:
        for backend in self.backends:
            backend.emit(level, event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self.emit(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.emit(logging.WARNING, event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self.emit(logging.ERROR, event, **fields)


def build_event_sink(settings, logs_client=None) -> EventSink:
    """Local logging always; CloudWatch as well when a log group is configured."""
    backends: List[SinkBackend] = [LoggerBackend()]
    if settings.CLOUDWATCH_LOG_GROUP:
        if logs_client is None:
            logs_client = boto3.client("logs", region_name=settings.AWS_REGION or None)
        backends.append(CloudWatchBackend(logs_client, settings.CLOUDWATCH_LOG_GROUP, settings.CLOUDWATCH_LOG_STREAM))
        logger.info(f"Remote event sink enabled: CloudWatch group '{settings.CLOUDWATCH_LOG_GROUP}'.")
    return EventSink(backends)
