import json
import logging
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from kyc_backend.core.config import Settings
from kyc_backend.core.logging import configure_logging, get_logger
from kyc_backend.core.observability import (
    CloudWatchBackend, EventSink, LoggerBackend, build_event_sink
)

from conftest import RecordingBackend


def client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "PutLogEvents")


class TestEventSink:

    def test_fans_out_to_every_backend(self):
        first, second = RecordingBackend(), RecordingBackend()
        sink = EventSink([first, second])
        sink.info("document.uploaded", user_id="u1")
        sink.error("request.failed", status=500)
        for backend in (first, second):
            assert backend.events == [
                (logging.INFO, "document.uploaded", {"user_id": "u1"}),
                (logging.ERROR, "request.failed", {"status": 500}),
            ]

    def test_defaults_to_local_logging(self):
        sink = EventSink()
        assert len(sink.backends) == 1
        assert isinstance(sink.backends[0], LoggerBackend)

    def test_logger_backend_formats_fields(self, caplog):
        with caplog.at_level(logging.INFO, logger="identity-events"):
            LoggerBackend().emit(logging.INFO, "selfie.linked", {"user_id": "u1"})
        assert "selfie.linked user_id=u1" in caplog.text


class TestCloudWatchBackend:

    def test_creates_stream_once_and_ships_json(self):
        logs = MagicMock()
        backend = CloudWatchBackend(logs, "identity", "api")
        backend.emit(logging.WARNING, "auth.rejected", {"path": "/detectFace"})
        backend.emit(logging.INFO, "users.listed", {"count": 2})

        logs.create_log_stream.assert_called_once_with(logGroupName="identity", logStreamName="api")
        assert logs.put_log_events.call_count == 2
        first = logs.put_log_events.call_args_list[0].kwargs
        message = json.loads(first["logEvents"][0]["message"])
        assert message["level"] == "WARNING"
        assert message["event"] == "auth.rejected"
        assert message["path"] == "/detectFace"

    def test_existing_stream_is_fine(self):
        logs = MagicMock()
        logs.create_log_stream.side_effect = client_error("ResourceAlreadyExistsException")
        CloudWatchBackend(logs, "identity", "api").emit(logging.INFO, "users.listed", {})
        logs.put_log_events.assert_called_once()

    def test_delivery_failure_does_not_raise(self, caplog):
        logs = MagicMock()
        logs.put_log_events.side_effect = client_error("ThrottlingException")
        with caplog.at_level(logging.WARNING, logger="observability"):
            CloudWatchBackend(logs, "identity", "api").emit(logging.INFO, "users.listed", {})
        assert "Could not ship event 'users.listed'" in caplog.text


class TestBuildEventSink:

    def test_local_only_without_log_group(self):
        sink = build_event_sink(Settings(CLOUDWATCH_LOG_GROUP=""))
        assert [type(b) for b in sink.backends] == [LoggerBackend]

    def test_adds_cloudwatch_with_log_group(self):
        sink = build_event_sink(Settings(CLOUDWATCH_LOG_GROUP="identity"), logs_client=MagicMock())
        assert [type(b) for b in sink.backends] == [LoggerBackend, CloudWatchBackend]


def test_configure_logging_writes_local_files(tmp_path):
    log_dir = tmp_path / "logs"
    configure_logging("INFO", str(log_dir))
    configure_logging("INFO", str(log_dir))
    logger = get_logger("observability-test")
    logger.info("combined only")
    logger.error("in both files")
    for handler in logging.getLogger().handlers:
        handler.flush()

    combined = (log_dir / "combined.log").read_text()
    errors = (log_dir / "errors.log").read_text()
    assert "combined only" in combined and "in both files" in combined
    assert "in both files" in errors and "combined only" not in errors

    file_handlers = [h for h in logging.getLogger().handlers if getattr(h, "baseFilename", "").startswith(str(log_dir))]
    assert len(file_handlers) == 2
