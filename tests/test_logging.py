"""Tests for workflow logging: structured fields and formatters."""

import io
import json
import logging
from unittest.mock import AsyncMock

import pytest

from editorial.logging import (
    WorkflowFormatter,
    WorkflowJsonFormatter,
    log_failure,
    log_warning,
    setup_logging,
)
from editorial.workflow.review import ReviewManagementService


@pytest.fixture
def capture():
    """Logger writing through a swappable formatter into a buffer."""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    test_logger = logging.getLogger("editorial.tests.capture")
    test_logger.addHandler(handler)
    test_logger.setLevel(logging.DEBUG)
    test_logger.propagate = False
    yield test_logger, handler, stream
    test_logger.removeHandler(handler)
    test_logger.propagate = True


# ==============================================================================
# log_failure and log_warning
# ==============================================================================


class TestLogFailure:
    """Tests for log_failure and log_warning."""

    def test_workflow_ids_become_record_attributes(self, caplog):
        test_logger = logging.getLogger("editorial.tests.failure")
        with caplog.at_level(logging.ERROR, logger="editorial"):
            log_failure(
                test_logger,
                "submit_review",
                RuntimeError("connection reset"),
                {"review_id": "rev-1", "article_id": "art-1", "attempt": 2},
            )

        record = caplog.records[-1]
        assert record.getMessage() == "[submit_review] failed: connection reset"
        assert record.levelno == logging.ERROR
        assert record.operation == "submit_review"
        assert record.error_type == "RuntimeError"
        assert record.review_id == "rev-1"
        assert record.article_id == "art-1"
        assert record.context == {"attempt": 2}

    def test_string_error(self, caplog):
        with caplog.at_level(logging.WARNING, logger="editorial"):
            log_failure(logging.getLogger("editorial.tests.failure"), "send_email", "refused", level=logging.WARNING)

        record = caplog.records[-1]
        assert record.error_type == "Error"
        assert record.levelno == logging.WARNING
        assert not hasattr(record, "context")

    def test_warning_carries_article(self, caplog):
        with caplog.at_level(logging.WARNING, logger="editorial"):
            log_warning(
                logging.getLogger("editorial.tests.warning"),
                "aggregate_reviews",
                "status kept",
                {"article_id": "art-1"},
            )

        record = caplog.records[-1]
        assert record.getMessage() == "[aggregate_reviews] status kept"
        assert record.operation == "aggregate_reviews"
        assert record.article_id == "art-1"

    @pytest.mark.asyncio
    async def test_internal_service_failure_is_logged_with_ids(self, caplog, mailer, settings):
        db = AsyncMock()
        db.get.side_effect = RuntimeError("database unavailable")

        with caplog.at_level(logging.ERROR, logger="editorial"):
            result = await ReviewManagementService(db, mailer, settings).submit_review(
                "rev-1", "reviewer-1", "accept", "Fine"
            )

        assert result.success is False
        assert result.error_type == "internal"
        record = caplog.records[-1]
        assert record.operation == "submit_review"
        assert record.review_id == "rev-1"
        assert record.error_type == "RuntimeError"
        db.rollback.assert_awaited_once()


# ==============================================================================
# Formatters
# ==============================================================================


class TestFormatters:
    """Tests for the standard and JSON formatters."""

    def test_json_emits_workflow_fields(self, capture):
        test_logger, handler, stream = capture
        handler.setFormatter(WorkflowJsonFormatter())

        log_failure(
            test_logger,
            "assign_editor",
            ValueError("no profile"),
            {"article_id": "art-1", "editor_id": "ed-1", "note": "manual"},
        )

        entry = json.loads(stream.getvalue())
        assert entry["level"] == "ERROR"
        assert entry["logger"] == "editorial.tests.capture"
        assert entry["message"] == "[assign_editor] failed: no profile"
        assert entry["operation"] == "assign_editor"
        assert entry["error_type"] == "ValueError"
        assert entry["article_id"] == "art-1"
        assert entry["editor_id"] == "ed-1"
        assert entry["context"] == {"note": "manual"}
        assert "submission_id" not in entry

    def test_json_plain_message(self, capture):
        test_logger, handler, stream = capture
        handler.setFormatter(WorkflowJsonFormatter())

        test_logger.info('[workflow] Article "quoted" submitted')

        entry = json.loads(stream.getvalue())
        assert entry["message"] == '[workflow] Article "quoted" submitted'
        assert "operation" not in entry

    def test_json_includes_exception(self, capture):
        test_logger, handler, stream = capture
        handler.setFormatter(WorkflowJsonFormatter())

        try:
            raise KeyError("status")
        except KeyError:
            test_logger.exception("lookup failed")

        entry = json.loads(stream.getvalue())
        assert "KeyError" in entry["exception"]

    def test_standard_appends_fields(self, capture):
        test_logger, handler, stream = capture
        handler.setFormatter(WorkflowFormatter())

        log_warning(test_logger, "aggregate_reviews", "status kept", {"article_id": "art-1", "round": 2})

        line = stream.getvalue().strip()
        assert line.endswith("[aggregate_reviews] status kept | operation=aggregate_reviews, article_id=art-1, round=2")
        assert " - WARNING - " in line

    def test_standard_without_fields(self, capture):
        test_logger, handler, stream = capture
        handler.setFormatter(WorkflowFormatter())

        test_logger.info("plain")

        assert stream.getvalue().strip().endswith(" - INFO - plain")


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_style(self, tmp_path):
        log_file = tmp_path / "editorial.log"
        configured = setup_logging(level="debug", log_file=str(log_file), format_style="json")
        handlers = list(configured.handlers)
        try:
            assert configured.level == logging.DEBUG
            assert len(configured.handlers) == 2
            assert all(isinstance(h.formatter, WorkflowJsonFormatter) for h in configured.handlers)
        finally:
            for handler in handlers:
                handler.close()
            setup_logging(level=logging.WARNING)

    def test_reconfigure_replaces_handlers(self):
        try:
            setup_logging(level=logging.INFO)
            configured = setup_logging(level=logging.INFO)

            assert len(configured.handlers) == 1
            assert isinstance(configured.handlers[0].formatter, WorkflowFormatter)
        finally:
            setup_logging(level=logging.WARNING)
