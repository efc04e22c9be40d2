"""Logging configuration for the editorial workflow engine.

Failures and warnings raised inside workflow services carry the ids of the
records they concern (article, submission, review, ...). ``log_failure``
and ``log_warning`` put those ids on the log record itself, so the JSON
format emits them as fields of their own and the standard format appends
them to the line.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Create the main logger for the editorial package
logger = logging.getLogger("editorial")

# Record attributes that identify what a workflow message is about
WORKFLOW_FIELDS = (
    "operation",
    "error_type",
    "article_id",
    "submission_id",
    "review_id",
    "invitation_id",
    "assignment_id",
    "author_id",
    "editor_id",
    "reviewer_id",
)


def workflow_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Workflow ids and free-form context attached to a record."""
    fields = {key: getattr(record, key) for key in WORKFLOW_FIELDS if getattr(record, key, None) is not None}
    context = getattr(record, "context", None)
    if context:
        fields["context"] = context
    return fields


class WorkflowFormatter(logging.Formatter):
    """Human-readable lines, with workflow fields appended as key=value."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        fields = workflow_fields(record)
        context = fields.pop("context", {})
        pairs = [f"{k}={v}" for k, v in {**fields, **context}.items()]
        return f"{line} | {', '.join(pairs)}" if pairs else line


class WorkflowJsonFormatter(logging.Formatter):
    """One JSON object per line; workflow fields are top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(workflow_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(
    level: int | str = logging.INFO,
    log_file: str | None = None,
    format_style: str = "standard",
) -> logging.Logger:
    """
    Configure logging for the editorial package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs to
        format_style: "standard" for human-readable, "json" for one object per line

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    formatter: logging.Formatter = WorkflowJsonFormatter() if format_style == "json" else WorkflowFormatter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def _workflow_extra(operation: str, context: dict[str, Any] | None, **fields: Any) -> dict[str, Any]:
    """Split service context into known workflow fields and the rest."""
    extra: dict[str, Any] = {"operation": operation, **fields}
    rest: dict[str, Any] = {}
    for key, value in (context or {}).items():
        if key in WORKFLOW_FIELDS:
            extra[key] = value
        else:
            rest[key] = value
    if rest:
        extra["context"] = rest
    return extra


def log_failure(
    logger: logging.Logger,
    operation: str,
    error: Exception | str,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """
    Log a failed workflow operation.

    Args:
        logger: Logger instance to use
        operation: Name of the operation that failed
        error: Exception or error message
        context: Record ids and other details of the failure
        level: Logging level (default: ERROR)
    """
    error_type = type(error).__name__ if isinstance(error, Exception) else "Error"
    logger.log(
        level,
        f"[{operation}] failed: {error}",
        extra=_workflow_extra(operation, context, error_type=error_type),
    )


def log_warning(
    logger: logging.Logger,
    operation: str,
    message: str,
    context: dict[str, Any] | None = None,
) -> None:
    """Log a workflow warning with the ids it concerns."""
    logger.warning(f"[{operation}] {message}", extra=_workflow_extra(operation, context))


# Initialize default logging (can be reconfigured by CLI or settings)
setup_logging(level=logging.WARNING)
