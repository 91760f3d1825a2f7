"""Structured JSON logging for CI runs."""

import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger


# Global run ID for correlation across log entries
RUN_ID = str(uuid.uuid4())


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter that adds run_id and standardized fields."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        """Add custom fields to log record.

        Args:
            log_record: The log record to modify.
            record: The original logging.LogRecord.
            message_dict: Additional fields from the logging call.
        """
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        log_record["run_id"] = RUN_ID
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure structured JSON logging for the application.

    Args:
        verbose: Log DEBUG records too.

    Returns:
        logging.Logger: Configured root logger.
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    json_handler = logging.StreamHandler(sys.stdout)
    json_handler.setFormatter(CustomJsonFormatter("%(message)s"))
    logger.addHandler(json_handler)

    return logger


def log_reconcile_result(
    job_name: str,
    test_id: str,
    action: str,
    issue_keys: list[str],
    duration_ms: int,
) -> None:
    """Log structured per-test reconciliation result.

    Args:
        job_name: Job the test belongs to.
        test_id: Test identity.
        action: created, linked, mapped, dry_run or failed.
        issue_keys: Issue keys involved (empty when none).
        duration_ms: Processing time in milliseconds.
    """
    logger = logging.getLogger(__name__)
    level = logging.ERROR if action == "failed" else logging.INFO
    logger.log(
        level,
        "Test reconciled",
        extra={
            "job_name": job_name,
            "test_id": test_id,
            "action": action,
            "issue_keys": issue_keys,
            "duration_ms": duration_ms,
        },
    )


def log_run_summary(
    total_tests: int,
    failed_tests: int,
    created: int,
    linked: int,
    already_mapped: int,
    errors: int,
    duration_sec: float,
) -> None:
    """Log run completion summary.

    Args:
        total_tests: Test cases read from the reports.
        failed_tests: Failing test cases reconciled.
        created: Issues created.
        linked: Failing tests linked to an existing issue.
        already_mapped: Failing tests already tracked before the run.
        errors: Reconciliations that failed.
        duration_sec: Total execution time in seconds.
    """
    logger = logging.getLogger(__name__)
    logger.info(
        "Run completed",
        extra={
            "total_tests": total_tests,
            "failed_tests": failed_tests,
            "created": created,
            "linked": linked,
            "already_mapped": already_mapped,
            "errors": errors,
            "duration_sec": duration_sec,
        },
    )
