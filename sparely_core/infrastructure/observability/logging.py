"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "sparely-core"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def __init__(self, *args: Any, service_name: str = SERVICE_NAME, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = SERVICE_NAME) -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        service_name=service_name,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_expense_allocated(
    user_id: str,
    expense_id: Optional[int],
    set_aside_cents: int,
    saving_tax_cents: int,
    unallocated_cents: int,
    duration_ms: float,
) -> None:
    """Log structured allocation outcome for one logged expense"""
    logging.info(
        "Expense allocated",
        extra={
            "user_id": user_id,
            "step": "expense_allocated",
            "expense_id": expense_id,
            "set_aside_cents": set_aside_cents,
            "saving_tax_cents": saving_tax_cents,
            "unallocated_cents": unallocated_cents,
            "duration_ms": duration_ms,
        },
    )


def log_transfer_transition(
    user_id: str,
    action: str,
    status: str,
    pending_cents: int,
    awaiting_cents: int,
) -> None:
    """Log a smart transfer action and the status it left behind"""
    logging.info(
        "Smart transfer updated",
        extra={
            "user_id": user_id,
            "step": "smart_transfer",
            "action": action,
            "status": status,
            "pending_cents": pending_cents,
            "awaiting_cents": awaiting_cents,
        },
    )
