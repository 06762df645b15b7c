"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from installment_engine.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_plan_created(request_id: str, plan_id: str, customer_id: str, number_of_installments: int) -> None:
    logging.info(
        "Installment plan created",
        extra={
            "request_id": request_id,
            "plan_id": plan_id,
            "customer_id": customer_id,
            "step": "plan_created",
            "number_of_installments": number_of_installments,
        },
    )


def log_payment_recorded(
    request_id: str,
    plan_id: str,
    installment_index: int,
    amount: str,
    settled: bool,
    duration_ms: float,
) -> None:
    """Log structured payment outcome for reconciliation"""
    logging.info(
        "Payment recorded",
        extra={
            "request_id": request_id,
            "plan_id": plan_id,
            "installment_index": installment_index,
            "step": "payment_recorded",
            "amount": amount,
            "installment_outcome": "settled" if settled else "partial",
            "duration_ms": duration_ms,
        },
    )


def log_sweep_completed(installments_marked: int, duration_ms: float, trigger: str) -> None:
    logging.info(
        "Overdue sweep completed",
        extra={
            "step": "overdue_sweep",
            "trigger": trigger,
            "installments_marked": installments_marked,
            "duration_ms": duration_ms,
        },
    )
