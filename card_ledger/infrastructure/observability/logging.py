"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable
from pythonjsonlogger import jsonlogger
from card_ledger.config import settings
from card_ledger.domain.money import format_cents


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


def log_obligation_group_created(
    request_id: str,
    user_id: str,
    card_id: str,
    group_id: str,
    installments: int,
    amount_cents: int,
    invoice_count: int,
    duration_ms: float,
) -> None:
    """Log a purchase fanned out into obligations"""
    logging.info(
        "Obligation group created",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "card_id": card_id,
            "group_id": group_id,
            "step": "obligation_group_created",
            "installments": installments,
            "amount_cents": amount_cents,
            "amount": format_cents(amount_cents),
            "invoice_count": invoice_count,
            "duration_ms": duration_ms,
        },
    )


def log_obligations_deleted(request_id: str, user_id: str, group_id: str, deleted: int, reversed_cents: int) -> None:
    """Log removal of an obligation or a whole installment group"""
    logging.info(
        "Obligations deleted",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "group_id": group_id,
            "step": "obligations_deleted",
            "deleted": deleted,
            "reversed_cents": reversed_cents,
            "reversed": format_cents(reversed_cents),
        },
    )


def log_invoice_status_change(request_id: str, user_id: str, invoice_id: str, status: str) -> None:
    logging.info(
        "Invoice status changed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "invoice_id": invoice_id,
            "step": "invoice_status_changed",
            "status": status,
        },
    )


def log_refresh_failure(invoice_ids: Iterable[str], error: Exception, request_id: str | None = None) -> None:
    """Summary refresh gave up; the mutation that triggered it stays committed"""
    logging.warning(
        f"Summary refresh failed: {error}",
        extra={
            "request_id": request_id,
            "invoice_ids": [str(i) for i in invoice_ids],
            "step": "summary_refresh_failed",
        },
    )
