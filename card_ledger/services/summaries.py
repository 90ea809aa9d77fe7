"""Invoice summary refresher with exponential backoff retry logic"""

import logging
import time
import uuid
from typing import Callable, Iterable, TypeVar
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from card_ledger.config import settings
from card_ledger.domain.exceptions import RefreshFailure
from card_ledger.infrastructure.database.repositories import SummaryRepository
from card_ledger.infrastructure.observability.logging import log_refresh_failure
from card_ledger.infrastructure.observability.metrics import (
    summary_refresh_failure_counter,
    summary_refresh_latency_histogram,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SummaryRefresher:
    """
    Recomputes invoice summaries in sessions of its own.

    Each unit of work is "recompute the summaries of invoice X", which is
    idempotent, so retrying or running it twice is harmless. Summaries
    may lag behind the invoices they describe until a refresh succeeds.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        max_retries: int | None = None,
        backoff_base: float | None = None,
    ):
        self.session_factory = session_factory
        self.max_retries = settings.summary_refresh_max_retries if max_retries is None else max_retries
        self.backoff_base = settings.summary_refresh_backoff_base if backoff_base is None else backoff_base

    def _with_retries(self, work: Callable[[Session], T]) -> T:
        """
        Run work in a fresh transaction, retrying on database errors.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base, ...
        - Raises RefreshFailure once max_retries attempts have failed
        """
        attempt = 0
        while True:
            try:
                with summary_refresh_latency_histogram.time():
                    with self.session_factory() as db:
                        result = work(db)
                        db.commit()
                        return result

            except SQLAlchemyError as e:
                attempt += 1
                if attempt >= self.max_retries:
                    raise RefreshFailure(str(e)) from e

                backoff = self.backoff_base * (2 ** (attempt - 1))
                logger.info(f"Summary refresh attempt {attempt} failed, retrying in {backoff}s")
                time.sleep(backoff)

    def refresh_invoice(self, invoice_id: uuid.UUID) -> int:
        """Recompute one invoice's summaries; raises RefreshFailure"""
        return self._with_retries(lambda db: SummaryRepository(db).recompute_for_invoice(invoice_id))

    def refresh_invoices(self, invoice_ids: Iterable[uuid.UUID], request_id: str | None = None) -> int:
        """
        Background task entry point.

        Failures are logged and counted, never raised: the mutation that
        scheduled this refresh has already committed.

        Returns:
            Number of invoices refreshed successfully
        """
        refreshed = 0
        for invoice_id in dict.fromkeys(invoice_ids):
            try:
                self.refresh_invoice(invoice_id)
                refreshed += 1
            except Exception as e:
                summary_refresh_failure_counter.inc()
                log_refresh_failure([invoice_id], e, request_id=request_id)
        return refreshed

    def refresh_summaries(self) -> int:
        """Rebuild every summary; returns invoices covered, raises RefreshFailure"""
        return self._with_retries(lambda db: SummaryRepository(db).recompute_all())
