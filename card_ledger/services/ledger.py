"""Invoice ledger - find-or-create and atomic maintenance of invoice totals"""

import logging
import uuid
from sqlalchemy.orm import Session
from card_ledger.config import settings
from card_ledger.domain.billing import period_for_month
from card_ledger.domain.exceptions import ConcurrentUpdateConflict, InvalidStatusTransition, NotFound
from card_ledger.domain.models import BillingPeriod, STATUS_OPEN, STATUS_OVERDUE, STATUS_PAID
from card_ledger.domain.money import validate_amount_cents
from card_ledger.infrastructure.database.models import Card, Invoice
from card_ledger.infrastructure.database.repositories import CardRepository, InvoiceRepository
from card_ledger.infrastructure.observability.metrics import ledger_adjustment_counter, ledger_conflict_counter

logger = logging.getLogger(__name__)


class InvoiceLedger:
    """
    The only writer of invoice totals.

    Totals move through single-statement increments, so two requests adding
    to the same invoice serialize on its row while requests against
    different invoices never wait on each other. Status changes are
    explicit and never a side effect of adding or removing amounts.
    """

    def __init__(self, db: Session, max_retries: int | None = None):
        self.db = db
        self.invoices = InvoiceRepository(db)
        self.max_retries = settings.ledger_max_retries if max_retries is None else max_retries

    def find_or_create(self, card: Card, period: BillingPeriod) -> Invoice:
        """
        Return the invoice of card for period, creating an empty open one if needed.

        Creation is an insert-if-absent on the unique (card, year, month)
        key, so concurrent first obligations of a month converge on one row.
        """
        attempt = 0
        while True:
            self.invoices.insert_if_absent(card, period)
            invoice = self.invoices.get_for_period(card.id, period.year, period.month)
            if invoice is not None:
                return invoice

            # Row vanished between insert and read (concurrent delete)
            attempt += 1
            ledger_conflict_counter.inc()
            logger.warning(
                "Invoice disappeared during find-or-create",
                extra={"card_id": str(card.id), "year": period.year, "month": period.month, "attempt": attempt},
            )
            if attempt >= self.max_retries:
                raise ConcurrentUpdateConflict(
                    f"Could not settle invoice {period.year}-{period.month:02d} for card {card.id}"
                )

    def find_or_create_for_month(self, user_id: str, card_id: uuid.UUID, year: int, month: int) -> Invoice:
        card = CardRepository(self.db).get_owned(card_id, user_id)
        if card is None:
            raise NotFound(f"Card {card_id} not found")
        return self.find_or_create(card, period_for_month(year, month, card.closing_day, card.due_day))

    def add_amount(self, invoice_id: uuid.UUID, amount_cents: int) -> None:
        self.adjust_total(invoice_id, validate_amount_cents(amount_cents, allow_zero=True))

    def remove_amount(self, invoice_id: uuid.UUID, amount_cents: int) -> None:
        self.adjust_total(invoice_id, -validate_amount_cents(amount_cents, allow_zero=True))

    def adjust_total(self, invoice_id: uuid.UUID, delta_cents: int) -> None:
        """Signed change of an invoice total; zero is a no-op"""
        if delta_cents == 0:
            return
        if self.invoices.increment_total(invoice_id, delta_cents) == 0:
            raise NotFound(f"Invoice {invoice_id} not found")
        ledger_adjustment_counter.labels(direction="add" if delta_cents > 0 else "remove").inc()

    def mark_paid(self, invoice_id: uuid.UUID, user_id: str) -> Invoice:
        """open/overdue -> paid, paid amount set to the total at this instant"""
        return self._transition(invoice_id, user_id, (STATUS_OPEN, STATUS_OVERDUE), STATUS_PAID, settle=True)

    def reopen(self, invoice_id: uuid.UUID, user_id: str) -> Invoice:
        """paid -> open; the recorded paid amount is kept"""
        return self._transition(invoice_id, user_id, (STATUS_PAID,), STATUS_OPEN)

    def _transition(self, invoice_id, user_id, from_statuses, to_status, settle=False) -> Invoice:
        changed = self.invoices.transition_status(invoice_id, user_id, from_statuses, to_status, settle=settle)
        invoice = self.invoices.get(invoice_id, user_id)
        if invoice is None:
            raise NotFound(f"Invoice {invoice_id} not found")
        if not changed:
            raise InvalidStatusTransition(f"Invoice {invoice_id} is {invoice.status}, cannot become {to_status}")
        return invoice
