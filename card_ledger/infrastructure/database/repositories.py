"""Data access layer for cards, invoices, obligations and invoice summaries"""

import uuid
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence
from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session
from card_ledger.infrastructure.database.models import Card, Invoice, InvoiceSummary, Obligation
from card_ledger.domain.models import (
    BillingPeriod,
    ObligationSeed,
    SCOPE_ALL,
    SUMMARY_SCOPES,
    STATUS_OPEN,
)


class CardRepository:
    """Repository for cards"""

    def __init__(self, db: Session):
        self.db = db

    def create_card(
        self,
        user_id: str,
        alias: str,
        brand: str,
        closing_day: int,
        due_day: int,
        total_limit_cents: int = 0,
    ) -> Card:
        db_card = Card(
            user_id=user_id,
            alias=alias,
            brand=brand,
            closing_day=closing_day,
            due_day=due_day,
            total_limit_cents=total_limit_cents,
        )
        self.db.add(db_card)
        self.db.flush()
        return db_card

    def get_owned(self, card_id: uuid.UUID, user_id: str) -> Optional[Card]:
        """Fetch a card only if it belongs to user_id"""
        return self.db.execute(
            select(Card).where(Card.id == card_id, Card.user_id == user_id)
        ).scalar_one_or_none()


class InvoiceRepository:
    """
    Repository for invoices.

    Totals are only ever changed with single UPDATE statements computed
    in the database, so in-memory Invoice objects may lag; reads use
    populate_existing to pick up the stored values.
    """

    def __init__(self, db: Session):
        self.db = db

    def _insert_statement(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(Invoice)
        if dialect == "sqlite":
            return sqlite.insert(Invoice)
        raise NotImplementedError(f"Invoice upsert not supported on {dialect}")

    def insert_if_absent(self, card: Card, period: BillingPeriod) -> None:
        """Create the (card, year, month) invoice unless another writer already did"""
        stmt = (
            self._insert_statement()
            .values(
                id=uuid.uuid4(),
                user_id=card.user_id,
                card_id=card.id,
                year=period.year,
                month=period.month,
                total_amount_cents=0,
                paid_amount_cents=0,
                closing_date=period.closing_date,
                due_date=period.due_date,
                status=STATUS_OPEN,
            )
            .on_conflict_do_nothing(index_elements=["card_id", "year", "month"])
        )
        self.db.execute(stmt)

    def get_for_period(self, card_id: uuid.UUID, year: int, month: int) -> Optional[Invoice]:
        return self.db.execute(
            select(Invoice)
            .where(Invoice.card_id == card_id, Invoice.year == year, Invoice.month == month)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get(self, invoice_id: uuid.UUID, user_id: str | None = None) -> Optional[Invoice]:
        stmt = select(Invoice).where(Invoice.id == invoice_id)
        if user_id is not None:
            stmt = stmt.where(Invoice.user_id == user_id)
        return self.db.execute(stmt.execution_options(populate_existing=True)).scalar_one_or_none()

    def increment_total(self, invoice_id: uuid.UUID, delta_cents: int) -> int:
        """total = total + delta as one statement; returns rows matched"""
        result = self.db.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id)
            .values(total_amount_cents=Invoice.total_amount_cents + delta_cents)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def transition_status(
        self,
        invoice_id: uuid.UUID,
        user_id: str,
        from_statuses: Sequence[str],
        to_status: str,
        settle: bool = False,
    ) -> int:
        """
        Move status only if the current one is in from_statuses.

        settle copies the stored total into paid_amount_cents in the same
        statement, so the paid amount matches the total at that instant.
        """
        values = {"status": to_status}
        if settle:
            values["paid_amount_cents"] = Invoice.total_amount_cents
        result = self.db.execute(
            update(Invoice)
            .where(
                Invoice.id == invoice_id,
                Invoice.user_id == user_id,
                Invoice.status.in_(list(from_statuses)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def list_by_card(self, card_id: uuid.UUID, user_id: str) -> List[Invoice]:
        return list(
            self.db.execute(
                select(Invoice)
                .where(Invoice.card_id == card_id, Invoice.user_id == user_id)
                .order_by(Invoice.year.desc(), Invoice.month.desc())
                .execution_options(populate_existing=True)
            ).scalars()
        )

    def list_for_month(
        self, user_id: str, year: int, month: int, card_ids: Optional[List[uuid.UUID]] = None
    ) -> List[Invoice]:
        """Invoices of every card (or the given cards) for one billing month"""
        stmt = select(Invoice).where(
            Invoice.user_id == user_id, Invoice.year == year, Invoice.month == month
        )
        if card_ids:
            stmt = stmt.where(Invoice.card_id.in_(card_ids))
        return list(
            self.db.execute(
                stmt.order_by(Invoice.due_date).execution_options(populate_existing=True)
            ).scalars()
        )


class ObligationRepository:
    """Repository for obligations and their installment groups"""

    def __init__(self, db: Session):
        self.db = db

    def create_obligation(
        self,
        card: Card,
        invoice: Invoice,
        group_id: uuid.UUID,
        seed: ObligationSeed,
        description: str,
        finance_type: str,
        kind: str = "expense",
        category: str | None = None,
        tags: List[str] | None = None,
        shared_with: str | None = None,
    ) -> Obligation:
        db_obligation = Obligation(
            user_id=card.user_id,
            card_id=card.id,
            invoice_id=invoice.id,
            group_id=group_id,
            sequence_index=seed.sequence_index,
            sequence_count=seed.sequence_count,
            amount_cents=seed.amount_cents,
            kind=kind,
            finance_type=finance_type,
            date=seed.date,
            description=description,
            category=category,
            tags=list(tags or []),
            shared_with=shared_with,
        )
        self.db.add(db_obligation)
        return db_obligation

    def get_owned(self, obligation_id: uuid.UUID, user_id: str) -> Optional[Obligation]:
        return self.db.execute(
            select(Obligation).where(Obligation.id == obligation_id, Obligation.user_id == user_id)
        ).scalar_one_or_none()

    def list_group(self, group_id: uuid.UUID, user_id: str) -> List[Obligation]:
        """All installments of one purchase, in sequence order"""
        return list(
            self.db.execute(
                select(Obligation)
                .where(Obligation.group_id == group_id, Obligation.user_id == user_id)
                .order_by(Obligation.sequence_index)
            ).scalars()
        )

    def list_by_card(self, card_id: uuid.UUID, user_id: str) -> List[Obligation]:
        return list(
            self.db.execute(
                select(Obligation)
                .where(Obligation.card_id == card_id, Obligation.user_id == user_id)
                .order_by(Obligation.date.desc(), Obligation.created_at.desc())
            ).scalars()
        )

    def list_by_invoice(self, invoice_id: uuid.UUID) -> List[Obligation]:
        return list(
            self.db.execute(
                select(Obligation)
                .where(Obligation.invoice_id == invoice_id)
                .order_by(Obligation.date, Obligation.sequence_index)
            ).scalars()
        )

    def delete_obligations(self, obligations: List[Obligation]) -> None:
        for obligation in obligations:
            self.db.delete(obligation)
        self.db.flush()


class SummaryRepository:
    """Recomputes and reads the per-invoice summary rows"""

    def __init__(self, db: Session):
        self.db = db

    def _aggregate(self, scope: str):
        stmt = select(
            Obligation.invoice_id,
            func.count(Obligation.id),
            func.coalesce(func.sum(Obligation.amount_cents), 0),
            func.max(Obligation.date),
        ).group_by(Obligation.invoice_id)
        if scope != SCOPE_ALL:
            stmt = stmt.where(Obligation.finance_type == scope)
        return stmt

    def _summary_row(
        self, invoice: Invoice, scope: str, count: int, total: int, latest: Optional[date], now: datetime
    ) -> InvoiceSummary:
        return InvoiceSummary(
            invoice_id=invoice.id,
            scope=scope,
            card_id=invoice.card_id,
            user_id=invoice.user_id,
            total_items=count,
            total_amount_cents=int(total),
            invoice_date=latest,
            due_date=invoice.due_date,
            closing_date=invoice.closing_date,
            paid_amount_cents=invoice.paid_amount_cents,
            status=invoice.status,
            refreshed_at=now,
        )

    def recompute_for_invoice(self, invoice_id: uuid.UUID) -> int:
        """
        Replace the summary rows of one invoice. Idempotent.

        Returns the number of scope rows written; an invoice without
        obligations (or one that no longer exists) ends up with none.
        """
        self.db.execute(delete(InvoiceSummary).where(InvoiceSummary.invoice_id == invoice_id))

        invoice = self.db.get(Invoice, invoice_id)
        if invoice is None:
            return 0

        now = datetime.now(timezone.utc)
        written = 0
        for scope in SUMMARY_SCOPES:
            row = self.db.execute(
                self._aggregate(scope).where(Obligation.invoice_id == invoice_id)
            ).first()
            if row is None:
                continue
            _, count, total, latest = row
            self.db.add(self._summary_row(invoice, scope, count, total, latest, now))
            written += 1

        self.db.flush()
        return written

    def recompute_all(self) -> int:
        """Rebuild every summary row; returns the number of invoices covered"""
        self.db.execute(delete(InvoiceSummary))

        invoices: Dict[uuid.UUID, Invoice] = {
            inv.id: inv for inv in self.db.execute(select(Invoice)).scalars()
        }
        now = datetime.now(timezone.utc)
        covered = set()
        for scope in SUMMARY_SCOPES:
            for invoice_id, count, total, latest in self.db.execute(self._aggregate(scope)):
                invoice = invoices.get(invoice_id)
                if invoice is None:
                    continue
                self.db.add(self._summary_row(invoice, scope, count, total, latest, now))
                covered.add(invoice_id)

        self.db.flush()
        return len(covered)

    def get_for_invoice(self, invoice_id: uuid.UUID) -> List[InvoiceSummary]:
        return list(
            self.db.execute(
                select(InvoiceSummary)
                .where(InvoiceSummary.invoice_id == invoice_id)
                .order_by(InvoiceSummary.scope)
            ).scalars()
        )
