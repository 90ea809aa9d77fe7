"""SQLAlchemy ORM models for cards, invoices, obligations and invoice summaries"""

import uuid
from sqlalchemy import (
    Column,
    BigInteger,
    Date,
    DateTime,
    Integer,
    ForeignKey,
    Text,
    JSON,
    Uuid,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Card(Base):
    """Credit card with a monthly billing cycle"""

    __tablename__ = "card"
    __table_args__ = (
        CheckConstraint("closing_day BETWEEN 1 AND 31", name="ck_card_closing_day"),
        CheckConstraint("due_day BETWEEN 1 AND 31", name="ck_card_due_day"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    alias = Column(Text, nullable=False)
    brand = Column(Text, nullable=False)
    total_limit_cents = Column(BigInteger, nullable=False, default=0)
    closing_day = Column(Integer, nullable=False)
    due_day = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    invoices = relationship("Invoice", back_populates="card")


class Invoice(Base):
    """Monthly statement of a card; at most one per (card, year, month)"""

    __tablename__ = "invoice"
    __table_args__ = (
        UniqueConstraint("card_id", "year", "month", name="uq_invoice_card_period"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    card_id = Column(Uuid(as_uuid=True), ForeignKey("card.id", ondelete="CASCADE"), nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    total_amount_cents = Column(BigInteger, nullable=False, default=0)
    paid_amount_cents = Column(BigInteger, nullable=False, default=0)
    closing_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="open")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    card = relationship("Card", back_populates="invoices")
    obligations = relationship("Obligation", back_populates="invoice", order_by="Obligation.date")


class Obligation(Base):
    """Dated line item on a card; one installment of a purchase, a single charge or a subscription charge"""

    __tablename__ = "obligation"
    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_obligation_amount_non_negative"),
        CheckConstraint("sequence_index BETWEEN 1 AND sequence_count", name="ck_obligation_sequence"),
        UniqueConstraint("group_id", "sequence_index", name="uq_obligation_group_sequence"),
        Index("ix_obligation_card_date", "card_id", "date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    card_id = Column(Uuid(as_uuid=True), ForeignKey("card.id", ondelete="CASCADE"), nullable=False)
    # Bound at creation; edits to date or amount never move it
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("invoice.id"), nullable=False, index=True)
    group_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    sequence_index = Column(Integer, nullable=False, default=1)
    sequence_count = Column(Integer, nullable=False, default=1)
    amount_cents = Column(BigInteger, nullable=False)
    kind = Column(Text, nullable=False, default="expense")  # "expense" or "income"
    finance_type = Column(Text, nullable=False, default="upfront")  # upfront | installment | subscription
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    shared_with = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    invoice = relationship("Invoice", back_populates="obligations")

    @property
    def label(self) -> str:
        """Display description, e.g. 'Laptop (2/12)' for installments"""
        if self.sequence_count > 1:
            return f"{self.description} ({self.sequence_index}/{self.sequence_count})"
        return self.description


class InvoiceSummary(Base):
    """Precomputed per-invoice totals; an eventually consistent cache, never the source of truth"""

    __tablename__ = "invoice_summary"

    invoice_id = Column(Uuid(as_uuid=True), primary_key=True)
    scope = Column(Text, primary_key=True)  # all | installment | subscription
    card_id = Column(Uuid(as_uuid=True), nullable=False)
    user_id = Column(Text, nullable=False, index=True)
    total_items = Column(Integer, nullable=False)
    total_amount_cents = Column(BigInteger, nullable=False)
    invoice_date = Column(Date, nullable=True)  # latest obligation date
    due_date = Column(Date, nullable=True)
    closing_date = Column(Date, nullable=True)
    paid_amount_cents = Column(BigInteger, nullable=True)
    status = Column(Text, nullable=True)
    refreshed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
