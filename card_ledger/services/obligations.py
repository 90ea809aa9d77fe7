"""Obligation groups - creating, editing and deleting the installments of a purchase"""

import uuid
from datetime import date
from typing import List, Tuple
from sqlalchemy.orm import Session
from card_ledger.domain.billing import period_for_month, resolve_period
from card_ledger.domain.exceptions import InvalidConfiguration, NotFound
from card_ledger.domain.installments import split_installments, strip_installment_suffix
from card_ledger.domain.models import (
    BillingPeriod,
    FINANCE_INSTALLMENT,
    FINANCE_TYPES,
    FINANCE_UPFRONT,
    ObligationChanges,
    ObligationSeed,
)
from card_ledger.domain.money import validate_amount_cents
from card_ledger.infrastructure.database.models import Card, Obligation
from card_ledger.infrastructure.database.repositories import CardRepository, ObligationRepository
from card_ledger.services.ledger import InvoiceLedger
from card_ledger.utils.date_utils import shift_month

KINDS = ("expense", "income")


class ObligationService:
    """
    Lifecycle of obligation groups.

    Nothing here commits: callers own the transaction, so a failure
    anywhere in a group create or delete rolls the whole group back.
    """

    def __init__(self, db: Session, ledger: InvoiceLedger | None = None):
        self.db = db
        self.ledger = ledger or InvoiceLedger(db)
        self.cards = CardRepository(db)
        self.obligations = ObligationRepository(db)

    def create_obligation_group(
        self,
        user_id: str,
        card_id: uuid.UUID,
        amount_cents: int,
        installments: int,
        purchase_date: date,
        offset: int = 0,
        description: str = "",
        category: str | None = None,
        tags: List[str] | None = None,
        finance_type: str | None = None,
        kind: str = "expense",
        shared_with: str | None = None,
        invoice_month: int | None = None,
        invoice_year: int | None = None,
    ) -> List[Obligation]:
        """
        Record a purchase as one obligation per installment.

        Flow:
        1. Load the card (must belong to user_id)
        2. Split the amount into dated seeds and resolve every seed's period
        3. For each seed, find-or-create its invoice, add the amount and
           insert the obligation under a fresh group id

        Everything that can be rejected is checked in steps 1-2, before the
        first write.
        """
        card = self.cards.get_owned(card_id, user_id)
        if card is None:
            raise NotFound(f"Card {card_id} not found")

        finance_type = self._finance_type(finance_type, installments)
        if kind not in KINDS:
            raise InvalidConfiguration(f"Unknown kind {kind!r}")
        if (invoice_month is None) != (invoice_year is None):
            raise InvalidConfiguration("invoice_month and invoice_year must be given together")

        seeds = split_installments(amount_cents, installments, purchase_date, offset)
        planned: List[Tuple[ObligationSeed, BillingPeriod]] = [
            (seed, self._period_for(card, seed, offset, invoice_year, invoice_month)) for seed in seeds
        ]

        group_id = uuid.uuid4()
        base_description = strip_installment_suffix(description)
        created = []
        for seed, period in planned:
            invoice = self.ledger.find_or_create(card, period)
            self.ledger.add_amount(invoice.id, seed.amount_cents)
            created.append(
                self.obligations.create_obligation(
                    card=card,
                    invoice=invoice,
                    group_id=group_id,
                    seed=seed,
                    description=base_description,
                    finance_type=finance_type,
                    kind=kind,
                    category=category,
                    tags=tags,
                    shared_with=shared_with,
                )
            )

        self.db.flush()
        return created

    def _finance_type(self, finance_type: str | None, installments: int) -> str:
        if finance_type is not None and finance_type not in FINANCE_TYPES:
            raise InvalidConfiguration(f"Unknown finance type {finance_type!r}")
        if isinstance(installments, int) and installments > 1:
            return FINANCE_INSTALLMENT
        if finance_type is None or finance_type == FINANCE_INSTALLMENT:
            return FINANCE_UPFRONT
        return finance_type

    def _period_for(
        self,
        card: Card,
        seed: ObligationSeed,
        offset: int,
        invoice_year: int | None,
        invoice_month: int | None,
    ) -> BillingPeriod:
        """Resolve from the seed's own date unless the caller pinned the first visible invoice"""
        if invoice_year is None:
            return resolve_period(seed.date, card.closing_day, card.due_day)
        year, month = shift_month(invoice_year, invoice_month, seed.sequence_index - 1 - offset)
        return period_for_month(year, month, card.closing_day, card.due_day)

    def update_obligation(
        self,
        user_id: str,
        obligation_id: uuid.UUID,
        changes: ObligationChanges,
        apply_to_whole_group: bool = False,
    ) -> Obligation:
        """
        Edit one obligation, optionally copying descriptive fields to its group.

        Amount and date always change on the target only. An amount change
        moves the target's own invoice total by the difference. The invoice
        an obligation belongs to never changes.
        """
        target = self.obligations.get_owned(obligation_id, user_id)
        if target is None:
            raise NotFound(f"Obligation {obligation_id} not found")

        if changes.amount_cents is not None:
            new_amount = validate_amount_cents(changes.amount_cents)
            self.ledger.adjust_total(target.invoice_id, new_amount - target.amount_cents)
            target.amount_cents = new_amount

        if changes.date is not None:
            target.date = changes.date

        members = [target]
        if apply_to_whole_group and target.sequence_count > 1:
            members = self.obligations.list_group(target.group_id, user_id)

        values = changes.group_values()
        if "description" in values:
            values["description"] = strip_installment_suffix(values["description"])
        if "tags" in values:
            values["tags"] = list(values["tags"])
        for member in members:
            for name, value in values.items():
                setattr(member, name, value)

        self.db.flush()
        return target

    def delete_obligation(self, user_id: str, obligation_id: uuid.UUID) -> List[Obligation]:
        """
        Delete an obligation; for installment purchases, every installment.

        Each deleted amount is reversed out of the invoice it was bound to.
        Returns the deleted rows.
        """
        target = self.obligations.get_owned(obligation_id, user_id)
        if target is None:
            raise NotFound(f"Obligation {obligation_id} not found")

        members = [target]
        if target.sequence_count > 1:
            members = self.obligations.list_group(target.group_id, user_id)

        for member in members:
            self.ledger.remove_amount(member.invoice_id, member.amount_cents)
        self.obligations.delete_obligations(members)
        return members

    def list_group(self, user_id: str, group_id: uuid.UUID) -> List[Obligation]:
        members = self.obligations.list_group(group_id, user_id)
        if not members:
            raise NotFound(f"Obligation group {group_id} not found")
        return members
