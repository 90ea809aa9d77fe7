"""Integration tests for obligation group create, edit and delete"""

import uuid
import pytest
from datetime import date
from sqlalchemy import func, select
from card_ledger.domain.exceptions import InvalidAmount, InvalidConfiguration, NotFound
from card_ledger.domain.models import ObligationChanges
from card_ledger.infrastructure.database.models import Invoice, Obligation
from card_ledger.infrastructure.database.repositories import InvoiceRepository
from card_ledger.services.ledger import InvoiceLedger
from card_ledger.services.obligations import ObligationService
from conftest import OTHER_USER_ID, USER_ID


def _create(db, card, amount, installments, purchase_date, **kwargs):
    kwargs.setdefault("description", "Laptop")
    obligations = ObligationService(db).create_obligation_group(
        user_id=USER_ID,
        card_id=card.id,
        amount_cents=amount,
        installments=installments,
        purchase_date=purchase_date,
        **kwargs,
    )
    db.commit()
    return obligations


def _invoice(db, invoice_id):
    return InvoiceRepository(db).get(invoice_id)


def _invoice_count(db):
    return db.execute(select(func.count(Invoice.id))).scalar_one()


def test_single_purchase_lands_on_resolved_invoice(db, card):
    [obligation] = _create(db, card, 2599, 1, date(2025, 6, 10), description="Books")

    invoice = _invoice(db, obligation.invoice_id)
    assert (invoice.year, invoice.month) == (2025, 7)
    assert invoice.total_amount_cents == 2599
    assert obligation.finance_type == "upfront"
    assert obligation.sequence_index == obligation.sequence_count == 1
    assert obligation.label == "Books"


def test_installments_each_bound_to_their_own_invoice(db, card):
    obligations = _create(db, card, 1000, 3, date(2025, 6, 10))

    assert [o.amount_cents for o in obligations] == [333, 333, 334]
    assert len({o.group_id for o in obligations}) == 1
    assert all(o.finance_type == "installment" for o in obligations)
    assert [o.label for o in obligations] == ["Laptop (1/3)", "Laptop (2/3)", "Laptop (3/3)"]

    periods = [(_invoice(db, o.invoice_id).year, _invoice(db, o.invoice_id).month) for o in obligations]
    assert periods == [(2025, 7), (2025, 8), (2025, 9)]
    assert [_invoice(db, o.invoice_id).total_amount_cents for o in obligations] == [333, 333, 334]


def test_overlapping_groups_accumulate_on_shared_invoice(db, card):
    """Second installments of two purchases land on the same August invoice"""
    first = _create(db, card, 1000, 3, date(2025, 6, 10))
    second = _create(db, card, 2001, 2, date(2025, 6, 20), description="Phone")

    assert first[1].invoice_id == second[1].invoice_id
    assert _invoice(db, first[1].invoice_id).total_amount_cents == 333 + 1001
    assert first[0].group_id != second[0].group_id


def test_description_suffix_stripped_on_create(db, card):
    obligations = _create(db, card, 900, 3, date(2025, 6, 1), description="Sofa (1/3)")

    assert {o.description for o in obligations} == {"Sofa"}


def test_retroactive_offset_backfills_past_invoices(db, card):
    obligations = _create(db, card, 4000, 4, date(2025, 6, 5), offset=2)

    assert [o.date for o in obligations] == [date(2025, 4, 5), date(2025, 5, 5), date(2025, 6, 5), date(2025, 7, 5)]
    months = [_invoice(db, o.invoice_id).month for o in obligations]
    assert months == [4, 5, 6, 7]


def test_explicit_invoice_month_pins_first_visible_installment(db, card):
    obligations = _create(db, card, 3000, 3, date(2025, 6, 1), invoice_month=8, invoice_year=2025)

    invoices = [_invoice(db, o.invoice_id) for o in obligations]
    assert [(i.year, i.month) for i in invoices] == [(2025, 8), (2025, 9), (2025, 10)]
    assert invoices[0].closing_date == date(2025, 8, 7)


def test_total_smaller_than_installment_count(db, card):
    """2 cents over 3 installments: two zero-cent obligations, the last invoice carries 2"""
    obligations = _create(db, card, 2, 3, date(2025, 6, 10), description="Sticker")

    assert [o.amount_cents for o in obligations] == [0, 0, 2]
    assert [_invoice(db, o.invoice_id).total_amount_cents for o in obligations] == [0, 0, 2]

    ObligationService(db).delete_obligation(USER_ID, obligations[0].id)
    db.commit()

    assert [_invoice(db, o.invoice_id).total_amount_cents for o in obligations] == [0, 0, 0]


def test_subscription_finance_type_kept_for_single_charge(db, card):
    [obligation] = _create(db, card, 1990, 1, date(2025, 6, 1), finance_type="subscription", description="Music")
    assert obligation.finance_type == "subscription"


def test_invalid_input_writes_nothing(db, card):
    with pytest.raises(InvalidAmount):
        _create(db, card, 0, 3, date(2025, 6, 1))
    with pytest.raises(InvalidConfiguration):
        _create(db, card, 100, 1, date(2025, 6, 1), invoice_month=8)
    db.rollback()

    assert _invoice_count(db) == 0
    assert db.execute(select(func.count(Obligation.id))).scalar_one() == 0


def test_create_on_other_users_card_is_not_found(db, card):
    with pytest.raises(NotFound):
        ObligationService(db).create_obligation_group(
            user_id=OTHER_USER_ID,
            card_id=card.id,
            amount_cents=100,
            installments=1,
            purchase_date=date(2025, 6, 1),
            description="Nope",
        )


def test_editing_date_keeps_invoice(db, card):
    [obligation] = _create(db, card, 5000, 1, date(2025, 6, 1))
    original_invoice = obligation.invoice_id

    updated = ObligationService(db).update_obligation(
        USER_ID, obligation.id, ObligationChanges(date=date(2025, 9, 30))
    )
    db.commit()

    assert updated.date == date(2025, 9, 30)
    assert updated.invoice_id == original_invoice
    assert _invoice(db, original_invoice).total_amount_cents == 5000


def test_editing_amount_adjusts_own_invoice_only(db, card):
    obligations = _create(db, card, 1000, 3, date(2025, 6, 10))

    ObligationService(db).update_obligation(
        USER_ID, obligations[1].id, ObligationChanges(amount_cents=400), apply_to_whole_group=True
    )
    db.commit()

    assert [o.amount_cents for o in obligations] == [333, 400, 334]
    assert [_invoice(db, o.invoice_id).total_amount_cents for o in obligations] == [333, 400, 334]


def test_batch_edit_copies_descriptive_fields_to_group(db, card):
    obligations = _create(db, card, 1200, 3, date(2025, 6, 10), category="tech")

    ObligationService(db).update_obligation(
        USER_ID,
        obligations[0].id,
        ObligationChanges(description="Work laptop (1/3)", category="work", tags=["office"]),
        apply_to_whole_group=True,
    )
    db.commit()

    assert {o.description for o in obligations} == {"Work laptop"}
    assert {o.category for o in obligations} == {"work"}
    assert all(o.tags == ["office"] for o in obligations)


def test_single_edit_leaves_siblings_alone(db, card):
    obligations = _create(db, card, 1200, 3, date(2025, 6, 10))

    ObligationService(db).update_obligation(USER_ID, obligations[2].id, ObligationChanges(description="Renamed"))
    db.commit()

    assert [o.description for o in obligations] == ["Laptop", "Laptop", "Renamed"]


def test_update_missing_obligation_is_not_found(db, card):
    with pytest.raises(NotFound):
        ObligationService(db).update_obligation(USER_ID, uuid.uuid4(), ObligationChanges(category="x"))


def test_deleting_one_installment_deletes_whole_group(db, card):
    """12 installments over 12 invoices; deleting one removes all and zeroes every invoice"""
    obligations = _create(db, card, 120_000, 12, date(2025, 1, 3))
    other = _create(db, card, 700, 1, date(2025, 3, 1), description="Lunch")
    invoice_ids = [o.invoice_id for o in obligations]
    assert len(set(invoice_ids)) == 12

    deleted = ObligationService(db).delete_obligation(USER_ID, obligations[4].id)
    db.commit()

    assert len(deleted) == 12
    remaining = db.execute(select(Obligation)).scalars().all()
    assert [o.id for o in remaining] == [other[0].id]
    totals = {invoice_id: _invoice(db, invoice_id).total_amount_cents for invoice_id in invoice_ids}
    assert totals[other[0].invoice_id] == 700
    assert all(total == 0 for invoice_id, total in totals.items() if invoice_id != other[0].invoice_id)


def test_deleting_single_purchase(db, card):
    [obligation] = _create(db, card, 900, 1, date(2025, 6, 1))

    ObligationService(db).delete_obligation(USER_ID, obligation.id)
    db.commit()

    assert _invoice(db, obligation.invoice_id).total_amount_cents == 0


def test_group_delete_is_all_or_nothing(db, card, monkeypatch):
    obligations = _create(db, card, 3000, 3, date(2025, 6, 10))
    calls = []
    original = InvoiceLedger.remove_amount

    def failing_remove(self, invoice_id, amount_cents):
        calls.append(invoice_id)
        if len(calls) == 3:
            raise RuntimeError("store went away")
        return original(self, invoice_id, amount_cents)

    monkeypatch.setattr(InvoiceLedger, "remove_amount", failing_remove)

    with pytest.raises(RuntimeError):
        ObligationService(db).delete_obligation(USER_ID, obligations[0].id)
    db.rollback()

    assert db.execute(select(func.count(Obligation.id))).scalar_one() == 3
    assert [_invoice(db, o.invoice_id).total_amount_cents for o in obligations] == [1000, 1000, 1000]


def test_delete_other_users_obligation_is_not_found(db, card):
    [obligation] = _create(db, card, 900, 1, date(2025, 6, 1))

    with pytest.raises(NotFound):
        ObligationService(db).delete_obligation(OTHER_USER_ID, obligation.id)
