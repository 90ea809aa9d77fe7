"""Integration tests for the legacy group id migration"""

import uuid
from datetime import date
from sqlalchemy import select
from card_ledger.domain.billing import resolve_period
from card_ledger.infrastructure.database import legacy
from card_ledger.infrastructure.database.legacy import assign_legacy_group_ids
from card_ledger.infrastructure.database.models import Obligation
from card_ledger.services.ledger import InvoiceLedger
from conftest import OTHER_USER_ID, USER_ID


def _legacy_row(db, card, description, when, amount=1000, user_id=USER_ID):
    """Row as written before group ids existed: position only in the description"""
    invoice = InvoiceLedger(db).find_or_create(card, resolve_period(when, card.closing_day, card.due_day))
    obligation = Obligation(
        user_id=user_id,
        card_id=card.id,
        invoice_id=invoice.id,
        group_id=uuid.uuid4(),
        amount_cents=amount,
        date=when,
        description=description,
        tags=[],
    )
    db.add(obligation)
    db.flush()
    return obligation


def test_suffixed_rows_are_grouped_by_run(db, card):
    first = [
        _legacy_row(db, card, "Laptop (1/3)", date(2025, 1, 3)),
        _legacy_row(db, card, "Laptop (2/3)", date(2025, 2, 3)),
        _legacy_row(db, card, "Laptop (3/3)", date(2025, 3, 3)),
    ]
    # Same description and count, bought again later
    second = [
        _legacy_row(db, card, "Laptop (1/3)", date(2025, 6, 3)),
        _legacy_row(db, card, "Laptop (2/3)", date(2025, 7, 3)),
    ]
    plain = _legacy_row(db, card, "Coffee", date(2025, 1, 5), amount=450)
    db.commit()
    plain_group = plain.group_id

    groups = assign_legacy_group_ids(db)
    db.commit()

    assert groups == 2
    assert len({o.group_id for o in first}) == 1
    assert len({o.group_id for o in second}) == 1
    assert first[0].group_id != second[0].group_id
    assert [o.sequence_index for o in first] == [1, 2, 3]
    assert all(o.sequence_count == 3 for o in first + second)
    assert {o.description for o in first + second} == {"Laptop"}
    assert all(o.finance_type == "installment" for o in first + second)
    assert [o.label for o in second] == ["Laptop (1/3)", "Laptop (2/3)"]
    assert plain.group_id == plain_group
    assert plain.description == "Coffee"


def test_migration_can_be_scoped_to_one_user(db, card):
    _legacy_row(db, card, "Phone (1/2)", date(2025, 1, 3))
    _legacy_row(db, card, "Phone (2/2)", date(2025, 2, 3))
    db.commit()

    assert assign_legacy_group_ids(db, user_id=OTHER_USER_ID) == 0
    assert assign_legacy_group_ids(db, user_id=USER_ID) == 1
    db.commit()

    rows = db.execute(select(Obligation).order_by(Obligation.date)).scalars().all()
    assert [o.sequence_index for o in rows] == [1, 2]
    assert rows[0].group_id == rows[1].group_id


def test_parenthesised_text_that_is_not_a_position_is_ignored(db, card):
    row = _legacy_row(db, card, "Dinner (3/2) party", date(2025, 1, 3))
    db.commit()

    assert assign_legacy_group_ids(db) == 0
    assert row.description == "Dinner (3/2) party"


def test_command_migrates_and_commits(db, card, session_factory, capsys, monkeypatch):
    monkeypatch.setattr(legacy, "setup_logging", lambda level: None)
    _legacy_row(db, card, "Phone (1/2)", date(2025, 1, 3))
    _legacy_row(db, card, "Phone (2/2)", date(2025, 2, 3))
    db.commit()

    assert legacy.main(["--user-id", USER_ID], session_factory=session_factory) == 0
    assert "Assigned 1 installment groups" in capsys.readouterr().out

    db.expire_all()
    rows = db.execute(select(Obligation).order_by(Obligation.date)).scalars().all()
    assert [o.sequence_count for o in rows] == [2, 2]
    assert rows[0].group_id == rows[1].group_id
