"""Unit tests for installment splitting"""

import pytest
from datetime import date
from card_ledger.domain.exceptions import InvalidAmount, InvalidInstallmentPlan
from card_ledger.domain.installments import split_installments, strip_installment_suffix


def test_split_installments_equal_split():
    """Test plan with evenly divisible amount"""
    amount = 40000  # $400
    installments = split_installments(amount, 4, date(2025, 1, 10))

    assert len(installments) == 4
    assert all(inst.amount_cents == 10000 for inst in installments)  # Each $100
    assert sum(inst.amount_cents for inst in installments) == amount


def test_split_installments_rounding():
    """1000 cents in 3 -> last installment absorbs the remainder"""
    installments = split_installments(1000, 3, date(2025, 6, 10))

    assert [inst.amount_cents for inst in installments] == [333, 333, 334]
    assert [inst.date for inst in installments] == [date(2025, 6, 10), date(2025, 7, 10), date(2025, 8, 10)]
    assert [inst.sequence_index for inst in installments] == [1, 2, 3]
    assert all(inst.sequence_count == 3 for inst in installments)
    assert installments[-1].is_last


@pytest.mark.parametrize("count", [1, 2, 3, 7, 12, 24])
@pytest.mark.parametrize("total", [1, 5, 24, 1001, 99999, 123457])
def test_split_installments_sum_and_spread(total, count):
    installments = split_installments(total, count, date(2025, 1, 1))
    amounts = [inst.amount_cents for inst in installments]

    assert sum(amounts) == total
    assert len(set(amounts[:-1])) <= 1
    assert 0 <= amounts[-1] - amounts[0] <= count - 1
    assert min(amounts) >= 0


def test_split_installments_single_goes_through_same_path():
    installments = split_installments(5000, 1, date(2025, 3, 3))

    assert len(installments) == 1
    assert installments[0].amount_cents == 5000
    assert installments[0].date == date(2025, 3, 3)
    assert installments[0].sequence_index == installments[0].sequence_count == 1


def test_split_installments_month_end_dates():
    """Dates come from the purchase day, not from the previous clamped installment"""
    installments = split_installments(3000, 3, date(2025, 1, 31))

    assert [inst.date for inst in installments] == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)]


def test_split_installments_retroactive_offset():
    """Third of four installments entered on June 15 -> two installments dated in the past"""
    installments = split_installments(4000, 4, date(2025, 6, 15), offset=2)

    assert [inst.date for inst in installments] == [
        date(2025, 4, 15),
        date(2025, 5, 15),
        date(2025, 6, 15),
        date(2025, 7, 15),
    ]
    assert [inst.sequence_index for inst in installments] == [1, 2, 3, 4]


@pytest.mark.parametrize("amount", [0, -100, 10.0, True, "100", None])
def test_split_installments_invalid_amount(amount):
    with pytest.raises(InvalidAmount):
        split_installments(amount, 2, date(2025, 1, 1))


def test_split_installments_amount_over_limit():
    with pytest.raises(InvalidAmount):
        split_installments(10**15, 2, date(2025, 1, 1))


@pytest.mark.parametrize("count", [0, -1, 121, 2.0])
def test_split_installments_invalid_count(count):
    with pytest.raises(InvalidInstallmentPlan):
        split_installments(1000, count, date(2025, 1, 1))


@pytest.mark.parametrize("offset", [-1, 3, 4])
def test_split_installments_invalid_offset(offset):
    with pytest.raises(InvalidInstallmentPlan):
        split_installments(1000, 3, date(2025, 1, 1), offset=offset)


def test_split_installments_total_smaller_than_count():
    """2 cents over 3 installments -> leading installments are 0, the last carries the total"""
    installments = split_installments(2, 3, date(2025, 1, 1))

    assert [inst.amount_cents for inst in installments] == [0, 0, 2]
    assert [inst.sequence_index for inst in installments] == [1, 2, 3]


@pytest.mark.parametrize("count", [2, 5, 120])
def test_split_installments_one_cent(count):
    installments = split_installments(1, count, date(2025, 1, 1))
    amounts = [inst.amount_cents for inst in installments]

    assert sum(amounts) == 1
    assert amounts[-1] == 1
    assert all(amount >= 0 for amount in amounts)


def test_split_installments_defaults_to_today():
    installments = split_installments(100)
    assert installments[0].date == date.today()


def test_strip_installment_suffix():
    assert strip_installment_suffix("Laptop (2/12)") == "Laptop"
    assert strip_installment_suffix("  Groceries ") == "Groceries"
    assert strip_installment_suffix("Tickets (VIP)") == "Tickets (VIP)"
