"""Installment splitting for card purchases"""

import re
from datetime import date
from typing import List
from card_ledger.domain.exceptions import InvalidInstallmentPlan
from card_ledger.domain.models import ObligationSeed
from card_ledger.domain.money import validate_amount_cents
from card_ledger.utils.date_utils import add_months

MAX_INSTALLMENTS = 120

# " (i/n)" display suffix that older rows carry in their description
INSTALLMENT_SUFFIX = re.compile(r"\s*\((\d+)/(\d+)\)\s*$")


def split_installments(
    amount_cents: int,
    num_installments: int = 1,
    purchase_date: date | None = None,
    offset: int = 0,
) -> List[ObligationSeed]:
    """
    Split a purchase into monthly installments.

    Requirements:
    - Every installment but the last gets floor(amount / n)
    - Last installment absorbs rounding remainder (< n cents drift)
    - Totals smaller than n leave the leading installments at 0 cents
    - Installment i is dated purchase_date + (i - 1 - offset) months,
      keeping day-of-month and clamping at month end
    - A single installment goes through the same path

    Args:
        amount_cents: Total purchase amount in cents
        num_installments: Number of monthly installments (default 1)
        purchase_date: Date of the first visible installment (default: today)
        offset: Installments that already fell due before the purchase was
            recorded. Those are still returned, dated in the past.

    Returns:
        List of ObligationSeed in sequence order

    Example:
        1000 cents / 3 -> [333, 333, 334]
        2 cents / 3 -> [0, 0, 2]
        offset=2 on 2025-06-15 with 4 installments ->
        2025-04-15, 2025-05-15, 2025-06-15, 2025-07-15
    """
    validate_amount_cents(amount_cents)

    if isinstance(num_installments, bool) or not isinstance(num_installments, int):
        raise InvalidInstallmentPlan(f"Installment count must be an integer, got {num_installments!r}")
    if not 1 <= num_installments <= MAX_INSTALLMENTS:
        raise InvalidInstallmentPlan(
            f"Installment count must be between 1 and {MAX_INSTALLMENTS}, got {num_installments}"
        )
    if isinstance(offset, bool) or not isinstance(offset, int) or not 0 <= offset < num_installments:
        raise InvalidInstallmentPlan(
            f"Installment offset must be between 0 and {num_installments - 1}, got {offset!r}"
        )

    if purchase_date is None:
        purchase_date = date.today()

    base_amount = amount_cents // num_installments
    last_amount = amount_cents - base_amount * (num_installments - 1)

    seeds = []
    for i in range(1, num_installments + 1):
        seeds.append(
            ObligationSeed(
                sequence_index=i,
                sequence_count=num_installments,
                amount_cents=last_amount if i == num_installments else base_amount,
                date=add_months(purchase_date, i - 1 - offset),
            )
        )

    return seeds


def strip_installment_suffix(description: str) -> str:
    """'Laptop (2/12)' -> 'Laptop'; other descriptions are only trimmed"""
    return INSTALLMENT_SUFFIX.sub("", description).strip()
