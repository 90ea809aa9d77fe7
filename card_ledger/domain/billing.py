"""Billing period resolution - which monthly invoice a charge lands on"""

from datetime import date
from card_ledger.domain.exceptions import InvalidConfiguration
from card_ledger.domain.models import BillingPeriod
from card_ledger.utils.date_utils import clamped_date, shift_month


def validate_billing_days(closing_day: int, due_day: int) -> None:
    """Both days must be calendar days of month 1-31"""
    for name, value in (("closing_day", closing_day), ("due_day", due_day)):
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 31:
            raise InvalidConfiguration(f"{name} must be an integer between 1 and 31, got {value!r}")


def period_for_month(year: int, month: int, closing_day: int, due_day: int) -> BillingPeriod:
    """
    Closing and due dates of the invoice for a given billing month.

    The statement closes on closing_day of the billing month. When
    due_day < closing_day the cycle crosses a month boundary and payment
    falls due in the following month. Both days clamp to month end.
    """
    validate_billing_days(closing_day, due_day)
    if not 1 <= month <= 12:
        raise InvalidConfiguration(f"month must be between 1 and 12, got {month}")

    closing_date = clamped_date(year, month, closing_day)

    due_year, due_month = year, month
    if due_day < closing_day:
        due_year, due_month = shift_month(year, month, 1)
    due_date = clamped_date(due_year, due_month, due_day)

    return BillingPeriod(year=year, month=month, closing_date=closing_date, due_date=due_date)


def resolve_period(transaction_date: date, closing_day: int, due_day: int) -> BillingPeriod:
    """
    Map a charge date to its billing period.

    Charges after the closing day go to next month's invoice; charges on or
    before it stay in the current month's.

    Example:
        closing_day=7, due_day=15, 2025-06-10 -> July 2025,
        closes 2025-07-07, due 2025-07-15
    """
    validate_billing_days(closing_day, due_day)

    year, month = transaction_date.year, transaction_date.month
    if transaction_date.day > closing_day:
        year, month = shift_month(year, month, 1)

    return period_for_month(year, month, closing_day, due_day)
