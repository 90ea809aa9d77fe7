"""Money helpers - amounts are integer cents end to end"""

from card_ledger.config import settings
from card_ledger.domain.exceptions import InvalidAmount

CENTS_PER_UNIT = 100


def validate_amount_cents(amount_cents: object, max_cents: int | None = None, allow_zero: bool = False) -> int:
    """
    Reject anything that is not a positive integer number of cents.

    allow_zero admits 0, which small totals split over many installments
    produce for every installment but the last.

    bool is refused even though it subclasses int, and so are floats,
    even integral ones, to keep floating point out of financial paths.
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise InvalidAmount(f"Amount must be an integer number of cents, got {amount_cents!r}")
    if amount_cents < 0 or (amount_cents == 0 and not allow_zero):
        raise InvalidAmount(f"Amount must be positive, got {amount_cents}")
    limit = settings.max_amount_cents if max_cents is None else max_cents
    if amount_cents > limit:
        raise InvalidAmount(f"Amount {amount_cents} exceeds maximum of {limit} cents")
    return amount_cents


def format_cents(amount_cents: int) -> str:
    """1050 -> '10.50'"""
    sign = "-" if amount_cents < 0 else ""
    units, cents = divmod(abs(amount_cents), CENTS_PER_UNIT)
    return f"{sign}{units}.{cents:02d}"
