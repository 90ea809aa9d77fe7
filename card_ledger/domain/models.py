"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
import datetime as dt

# Invoice status values
STATUS_OPEN = "open"
STATUS_PAID = "paid"
STATUS_OVERDUE = "overdue"
INVOICE_STATUSES = (STATUS_OPEN, STATUS_PAID, STATUS_OVERDUE)

# Obligation finance types
FINANCE_UPFRONT = "upfront"
FINANCE_INSTALLMENT = "installment"
FINANCE_SUBSCRIPTION = "subscription"
FINANCE_TYPES = (FINANCE_UPFRONT, FINANCE_INSTALLMENT, FINANCE_SUBSCRIPTION)

# Summary scopes, one precomputed row per (invoice, scope)
SCOPE_ALL = "all"
SUMMARY_SCOPES = (SCOPE_ALL, FINANCE_INSTALLMENT, FINANCE_SUBSCRIPTION)


@dataclass(frozen=True)
class BillingPeriod:
    """Monthly invoice slot of a card"""

    year: int
    month: int  # 1-12
    closing_date: dt.date
    due_date: dt.date


@dataclass(frozen=True)
class ObligationSeed:
    """Single dated installment produced by the splitter, before persistence"""

    sequence_index: int  # 1-based
    sequence_count: int
    amount_cents: int
    date: dt.date

    @property
    def is_last(self) -> bool:
        return self.sequence_index == self.sequence_count


@dataclass
class ObligationChanges:
    """Editable fields of an obligation; None means untouched"""

    description: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    shared_with: str | None = None
    amount_cents: int | None = None
    date: dt.date | None = None

    # Fields copied to every member of an installment group on batch edit
    GROUP_FIELDS = ("description", "category", "tags", "shared_with")

    def group_values(self) -> dict:
        return {name: getattr(self, name) for name in self.GROUP_FIELDS if getattr(self, name) is not None}
