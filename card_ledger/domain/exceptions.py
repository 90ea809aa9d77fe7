"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidConfiguration(DomainException):
    """Closing or due day outside 1-31"""

    pass


class InvalidAmount(DomainException):
    """Amount is not a positive integer number of cents within limits"""

    pass


class InvalidInstallmentPlan(DomainException):
    """Installment count or retroactive offset out of range"""

    pass


class NotFound(DomainException):
    """Card, invoice or obligation missing or not owned by the caller"""

    pass


class InvalidStatusTransition(DomainException):
    """Invoice status change not allowed from its current status"""

    pass


class ConcurrentUpdateConflict(DomainException):
    """Invoice row changed underneath us and retries ran out"""

    pass


class RefreshFailure(DomainException):
    """Invoice summary recomputation failed (non-fatal)"""

    pass
