"""Translate domain exceptions into HTTP errors"""

import logging
from contextlib import contextmanager
from typing import Iterator
from fastapi import HTTPException
from sqlalchemy.orm import Session
from card_ledger.domain.exceptions import (
    ConcurrentUpdateConflict,
    DomainException,
    InvalidAmount,
    InvalidConfiguration,
    InvalidInstallmentPlan,
    InvalidStatusTransition,
    NotFound,
)

STATUS_CODES = {
    InvalidConfiguration: 422,
    InvalidAmount: 422,
    InvalidInstallmentPlan: 422,
    NotFound: 404,
    InvalidStatusTransition: 409,
    ConcurrentUpdateConflict: 409,
}


def to_http_exception(error: DomainException) -> HTTPException:
    for exc_type, status_code in STATUS_CODES.items():
        if isinstance(error, exc_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail="Internal server error")


@contextmanager
def request_transaction(db: Session, request_id: str, action: str) -> Iterator[None]:
    """
    Commit the request's work, or roll all of it back.

    Domain errors map to 4xx responses; anything else is logged and
    reported as a 500.
    """
    try:
        yield
        db.commit()

    except DomainException as e:
        db.rollback()
        logging.warning(f"{action} rejected: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

    except HTTPException:
        db.rollback()
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error during {action}: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
