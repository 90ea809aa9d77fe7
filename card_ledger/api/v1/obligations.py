"""/v1/obligations and /v1/groups - editing and deleting recorded purchases"""

import uuid
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from card_ledger.api.dependencies import get_request_id, get_summary_refresher, get_user_id
from card_ledger.api.errors import request_transaction
from card_ledger.api.v1.schemas import (
    DeleteResponse,
    ObligationGroupResponse,
    ObligationResponse,
    ObligationUpdate,
)
from card_ledger.domain.models import ObligationChanges
from card_ledger.infrastructure.database.session import get_db
from card_ledger.infrastructure.observability.logging import log_obligations_deleted
from card_ledger.services.obligations import ObligationService
from card_ledger.services.summaries import SummaryRefresher

router = APIRouter()


@router.patch("/obligations/{obligation_id}", response_model=ObligationResponse)
def update_obligation(
    obligation_id: uuid.UUID,
    request_body: ObligationUpdate,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    refresher: SummaryRefresher = Depends(get_summary_refresher),
):
    """
    Edit an obligation.

    With apply_to_whole_group, description, category, tags and shared_with
    are copied to every installment of the purchase. Amount and date only
    ever change on this obligation, and it stays on its original invoice.
    """
    request_id = get_request_id(request)
    changes = ObligationChanges(
        description=request_body.description,
        category=request_body.category,
        tags=request_body.tags,
        shared_with=request_body.shared_with,
        amount_cents=request_body.amount_cents,
        date=request_body.date,
    )

    with request_transaction(db, request_id, "obligation update"):
        obligation = ObligationService(db).update_obligation(
            user_id, obligation_id, changes, apply_to_whole_group=request_body.apply_to_whole_group
        )

    background_tasks.add_task(refresher.refresh_invoices, [obligation.invoice_id], request_id)
    return ObligationResponse.model_validate(obligation)


@router.delete("/obligations/{obligation_id}", response_model=DeleteResponse)
def delete_obligation(
    obligation_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    refresher: SummaryRefresher = Depends(get_summary_refresher),
):
    """Delete an obligation; an installment deletes its whole purchase"""
    request_id = get_request_id(request)

    with request_transaction(db, request_id, "obligation delete"):
        deleted = ObligationService(db).delete_obligation(user_id, obligation_id)
        group_id = deleted[0].group_id
        invoice_ids = list(dict.fromkeys(o.invoice_id for o in deleted))
        reversed_cents = sum(o.amount_cents for o in deleted)

    background_tasks.add_task(refresher.refresh_invoices, invoice_ids, request_id)
    log_obligations_deleted(request_id, user_id, str(group_id), len(deleted), reversed_cents)

    return DeleteResponse(group_id=group_id, deleted=len(deleted), invoice_ids=invoice_ids)


@router.get("/groups/{group_id}", response_model=ObligationGroupResponse)
def get_group(
    group_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    """All installments of one purchase"""
    with request_transaction(db, get_request_id(request), "group lookup"):
        members = ObligationService(db).list_group(user_id, group_id)

    return ObligationGroupResponse(
        group_id=group_id,
        total_cents=sum(o.amount_cents for o in members),
        obligations=[ObligationResponse.model_validate(o) for o in members],
    )
