"""/v1/invoices - invoice lookup, payment status and summaries"""

import uuid
from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from card_ledger.api.dependencies import get_request_id, get_summary_refresher, get_user_id
from card_ledger.api.errors import request_transaction
from card_ledger.api.v1.schemas import (
    InvoiceAction,
    InvoiceDetailResponse,
    InvoiceResponse,
    InvoiceSummaryResponse,
    ObligationResponse,
    SummaryItem,
)
from card_ledger.infrastructure.database.session import get_db
from card_ledger.infrastructure.database.repositories import (
    InvoiceRepository,
    ObligationRepository,
    SummaryRepository,
)
from card_ledger.infrastructure.observability.logging import log_invoice_status_change
from card_ledger.services.ledger import InvoiceLedger
from card_ledger.services.summaries import SummaryRefresher

router = APIRouter()


def _owned_invoice(db: Session, invoice_id: uuid.UUID, user_id: str):
    invoice = InvoiceRepository(db).get(invoice_id, user_id)
    if invoice is None:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@router.get("/invoices", response_model=List[InvoiceResponse])
def list_invoices_for_month(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    card_ids: Optional[str] = Query(None, description="Comma-separated card IDs"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    """Invoices of every card for one billing month"""
    selected = None
    if card_ids:
        try:
            selected = [uuid.UUID(c.strip()) for c in card_ids.split(",") if c.strip()]
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid card ID format")

    invoices = InvoiceRepository(db).list_for_month(user_id, year, month, selected)
    return [InvoiceResponse.model_validate(i) for i in invoices]


@router.get("/invoices/{invoice_id}", response_model=InvoiceDetailResponse)
def get_invoice(invoice_id: uuid.UUID, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    """Invoice with the obligations bound to it"""
    invoice = _owned_invoice(db, invoice_id, user_id)
    obligations = ObligationRepository(db).list_by_invoice(invoice.id)

    return InvoiceDetailResponse(
        **InvoiceResponse.model_validate(invoice).model_dump(),
        obligations=[ObligationResponse.model_validate(o) for o in obligations],
    )


@router.patch("/invoices/{invoice_id}", response_model=InvoiceResponse)
def change_invoice_status(
    invoice_id: uuid.UUID,
    request_body: InvoiceAction,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    refresher: SummaryRefresher = Depends(get_summary_refresher),
):
    """
    Mark an invoice paid or reopen it.

    mark_paid: open/overdue -> paid, paid amount becomes the current total
    reopen: paid -> open
    """
    request_id = get_request_id(request)

    with request_transaction(db, request_id, f"invoice {request_body.action}"):
        ledger = InvoiceLedger(db)
        if request_body.action == "mark_paid":
            invoice = ledger.mark_paid(invoice_id, user_id)
        else:
            invoice = ledger.reopen(invoice_id, user_id)

    background_tasks.add_task(refresher.refresh_invoices, [invoice.id], request_id)
    log_invoice_status_change(request_id, user_id, str(invoice.id), invoice.status)
    return InvoiceResponse.model_validate(invoice)


@router.get("/invoices/{invoice_id}/summary", response_model=InvoiceSummaryResponse)
def get_invoice_summary(invoice_id: uuid.UUID, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    """
    Precomputed totals for all, installment-only and subscription-only obligations.

    May lag the invoice itself until the scheduled refresh has run.
    """
    invoice = _owned_invoice(db, invoice_id, user_id)
    rows = SummaryRepository(db).get_for_invoice(invoice.id)
    return InvoiceSummaryResponse(
        invoice_id=invoice.id,
        summaries=[SummaryItem.model_validate(r) for r in rows],
    )
