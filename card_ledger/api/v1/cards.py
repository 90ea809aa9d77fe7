"""/v1/cards - cards, purchases on a card and the card's invoices"""

import time
import uuid
from typing import List
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from card_ledger.api.dependencies import get_request_id, get_summary_refresher, get_user_id
from card_ledger.api.errors import request_transaction
from card_ledger.api.v1.schemas import (
    CardCreate,
    CardResponse,
    InvoiceResponse,
    ObligationGroupCreate,
    ObligationGroupResponse,
    ObligationResponse,
)
from card_ledger.infrastructure.database.session import get_db
from card_ledger.infrastructure.database.repositories import CardRepository, InvoiceRepository, ObligationRepository
from card_ledger.infrastructure.observability.logging import log_obligation_group_created
from card_ledger.infrastructure.observability.metrics import record_obligation_group
from card_ledger.services.ledger import InvoiceLedger
from card_ledger.services.obligations import ObligationService
from card_ledger.services.summaries import SummaryRefresher

router = APIRouter()


def _owned_card(db: Session, card_id: uuid.UUID, user_id: str):
    card = CardRepository(db).get_owned(card_id, user_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Card not found")
    return card


@router.post("/cards", response_model=CardResponse, status_code=201)
def create_card(
    request_body: CardCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    """Register a card and its billing cycle"""
    with request_transaction(db, get_request_id(request), "card creation"):
        card = CardRepository(db).create_card(
            user_id=user_id,
            alias=request_body.alias,
            brand=request_body.brand,
            closing_day=request_body.closing_day,
            due_day=request_body.due_day,
            total_limit_cents=request_body.total_limit_cents,
        )
    return CardResponse.model_validate(card)


@router.get("/cards/{card_id}", response_model=CardResponse)
def get_card(card_id: uuid.UUID, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    return CardResponse.model_validate(_owned_card(db, card_id, user_id))


@router.post("/cards/{card_id}/obligations", response_model=ObligationGroupResponse, status_code=201)
def create_obligations(
    card_id: uuid.UUID,
    request_body: ObligationGroupCreate,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    refresher: SummaryRefresher = Depends(get_summary_refresher),
):
    """
    Record a purchase on a card.

    Flow:
    1. Split the amount into monthly installments (one for upfront charges)
    2. Resolve each installment's billing period from the card's closing day
    3. Find or create each period's invoice and add the installment to its total
    4. Commit everything at once
    5. Schedule summary refresh for the touched invoices
    """
    start_time = time.time()
    request_id = get_request_id(request)

    with request_transaction(db, request_id, "obligation group creation"):
        obligations = ObligationService(db).create_obligation_group(
            user_id=user_id,
            card_id=card_id,
            amount_cents=request_body.amount_cents,
            installments=request_body.installments,
            purchase_date=request_body.date,
            offset=request_body.installment_offset,
            description=request_body.description,
            category=request_body.category,
            tags=request_body.tags,
            finance_type=request_body.finance_type,
            kind=request_body.kind,
            shared_with=request_body.shared_with,
            invoice_month=request_body.invoice_month,
            invoice_year=request_body.invoice_year,
        )

    invoice_ids = [o.invoice_id for o in obligations]
    background_tasks.add_task(refresher.refresh_invoices, invoice_ids, request_id)

    group_id = obligations[0].group_id
    duration_ms = (time.time() - start_time) * 1000
    record_obligation_group(obligations[0].finance_type, len(obligations))
    log_obligation_group_created(
        request_id,
        user_id,
        str(card_id),
        str(group_id),
        len(obligations),
        request_body.amount_cents,
        len(set(invoice_ids)),
        duration_ms,
    )

    return ObligationGroupResponse(
        group_id=group_id,
        total_cents=sum(o.amount_cents for o in obligations),
        obligations=[ObligationResponse.model_validate(o) for o in obligations],
    )


@router.get("/cards/{card_id}/obligations", response_model=List[ObligationResponse])
def list_card_obligations(card_id: uuid.UUID, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    """Obligations of a card, newest first"""
    _owned_card(db, card_id, user_id)
    return [ObligationResponse.model_validate(o) for o in ObligationRepository(db).list_by_card(card_id, user_id)]


@router.get("/cards/{card_id}/invoices", response_model=List[InvoiceResponse])
def list_card_invoices(card_id: uuid.UUID, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    """Invoices of a card, latest billing month first"""
    _owned_card(db, card_id, user_id)
    return [InvoiceResponse.model_validate(i) for i in InvoiceRepository(db).list_by_card(card_id, user_id)]


@router.put("/cards/{card_id}/invoices/{year}/{month}", response_model=InvoiceResponse)
def find_or_create_invoice(
    card_id: uuid.UUID,
    year: int,
    month: int,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    """Invoice of a billing month, created empty and open if it does not exist yet"""
    with request_transaction(db, get_request_id(request), "invoice lookup"):
        invoice = InvoiceLedger(db).find_or_create_for_month(user_id, card_id, year, month)
    return InvoiceResponse.model_validate(invoice)
