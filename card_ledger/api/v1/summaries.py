"""POST /v1/summaries/refresh - rebuild every invoice summary"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from card_ledger.api.dependencies import get_request_id, get_summary_refresher
from card_ledger.api.v1.schemas import RefreshResponse
from card_ledger.domain.exceptions import RefreshFailure
from card_ledger.infrastructure.observability.metrics import summary_refresh_failure_counter
from card_ledger.services.summaries import SummaryRefresher

router = APIRouter()


@router.post("/summaries/refresh", response_model=RefreshResponse)
def refresh_summaries(request: Request, refresher: SummaryRefresher = Depends(get_summary_refresher)):
    """
    Recompute all summaries now.

    Unlike the refresh scheduled after a mutation, an explicit refresh
    reports failure, since refreshing is all this request does.
    """
    try:
        refreshed = refresher.refresh_summaries()
    except RefreshFailure as e:
        summary_refresh_failure_counter.inc()
        logging.error(f"Full summary refresh failed: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Summary refresh failed")

    return RefreshResponse(invoices_refreshed=refreshed)
