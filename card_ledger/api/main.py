"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from card_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from card_ledger.api.v1 import cards, invoices, obligations, summaries
from card_ledger.infrastructure.observability.logging import setup_logging
from card_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Card Ledger",
        description="Billing periods, installment purchases and invoice totals for credit cards",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(cards.router, prefix="/v1", tags=["cards"])
    app.include_router(obligations.router, prefix="/v1", tags=["obligations"])
    app.include_router(invoices.router, prefix="/v1", tags=["invoices"])
    app.include_router(summaries.router, prefix="/v1", tags=["summaries"])

    return app


app = create_app()
