"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from logbook_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from logbook_ledger.api.v1 import statements, transactions, users
from logbook_ledger.infrastructure.observability.logging import setup_logging
from logbook_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Logbook Ledger",
        description="Billing-cycle ledger and bank statement ingestion service",
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
    app.include_router(statements.router, prefix="/v1", tags=["statements"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(users.router, prefix="/v1", tags=["users"])

    return app


app = create_app()
