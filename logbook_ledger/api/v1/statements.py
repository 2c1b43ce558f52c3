"""POST /v1/statements/process - Bank statement ingestion endpoint"""

import time
import logging
from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from sqlalchemy.orm import Session

from logbook_ledger.api.v1.schemas import CandidateTransactionSchema, StatementResponse
from logbook_ledger.api.dependencies import get_ingestion_pipeline, get_request_id, load_user_cycle
from logbook_ledger.config import settings
from logbook_ledger.domain.exceptions import StatementProcessingError
from logbook_ledger.domain.ingestion import StatementIngestionPipeline
from logbook_ledger.infrastructure.database.repositories import UserRepository
from logbook_ledger.infrastructure.database.session import get_db
from logbook_ledger.infrastructure.observability.logging import log_ingestion
from logbook_ledger.infrastructure.observability.metrics import record_ingestion

router = APIRouter()

PDF_CONTENT_TYPE = "application/pdf"

# invalid_document -> upload a different file; the others -> try again later
STATUS_BY_REASON = {
    "invalid_document": 422,
    "llm_unavailable": 503,
    "unparsable_model_response": 502,
}


@router.post("/statements/process", response_model=StatementResponse)
async def process_statement(
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    bank_statement: UploadFile = File(..., description="Bank statement PDF"),
    db: Session = Depends(get_db),
    pipeline: StatementIngestionPipeline = Depends(get_ingestion_pipeline),
):
    """
    Extract candidate transactions from an uploaded bank statement.

    Flow:
    1. Reject non-PDF uploads before reading them
    2. Load the user's billing cycle configuration, then end the DB transaction
    3. Run the ingestion pipeline (extract -> LLM -> sanitize -> cycle filter)
    4. Return candidates for the user to confirm; nothing is persisted
    """
    start_time = time.time()
    request_id = get_request_id(request)

    if bank_statement.content_type != PDF_CONTENT_TYPE:
        raise HTTPException(
            status_code=415,
            detail={"message": "Only PDF files are allowed", "reason": "unsupported_media_type"},
        )

    user, start_day = load_user_cycle(UserRepository(db), user_id)
    currency_id = user.currency_id
    # Release the pooled connection before waiting on the LLM
    db.rollback()

    pdf_bytes = await bank_statement.read(settings.max_upload_bytes + 1)
    if len(pdf_bytes) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail={"message": "Uploaded file is too large", "reason": "file_too_large"},
        )

    try:
        candidates = await pipeline.ingest(pdf_bytes, currency_id, user_id, start_day)

    except StatementProcessingError as e:
        duration_ms = (time.time() - start_time) * 1000
        record_ingestion(e.reason)
        log_ingestion(request_id, user_id, e.reason, 0, duration_ms)
        logging.error(f"Statement processing failed: {e}", extra={"request_id": request_id, "reason": e.reason})
        raise HTTPException(
            status_code=STATUS_BY_REASON.get(e.reason, 500),
            detail={"message": "Could not process statement", "reason": e.reason},
        )

    duration_ms = (time.time() - start_time) * 1000
    record_ingestion("success", len(candidates))
    log_ingestion(request_id, user_id, "success", len(candidates), duration_ms)

    return StatementResponse(
        message="Bank statement processed successfully",
        transactions=[
            CandidateTransactionSchema(
                transaction_date=c.date,
                transaction_name=c.name,
                amount=c.amount,
                transaction_type=int(c.direction),
                code=c.source_text,
                currency_id=c.currency_id,
                user_id=c.user_id,
                created_at=c.created_at,
                updated_at=c.updated_at,
            )
            for c in candidates
        ],
    )
