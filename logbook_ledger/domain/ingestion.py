"""Bank statement ingestion - PDF text -> LLM -> repaired JSON -> cycle-filtered candidates"""

import asyncio
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from logbook_ledger.domain.cycle import resolve_billing_cycle
from logbook_ledger.domain.exceptions import ExtractionFailed, UnparsableModelResponse
from logbook_ledger.domain.models import BillingCycle, CandidateTransaction, Direction
from logbook_ledger.domain.prompts import build_statement_prompt
from logbook_ledger.domain.sanitizer import parse_model_output
from logbook_ledger.infrastructure.clients.llm import LLMClient
from logbook_ledger.infrastructure.observability.metrics import filtered_out_counter
from logbook_ledger.infrastructure.pdf.extractor import extract_text
from logbook_ledger.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class ModelTransactionRecord(BaseModel):
    """One element of the JSON array the model is asked to produce"""

    model_config = ConfigDict(extra="ignore")

    transaction_date: date
    transaction_name: str
    amount: Decimal
    transaction_type: Direction
    code: str = ""
    currency_id: Optional[int] = None
    user_id: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def strip_thousands_separators(cls, value: Any) -> Any:
        # "1,234.50" is how most statements print amounts
        if isinstance(value, str):
            return value.replace(",", "").strip()
        return value

    @field_validator("transaction_name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("transaction_name is blank")
        return value


def to_candidates(
    records: List[Any],
    currency_id: int,
    user_id: str,
    now: datetime,
) -> List[CandidateTransaction]:
    """
    Validate parsed model records and convert them to candidates.

    currency_id and user_id always come from the request, and created_at and
    updated_at from the clock; whatever the model wrote for them is ignored.

    Raises:
        UnparsableModelResponse: When any record is missing a field or has a malformed value
    """
    candidates = []
    for index, raw in enumerate(records):
        try:
            record = ModelTransactionRecord.model_validate(raw)
        except ValidationError as e:
            raise UnparsableModelResponse(
                f"Model record {index} does not match the transaction shape: {e.error_count()} error(s)",
                sanitized_text=str(raw),
            ) from e

        candidates.append(
            CandidateTransaction(
                date=record.transaction_date,
                name=record.transaction_name,
                amount=record.amount,
                direction=record.transaction_type,
                currency_id=currency_id,
                user_id=user_id,
                source_text=record.code,
                created_at=now,
                updated_at=now,
            )
        )
    return candidates


def filter_to_cycle(candidates: List[CandidateTransaction], cycle: BillingCycle) -> List[CandidateTransaction]:
    """Keep only candidates dated inside the billing cycle (inclusive on both ends)"""
    kept = [c for c in candidates if cycle.contains(c.date)]
    dropped = len(candidates) - len(kept)
    if dropped:
        filtered_out_counter.inc(dropped)
        logger.info(
            "Dropped model records outside billing cycle",
            extra={
                "dropped": dropped,
                "period_start": cycle.period_start.isoformat(),
                "period_end": cycle.period_end.isoformat(),
            },
        )
    return kept


class StatementIngestionPipeline:
    """
    Turn an uploaded bank statement PDF into candidate transactions.

    Flow:
    1. Resolve the billing cycle (fails before any I/O on a bad start day)
    2. Extract line-preserving text from the PDF
    3. Build the structuring prompt and call the LLM
    4. Sanitize + parse the completion, validate each record
    5. Re-apply the cycle date boundary in code; the prompt asks the model to
       filter too, but its output is not trusted for this

    Any stage failure propagates as a typed error; nothing partial is returned
    and nothing is persisted.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        extractor: Callable[[bytes], str] = extract_text,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.llm_client = llm_client
        self.extractor = extractor
        self.clock = clock

    async def ingest(
        self,
        pdf_bytes: bytes,
        currency_id: int,
        user_id: str,
        cycle_start_day: int,
    ) -> List[CandidateTransaction]:
        now = self.clock()
        cycle = resolve_billing_cycle(cycle_start_day, now.date())

        text = await asyncio.to_thread(self.extractor, pdf_bytes)
        if not text.strip():
            raise ExtractionFailed("PDF has no extractable text layer")

        prompt = build_statement_prompt(text, currency_id, user_id, cycle.start_day)
        completion = await self.llm_client.complete(prompt)

        try:
            records = parse_model_output(completion, now=now)
        except UnparsableModelResponse as e:
            logger.warning(
                "Unparsable model response",
                extra={"user_id": user_id, "sanitized_text": e.sanitized_text[:2000]},
            )
            raise

        candidates = to_candidates(records, currency_id, user_id, now)
        return filter_to_cycle(candidates, cycle)
