"""Prometheus metrics for statement ingestion, LLM calls and income bookkeeping"""

from prometheus_client import Counter, Histogram

# Statement ingestion metrics
statement_ingestion_counter = Counter(
    "logbook_statement_ingestions_total",
    "Bank statement uploads processed",
    ["outcome"],  # success | invalid_document | llm_unavailable | unparsable_model_response
)

candidate_count_histogram = Histogram(
    "logbook_statement_candidates",
    "Candidate transactions returned per statement",
    buckets=[0, 1, 5, 10, 25, 50, 100, 250],
)

filtered_out_counter = Counter(
    "logbook_statement_candidates_filtered_total",
    "Model records dropped because they fall outside the active billing cycle",
)

# LLM metrics
llm_latency_histogram = Histogram(
    "logbook_llm_latency_seconds",
    "LLM completion response time",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 40.0, 60.0],
)

llm_failure_counter = Counter(
    "logbook_llm_failures_total",
    "Failed LLM completion calls",
    ["kind"],  # timeout | http_status | transport | invalid_envelope | empty_completion
)

# Income bookkeeping
income_upsert_counter = Counter(
    "logbook_income_upserts_total",
    "Income ledger upserts for the active period",
    ["action"],  # inserted | updated
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_ingestion(outcome: str, candidate_count: int = 0) -> None:
    """Record the outcome of one statement upload"""
    statement_ingestion_counter.labels(outcome=outcome).inc()
    if outcome == "success":
        candidate_count_histogram.observe(candidate_count)
