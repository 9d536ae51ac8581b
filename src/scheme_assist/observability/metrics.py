"""Metric recording helpers for traces."""

from __future__ import annotations

from scheme_assist.observability.logger import get_logger

logger = get_logger("metrics")


def log_query_metrics(
    trace_id: str,
    status: str,
    state: str,
    language: str,
    latency_ms: float,
    stage_ms: dict[str, float],
    failed_stages: list[str],
) -> None:
    logger.info(
        "query_metrics",
        trace_id=trace_id,
        status=status,
        state=state,
        language=language,
        latency_ms=round(latency_ms, 2),
        stage_ms=stage_ms,
        failed_stages=failed_stages,
    )


def log_retrieval_metrics(trace_id: str, documents: int, top_score: float | None, cached: bool) -> None:
    logger.info(
        "retrieval_metrics",
        trace_id=trace_id,
        documents=documents,
        top_score=None if top_score is None else round(top_score, 4),
        cached=cached,
    )


def log_eligibility_metrics(
    trace_id: str,
    scheme_id: str,
    eligible: bool,
    passed: int,
    failed: int,
    reason: str | None,
) -> None:
    logger.info(
        "eligibility_metrics",
        trace_id=trace_id,
        scheme_id=scheme_id,
        eligible=eligible,
        passed=passed,
        failed=failed,
        reason=reason,
    )
