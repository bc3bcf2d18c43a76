"""
Scheduler Health API Routes

Visibility into scheduled summary executions and the AI circuit breaker.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fetchnews.api.middleware import verify_admin_token
from fetchnews.api.schemas import (
    CircuitBreakerStatus,
    ExecutionListResponse,
    ExecutionResponse,
    ExecutionStatsResponse,
    ExecutionStatusEnum,
    SchedulerHealthResponse,
)
from fetchnews.config.logging import get_logger
from fetchnews.db import get_db_session
from fetchnews.scheduler import background_scheduler
from fetchnews.services.scheduling import execution_tracker
from fetchnews.services.summaries import summary_generator

logger = get_logger(__name__)

router = APIRouter(
    prefix="/scheduler",
    tags=["Scheduler"],
    dependencies=[Depends(verify_admin_token)],
)

BREAKER_DESCRIPTIONS = {
    "CLOSED": "Normal operation - all requests allowed",
    "HALF_OPEN": "Testing recovery - limited requests allowed",
    "OPEN": "Too many failures - requests blocked",
}


def compute_health(
    execution_stats: Dict[str, Any],
    breaker_state: str,
) -> Tuple[int, str, List[str]]:
    """
    Score scheduler health from 0 to 100.

    Returns:
        (score, status, issues)
    """
    score = 100
    issues: List[str] = []

    success_rate = execution_stats.get("success_rate")
    if success_rate is not None:
        if success_rate < 80:
            score -= 30
            issues.append(f"Low success rate: {success_rate}%")
        elif success_rate < 90:
            score -= 15
            issues.append(f"Moderate success rate: {success_rate}%")

    if breaker_state == "OPEN":
        score -= 40
        issues.append("Circuit breaker is OPEN - summarization disabled")
    elif breaker_state == "HALF_OPEN":
        score -= 20
        issues.append("Circuit breaker is HALF_OPEN - recovering from failures")

    running = execution_stats.get("running", 0)
    if running > 5:
        score -= 20
        issues.append(f"{running} jobs stuck in running state")

    if score < 50:
        status = "critical"
    elif score < 70:
        status = "degraded"
    elif score < 90:
        status = "warning"
    else:
        status = "healthy"

    return score, status, issues


@router.get("/health", response_model=SchedulerHealthResponse)
async def get_scheduler_health(
    hours: int = Query(24, ge=1, le=24 * 30),
    db: AsyncSession = Depends(get_db_session),
) -> SchedulerHealthResponse:
    """
    Overall scheduler health.

    Combines execution success rate, stuck jobs and circuit breaker state
    into a single score.
    """
    stats = await execution_tracker.stats(db, hours)
    breaker = summary_generator.breaker.get_status()

    score, status, issues = compute_health(stats, breaker["state"])

    if issues:
        logger.info("Scheduler health degraded", score=score, issues=issues)

    return SchedulerHealthResponse(
        status=status,
        health_score=score,
        issues=issues,
        timestamp=datetime.now(timezone.utc),
        metrics={
            "executions": stats,
            "circuit_breaker": breaker,
            "scheduler": background_scheduler.get_status(),
        },
    )


@router.get("/executions", response_model=ExecutionListResponse)
async def list_executions(
    limit: int = Query(20, ge=1, le=200),
    status: Optional[ExecutionStatusEnum] = None,
    db: AsyncSession = Depends(get_db_session),
) -> ExecutionListResponse:
    """Recent executions, newest first."""
    executions = await execution_tracker.recent(db, limit=limit, status=status)
    return ExecutionListResponse(
        executions=[ExecutionResponse.model_validate(e) for e in executions],
    )


@router.get("/stats", response_model=ExecutionStatsResponse)
async def get_execution_stats(
    hours: int = Query(24, ge=1, le=24 * 30),
    db: AsyncSession = Depends(get_db_session),
) -> ExecutionStatsResponse:
    """Execution statistics, overall and for the busiest users."""
    overall = await execution_tracker.stats(db, hours)
    by_user = await execution_tracker.stats_by_user(db, hours)

    return ExecutionStatsResponse(
        overall=overall,
        by_user=by_user,
        period=f"Last {hours} hours",
    )


@router.get("/circuit-breaker", response_model=CircuitBreakerStatus)
async def get_circuit_breaker() -> CircuitBreakerStatus:
    """Circuit breaker status."""
    breaker = summary_generator.breaker.get_status()
    return CircuitBreakerStatus(
        **breaker,
        description=BREAKER_DESCRIPTIONS.get(breaker["state"]),
    )


@router.post("/circuit-breaker/reset", response_model=CircuitBreakerStatus)
async def reset_circuit_breaker() -> CircuitBreakerStatus:
    """Force the circuit breaker closed (admin override)."""
    summary_generator.breaker.reset()
    logger.info("Circuit breaker reset by admin")

    breaker = summary_generator.breaker.get_status()
    return CircuitBreakerStatus(
        **breaker,
        description=BREAKER_DESCRIPTIONS.get(breaker["state"]),
    )
