"""
Admin API Routes

Endpoints for running scheduled summaries and background tasks manually or
via external cron, and for the runtime settings row.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from fetchnews.api.middleware import get_runtime_settings, verify_admin_token
from fetchnews.api.schemas import (
    RuntimeSettingsResponse,
    ScheduledSummaryRunRequest,
    ScheduledSummaryRunResponse,
)
from fetchnews.config.logging import get_logger
from fetchnews.db import get_db_session
from fetchnews.scheduler import background_scheduler
from fetchnews.services.runtime_settings import RuntimeSettings
from fetchnews.services.scheduling import ScheduledSummaryJob, scheduled_summary_runner

logger = get_logger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_token)],
)


@router.post("/scheduled-summaries/run", response_model=ScheduledSummaryRunResponse)
async def run_scheduled_summary(
    request: ScheduledSummaryRunRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ScheduledSummaryRunResponse:
    """
    Run one scheduled summary now.

    Idempotent per (user, summary, date): repeating the call after a
    success returns ``skipped``.
    """
    job = ScheduledSummaryJob(
        user_id=request.user_id,
        summary_id=request.summary_id,
        scheduled_date=request.scheduled_date,
        topics=request.topics,
        word_count=request.word_count,
        country=request.country,
    )

    logger.info("Manual scheduled summary triggered", user_id=job.user_id, summary_id=job.summary_id)
    outcome = await scheduled_summary_runner.run(db, job)

    return ScheduledSummaryRunResponse(**outcome.to_dict())


@router.get("/scheduler")
async def get_scheduler_status() -> dict:
    """Background scheduler status and next run times."""
    return background_scheduler.get_status()


@router.post("/tasks/{task_name}")
async def trigger_task(task_name: str) -> dict:
    """
    Trigger a housekeeping task.

    Call these via cron-job.org when the in-process scheduler is disabled:
    - reconcile_stale: every 5 minutes
    - cleanup_topic_cache: hourly
    - purge_executions: daily
    - pregenerate_topic_summaries: every 6 hours
    """
    logger.info("Manual task triggered", task=task_name)
    result = await background_scheduler.run_task_now(task_name)

    if not result.get("success"):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=result,
        )
    return result


@router.get("/settings", response_model=RuntimeSettingsResponse)
async def get_runtime_settings_snapshot(
    runtime_settings: RuntimeSettings = Depends(get_runtime_settings),
) -> RuntimeSettingsResponse:
    """Runtime settings as loaded by this process."""
    return RuntimeSettingsResponse(**asdict(runtime_settings.get()))


@router.post("/settings/refresh", response_model=RuntimeSettingsResponse)
async def refresh_runtime_settings(
    runtime_settings: RuntimeSettings = Depends(get_runtime_settings),
    db: AsyncSession = Depends(get_db_session),
) -> RuntimeSettingsResponse:
    """Re-read runtime settings from the database."""
    snapshot = await runtime_settings.refresh(db)
    return RuntimeSettingsResponse(**asdict(snapshot))
