"""
Background jobs API routes.

Operator endpoints for the renewal job. Protected by the admin API key.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from packages.billing.jobs.manager import JobsManager
from packages.billing.models.domain.renewal import (
    JobsConfigUpdate,
    JobsStatus,
    RenewalResult,
)

router = APIRouter()


def get_jobs_manager(request: Request) -> JobsManager:
    """The JobsManager built by the application lifespan."""
    jobs_manager = getattr(request.app.state, "jobs_manager", None)
    if jobs_manager is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Jobs manager is not available",
        )
    return jobs_manager


@router.get("/status", response_model=JobsStatus)
async def get_jobs_status(jobs_manager: JobsManager = Depends(get_jobs_manager)):
    return jobs_manager.get_status()


@router.post("/renewal/run", response_model=RenewalResult)
async def run_renewal_job(jobs_manager: JobsManager = Depends(get_jobs_manager)):
    """
    Run one renewal pass now and return its report.

    If a pass is already running, waits for it and returns its report
    instead of starting another.
    """
    return await jobs_manager.run_manually()


@router.patch("/config", response_model=JobsStatus)
async def update_jobs_config(
    changes: JobsConfigUpdate,
    jobs_manager: JobsManager = Depends(get_jobs_manager),
):
    """Merge a partial config into the running jobs. No restart needed."""
    return await jobs_manager.update_config(changes)
