# Conversion history (owner-scoped)
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from slideit.api.deps import get_tracker
from slideit.core.auth import Owner, get_owner
from slideit.kernel.errors import JobNotFound
from slideit.services.tracker import JobTracker

router = APIRouter()


@router.get("/jobs")
async def list_jobs(
    owner: Owner = Depends(get_owner),
    tracker: JobTracker = Depends(get_tracker),
) -> Dict[str, Any]:
    jobs = await tracker.list_for_owner(owner.id)
    return {"jobs": [j.dump() for j in jobs]}


@router.get("/jobs/{job_id}")
async def get_job(
    job_id: str,
    owner: Owner = Depends(get_owner),
    tracker: JobTracker = Depends(get_tracker),
) -> Dict[str, Any]:
    job = await tracker.get(job_id)
    # other owners' jobs are reported as missing
    if job is None or job.owner_id != owner.id:
        raise JobNotFound(job_id)
    return job.dump()


@router.delete("/jobs/{job_id}")
async def delete_job(
    job_id: str,
    owner: Owner = Depends(get_owner),
    tracker: JobTracker = Depends(get_tracker),
) -> Dict[str, Any]:
    if not await tracker.delete(job_id, owner.id):
        raise JobNotFound(job_id)
    return {"success": True, "jobId": job_id}
