"""Job routes: status polling, retry, dismiss and the worker trigger."""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from autoblog.dependencies import get_job_queue, verify_worker_secret
from autoblog.schemas.job import JobCreated, JobStatus, ProcessRequest
from autoblog.services.job_queue import InvalidJobStateError, JobNotFoundError, JobQueue

logger = logging.getLogger(__name__)

router = APIRouter(tags=["jobs"])


@router.get("/jobs/{job_id}", response_model=JobStatus)
def get_job(
    job_id: uuid.UUID,
    queue: JobQueue = Depends(get_job_queue),
):
    """Get job status. Expired leases are failed first, so a stuck job reports FAILED."""
    queue.recover_stuck_jobs()
    try:
        return queue.get_status(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")


@router.post("/jobs/{job_id}/retry", response_model=JobCreated)
def retry_job(
    job_id: uuid.UUID,
    queue: JobQueue = Depends(get_job_queue),
):
    """Replace a failed job with a fresh queued one."""
    try:
        new_id = queue.retry(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except InvalidJobStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return JobCreated(job_id=new_id, status="QUEUED", message="Job requeued")


@router.delete("/jobs/{job_id}")
def dismiss_job(
    job_id: uuid.UUID,
    queue: JobQueue = Depends(get_job_queue),
):
    """Delete a completed or failed job."""
    try:
        queue.dismiss(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except InvalidJobStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {"message": "Job dismissed"}


@router.post("/worker/process", dependencies=[Depends(verify_worker_secret)])
def process_job(
    data: Optional[ProcessRequest] = None,
    queue: JobQueue = Depends(get_job_queue),
):
    """Recover stuck jobs, then process the given job or the oldest queued one."""
    recovered = queue.recover_stuck_jobs()

    job_id = data.job_id if data and data.job_id else queue.next_queued_job_id()
    if not job_id:
        return {"processed": False, "recovered": recovered, "message": "No queued jobs"}

    processed = queue.process(job_id)
    return {"processed": processed, "recovered": recovered, "job_id": str(job_id)}
