from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request

from assessment_engine.infra.queue import fetch_job, is_async_enabled

router = APIRouter(tags=["jobs"])


@router.get("/jobs/status/{job_id}")
def job_status(request: Request, job_id: str) -> Dict[str, Any]:
    if not is_async_enabled():
        raise HTTPException(status_code=400, detail="Async queue disabled (ASYNC_QUEUE_ENABLED=false)")
    job = fetch_job(str(job_id))
    data: Dict[str, Any] = {
        "job_id": str(job.id),
        "status": str(job.get_status()),
        "enqueued_at": str(job.enqueued_at) if job.enqueued_at else None,
        "started_at": str(job.started_at) if job.started_at else None,
        "ended_at": str(job.ended_at) if job.ended_at else None,
        "exc_info": job.exc_info if job.is_failed else None,
    }
    if job.is_finished:
        data["result"] = job.result
    return {"request_id": request.state.request_id, "data": data, "error": None}
