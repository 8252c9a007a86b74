from fastapi import APIRouter, Depends

from autoconnect.routers.workflow import get_worker
from autoconnect.schemas.workflow import JobStatusOut
from autoconnect.worker.linkedin_worker import LinkedInWorker
from autoconnect.worker.task_queue import task_registry

router = APIRouter()


@router.get("/status")
def get_worker_status(worker: LinkedInWorker = Depends(get_worker)):
    """Check LinkedIn worker and browser status."""
    return {
        "worker_status": worker.status,
        "browser_connected": worker.is_browser_ready,
        "session_saved": worker.session.has_auth_cookie(),
        "active_job": worker.active_job,
    }


@router.post("/launch", response_model=JobStatusOut)
async def launch_browser(worker: LinkedInWorker = Depends(get_worker)):
    """Launch the browser, restoring the saved session when possible."""
    task = await worker.launch_and_login()
    return JobStatusOut(**task.to_dict())


@router.post("/check-login")
async def check_login(worker: LinkedInWorker = Depends(get_worker)):
    """Check if manual login has been completed (runs in PW thread)."""
    success = await worker.check_and_finalize_login_async()
    return {
        "logged_in": success,
        "browser_connected": worker.is_browser_ready,
    }


@router.get("/job/{job_id}", response_model=JobStatusOut)
def get_job_status(job_id: str):
    """Check status of a background job."""
    task = task_registry.get(job_id)
    if not task:
        return JobStatusOut(job_id=job_id, status="not_found")
    return JobStatusOut(**task.to_dict())
