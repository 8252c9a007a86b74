from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from typing import Optional

from autoconnect.schemas.workflow import (
    CollectionStartIn,
    CountersOut,
    JobStatusOut,
    ProfileOut,
    QueueImportIn,
    QueueImportOut,
    StartProcessingIn,
    WorkflowStatusOut,
)
from autoconnect.services.profile_io import read_profiles_csv, write_profiles_csv
from autoconnect.worker.linkedin_worker import LinkedInWorker, worker as default_worker
from autoconnect.workflow.errors import WorkflowConflict

router = APIRouter()


def get_worker() -> LinkedInWorker:
    """FastAPI dependency for the background worker (overridden in tests)."""
    return default_worker


def _queued(job_id: Optional[str]) -> JobStatusOut:
    if job_id is None:
        return JobStatusOut(job_id="", status="not_scheduled")
    return JobStatusOut(job_id=job_id, status="queued")


@router.get("/status", response_model=WorkflowStatusOut)
def get_status(worker: LinkedInWorker = Depends(get_worker)):
    engine = worker.engine
    state = engine.current_state()
    counters = engine.counters()
    data = state.model_dump(
        mode="json",
        include={
            "step", "phase", "status_text", "last_error", "running", "paused",
            "cursor", "sent_count", "failed_count", "prompt_text", "queue",
            "processed", "per_profile_status",
        },
    )
    return WorkflowStatusOut(
        **data,
        total=len(state.queue),
        counters=CountersOut(**counters.model_dump()),
        browser_connected=worker.is_browser_ready,
        collecting=worker.is_collecting,
        last_summary=engine.last_summary,
    )


@router.get("/counters", response_model=CountersOut)
def get_counters(worker: LinkedInWorker = Depends(get_worker)):
    return CountersOut(**worker.engine.counters().model_dump())


@router.get("/events")
def get_events(after: Optional[int] = Query(None, ge=0), worker: LinkedInWorker = Depends(get_worker)):
    return worker.notifier.recent(after)


# --- Collection ---


@router.post("/collection/start", response_model=JobStatusOut)
async def start_collection(req: CollectionStartIn, worker: LinkedInWorker = Depends(get_worker)):
    if not worker.is_browser_ready:
        raise HTTPException(status_code=409, detail="Browser not ready. Please login first.")
    try:
        job_id = await worker.start_collection(req.start_url, req.max_pages)
    except WorkflowConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _queued(job_id)


@router.post("/collection/stop")
def stop_collection(worker: LinkedInWorker = Depends(get_worker)):
    worker.stop_collection()
    state = worker.engine.current_state()
    return {"step": state.step.value, "queued": len(state.queue)}


# --- Queue ---


@router.get("/queue", response_model=list[ProfileOut])
def list_queue(worker: LinkedInWorker = Depends(get_worker)):
    return [p.model_dump(mode="json") for p in worker.engine.current_state().queue]


@router.delete("/queue/{index}")
def remove_from_queue(index: int, worker: LinkedInWorker = Depends(get_worker)):
    try:
        state = worker.engine.remove_profile(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except WorkflowConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"queued": len(state.queue)}


@router.delete("/queue")
def clear_workflow(worker: LinkedInWorker = Depends(get_worker)):
    try:
        worker.engine.clear_all()
    except WorkflowConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"cleared": True}


@router.post("/queue/import", response_model=QueueImportOut)
def import_queue(req: QueueImportIn, worker: LinkedInWorker = Depends(get_worker)):
    profiles, skipped = read_profiles_csv(req.content)
    try:
        added = worker.engine.intake(profiles)
    except WorkflowConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    queued = len(worker.engine.current_state().queue)
    return QueueImportOut(added=added, skipped=skipped + len(profiles) - added, queued=queued)


@router.get("/queue/export")
def export_queue(worker: LinkedInWorker = Depends(get_worker)):
    content = write_profiles_csv(worker.engine.current_state().queue)
    return PlainTextResponse(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="autoconnect_queue.csv"'},
    )


# --- Processing ---


@router.post("/start", response_model=JobStatusOut)
async def start_processing(req: StartProcessingIn, worker: LinkedInWorker = Depends(get_worker)):
    try:
        worker.engine.start_processing(req.prompt)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except WorkflowConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _queued(await worker.resume_pending())


@router.post("/pause")
def pause_workflow(worker: LinkedInWorker = Depends(get_worker)):
    worker.engine.pause()
    return {"paused": True}


@router.post("/resume", response_model=JobStatusOut)
async def resume_workflow(worker: LinkedInWorker = Depends(get_worker)):
    worker.engine.unpause()
    return _queued(await worker.resume_pending())
