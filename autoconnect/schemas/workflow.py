from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Optional


class ProfileOut(BaseModel):
    name: str
    canonical_url: str
    lead_url: Optional[str] = None
    title: str = ""
    company: str = ""
    location: str = ""
    profile_image_url: Optional[str] = None
    source: str
    page_index: int = 1
    collected_at: datetime
    remote_profile_id: Optional[int] = None
    connection_request_id: Optional[int] = None

    class Config:
        from_attributes = True


class ProcessedOut(BaseModel):
    index: int
    profile: ProfileOut
    outcome: str
    error: Optional[str] = None
    error_kind: Optional[str] = None
    note: Optional[str] = None
    message: Optional[str] = None
    canonical_url: Optional[str] = None
    recorded_at: datetime

    class Config:
        from_attributes = True


class StatusEntryOut(BaseModel):
    label: str
    icon: str = ""
    color_hint: str = "gray"
    timestamp: datetime

    class Config:
        from_attributes = True


class CountersOut(BaseModel):
    sent_count: int = 0
    failed_count: int = 0
    campaigns: int = 0
    sent_today: int = 0

    class Config:
        from_attributes = True


class WorkflowStatusOut(BaseModel):
    step: str
    phase: Optional[str] = None
    status_text: str
    last_error: Optional[str] = None
    running: bool = False
    paused: bool = False
    cursor: int = 0
    total: int = 0
    sent_count: int = 0
    failed_count: int = 0
    prompt_text: str = ""
    queue: list[ProfileOut] = []
    processed: list[ProcessedOut] = []
    per_profile_status: dict[int, StatusEntryOut] = {}
    counters: CountersOut
    browser_connected: bool = False
    collecting: bool = False
    last_summary: Optional[dict[str, Any]] = None


class CollectionStartIn(BaseModel):
    start_url: Optional[str] = None
    max_pages: Optional[int] = Field(None, ge=1, le=100)


class StartProcessingIn(BaseModel):
    prompt: str


class QueueImportIn(BaseModel):
    content: str  # CSV text, same columns as the export


class QueueImportOut(BaseModel):
    added: int
    skipped: int
    queued: int


class JobStatusOut(BaseModel):
    job_id: str
    task_type: Optional[str] = None
    status: str  # queued/running/completed/failed/not_found
    progress: int = 0
    total: int = 0
    error: Optional[str] = None
