"""
Workflow data model.

``WorkflowState`` is the one snapshot written before every navigation and
every state-changing event. It is always saved whole. Every field has a
default so older or partially written snapshots still load.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from autoconnect.linkedin.urls import is_profile_url
from autoconnect.workflow.errors import ErrorKind, StateCorrupt


class WorkflowStep(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    READY_TO_PROCESS = "ready_to_process"
    PROCESSING = "processing"
    COMPLETED = "completed"


class ProfilePhase(str, Enum):
    NAVIGATING = "navigating"
    LOCATING_ACTION_MENU = "locating_action_menu"
    CAPTURING_IDENTITY = "capturing_identity"
    GENERATING_MESSAGE = "generating_message"
    FILLING_MESSAGE = "filling_message"
    SENDING = "sending"
    RECORDING = "recording"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


class ProfileSource(str, Enum):
    SEARCH_PAGE = "search-page"
    NETWORK_PAGE = "network-page"
    LEAD_PLATFORM = "lead-platform"
    ALTERNATIVE = "alternative-extraction"


class Outcome(str, Enum):
    SENT = "sent"
    POSSIBLY_SENT = "possibly_sent"
    FAILED = "failed"

    @property
    def counts_as_sent(self) -> bool:
        return self is not Outcome.FAILED


class Profile(BaseModel):
    """A collected lead. Construction fails for anything without a name and a profile URL."""

    name: str
    canonical_url: str
    lead_url: Optional[str] = None
    title: str = ""
    company: str = ""
    location: str = ""
    profile_image_url: Optional[str] = None
    collected_at: datetime = Field(default_factory=datetime.utcnow)
    source: ProfileSource = ProfileSource.SEARCH_PAGE
    page_index: int = 1

    # Filled in from the message store once the profile has been processed
    remote_profile_id: Optional[int] = None
    connection_request_id: Optional[int] = None
    message_id: Optional[int] = None
    prompt_id: Optional[int] = None

    @field_validator("name", "title", "company", "location", mode="before")
    @classmethod
    def _strip(cls, v):
        return " ".join(str(v).split()) if v is not None else ""

    @model_validator(mode="after")
    def _check_identity(self):
        if not self.name:
            raise ValueError("profile name is empty")
        if not is_profile_url(self.canonical_url):
            raise ValueError(f"not a profile URL: {self.canonical_url!r}")
        return self

    @property
    def first_name(self) -> str:
        return self.name.split()[0] if self.name else ""

    @property
    def last_name(self) -> str:
        parts = self.name.split()
        return " ".join(parts[1:]) if len(parts) > 1 else ""

    @property
    def navigation_url(self) -> str:
        return self.lead_url or self.canonical_url


class ProcessedEntry(BaseModel):
    index: int
    profile: Profile
    outcome: Outcome
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    note: Optional[str] = None
    message: Optional[str] = None
    interests: Optional[Any] = None
    canonical_url: Optional[str] = None
    store_attempted: bool = False
    recorded_at: datetime = Field(default_factory=datetime.utcnow)


class StatusEntry(BaseModel):
    """Display-only status line for one queue index. Never read by the engine."""

    label: str
    icon: str = ""
    color_hint: str = "gray"
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class WorkflowState(BaseModel):
    model_config = ConfigDict(extra="ignore")

    step: WorkflowStep = WorkflowStep.IDLE
    phase: Optional[ProfilePhase] = None
    queue: list[Profile] = Field(default_factory=list)
    cursor: int = 0

    generated_message: Optional[str] = None
    generated_interests: Optional[Any] = None
    last_known_canonical_url: Optional[str] = None

    processed: list[ProcessedEntry] = Field(default_factory=list)
    per_profile_status: dict[int, StatusEntry] = Field(default_factory=dict)

    running: bool = False
    paused: bool = False
    prompt_text: str = ""
    prompt_confirmed: bool = False

    sent_count: int = 0
    failed_count: int = 0

    # Continuation bookkeeping
    awaiting_delay: bool = False
    navigations: int = 0
    start_url: Optional[str] = None

    status_text: str = "Idle"
    last_error: Optional[str] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def current_profile(self) -> Optional[Profile]:
        if 0 <= self.cursor < len(self.queue):
            return self.queue[self.cursor]
        return None

    @property
    def is_exhausted(self) -> bool:
        return self.cursor >= len(self.queue)

    def entry_for(self, index: int) -> Optional[ProcessedEntry]:
        for entry in self.processed:
            if entry.index == index:
                return entry
        return None

    def clear_profile_scope(self) -> None:
        """Forget everything scoped to the profile at ``cursor``."""
        self.phase = None
        self.generated_message = None
        self.generated_interests = None
        self.last_known_canonical_url = None
        self.navigations = 0

    def check_invariants(self) -> None:
        if not 0 <= self.cursor <= len(self.queue):
            raise StateCorrupt(f"cursor {self.cursor} outside queue of {len(self.queue)}")
        if self.step == WorkflowStep.PROCESSING:
            if self.sent_count + self.failed_count != len(self.processed):
                raise StateCorrupt(
                    f"counters {self.sent_count}+{self.failed_count} "
                    f"!= {len(self.processed)} processed"
                )
            if any(entry.index > self.cursor for entry in self.processed):
                raise StateCorrupt("processed entry ahead of cursor")


class DurableCounters(BaseModel):
    """Campaign-spanning totals. Survive every WorkflowState reset."""

    model_config = ConfigDict(extra="ignore")

    sent_count: int = 0
    failed_count: int = 0
    campaigns: int = 0
    day: Optional[str] = None
    sent_today: int = 0

    def sent_on(self, day: str) -> int:
        return self.sent_today if self.day == day else 0
