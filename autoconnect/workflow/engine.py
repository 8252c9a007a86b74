"""
Workflow engine: runs the collected queue through the connect pipeline.

Steps:  Idle -> Collecting -> ReadyToProcess -> Processing -> Completed
Per profile (Processing):
    Navigating -> LocatingActionMenu -> CapturingIdentity -> GeneratingMessage
    -> FillingMessage -> Sending -> Recording

``resume()`` is the only call that moves a Processing workflow forward. It
loads the persisted continuation record, does the next bounded piece of work
(navigate, or finish the profile on the current page), saves, and returns.
The worker simply calls it again until it stops returning NAVIGATED or
ADVANCED. A crashed process, a closed tab and a page reload all look the same
to the engine: the next ``resume()`` picks up from the record.

Double-send protection:
  - the record is saved with phase=Sending before the send control is clicked;
  - the outcome is appended to ``processed`` (with the counters) in one save;
  - re-entry with an outcome for the cursor never touches the page again;
  - re-entry in Sending without an outcome records "possibly sent" instead of
    clicking again;
  - the message store is called only if ``store_attempted`` was not yet saved.
"""
import logging
import threading
from datetime import date
from enum import Enum
from typing import Callable, Optional

from autoconnect.linkedin.profile_page import NavigationResult, ProfilePage, SendVerdict
from autoconnect.services.message_service import build_fallback_message, clean_message
from autoconnect.services.notifier import Notifier
from autoconnect.services.record_store import RecordRequest
from autoconnect.workflow.errors import (
    ErrorKind,
    ProfileStepFailed,
    WorkflowConflict,
    WorkflowPaused,
)
from autoconnect.workflow.state import (
    DurableCounters,
    Outcome,
    ProcessedEntry,
    Profile,
    ProfilePhase,
    StatusEntry,
    WorkflowState,
    WorkflowStep,
)
from autoconnect.workflow.store import StateStore
from autoconnect.workflow.timing import Pacer, WorkflowTiming

logger = logging.getLogger("autoconnect")

# Re-open the target page at most this many times per profile before
# assuming the profile lives under a different URL than the one queued
MAX_NAVIGATIONS = 2

PAUSED_BY_USER = "Paused by user"


class ResumeOutcome(str, Enum):
    IDLE = "idle"
    NAVIGATED = "navigated"
    ADVANCED = "advanced"
    PAUSED = "paused"
    COMPLETED = "completed"

    @property
    def should_continue(self) -> bool:
        return self in (ResumeOutcome.NAVIGATED, ResumeOutcome.ADVANCED)


_STATUS_STYLE = {
    Outcome.SENT: ("✓", "green"),
    Outcome.POSSIBLY_SENT: ("?", "orange"),
    Outcome.FAILED: ("✗", "red"),
}


class WorkflowEngine:
    def __init__(
        self,
        store: StateStore,
        page: ProfilePage,
        generator=None,
        record_store=None,
        timing: Optional[WorkflowTiming] = None,
        pacer: Optional[Pacer] = None,
        notifier: Optional[Notifier] = None,
        return_url: Optional[str] = None,
        today: Callable[[], str] = lambda: date.today().isoformat(),
    ):
        self.store = store
        self.page = page
        self.generator = generator
        self.record_store = record_store
        self.timing = timing or WorkflowTiming()
        self.pacer = pacer or Pacer()
        self.notifier = notifier or Notifier()
        self.return_url = return_url
        self.today = today
        self.last_summary: Optional[dict] = None

        self._pause = threading.Event()
        self._lock = threading.RLock()
        self._active = False
        self._notes: list[str] = []

    # ------------------------------------------------------------------
    # User controls
    # ------------------------------------------------------------------

    def current_state(self) -> WorkflowState:
        return self.store.load() or WorkflowState()

    def counters(self) -> DurableCounters:
        return self.store.load_counters()

    @property
    def is_paused(self) -> bool:
        return self._pause.is_set()

    @property
    def is_active(self) -> bool:
        return self._active

    def start_collection(self, start_url: Optional[str] = None) -> WorkflowState:
        """Idle -> Collecting. A batch that is still being prepared keeps its queue."""
        with self._lock:
            state = self.store.load()
            if state and state.step == WorkflowStep.PROCESSING:
                raise WorkflowConflict("A workflow is already processing; pause or clear it first.")
            if state is None or state.step not in (
                WorkflowStep.COLLECTING, WorkflowStep.READY_TO_PROCESS
            ):
                state = WorkflowState()
            state.step = WorkflowStep.COLLECTING
            state.start_url = start_url or state.start_url
            state.status_text = "Collecting profiles"
            self._save(state)
        logger.info("Collection started.")
        return state

    def intake(self, profiles: list[Profile]) -> int:
        """Append newly collected profiles to the queue, skipping known URLs."""
        with self._lock:
            state = self.store.load() or WorkflowState()
            if state.step == WorkflowStep.PROCESSING:
                raise WorkflowConflict("The queue is frozen while processing.")
            if state.step == WorkflowStep.IDLE:
                state.step = WorkflowStep.READY_TO_PROCESS

            known = {p.canonical_url for p in state.queue}
            added = 0
            for profile in profiles:
                if profile.canonical_url in known:
                    continue
                state.queue.append(profile)
                known.add(profile.canonical_url)
                added += 1

            if added:
                state.status_text = f"{len(state.queue)} profiles queued"
                self._save(state)
        return added

    def stop_collection(self) -> WorkflowState:
        """Collecting -> ReadyToProcess; the queue is frozen as it is."""
        with self._lock:
            state = self.store.load() or WorkflowState()
            if state.step == WorkflowStep.COLLECTING:
                state.step = WorkflowStep.READY_TO_PROCESS
                state.status_text = f"Ready: {len(state.queue)} profiles queued"
                self._save(state)
                self.notifier.publish("status", step=state.step.value, queued=len(state.queue))
        return state

    def remove_profile(self, index: int) -> WorkflowState:
        with self._lock:
            state = self.store.load()
            if state is None or not 0 <= index < len(state.queue):
                raise IndexError(f"No queued profile at index {index}")
            if state.step == WorkflowStep.PROCESSING:
                raise WorkflowConflict("The queue is frozen while processing.")
            removed = state.queue.pop(index)
            self._save(state)
        logger.info(f"Removed {removed.name} from the queue.")
        return state

    def clear_all(self) -> None:
        """Explicit user reset: drop the whole in-flight batch."""
        with self._lock:
            if self._active:
                raise WorkflowConflict("Pause the workflow before clearing it.")
            self.store.clear()
            self._pause.clear()
        self.notifier.publish("status", step=WorkflowStep.IDLE.value, cleared=True)
        logger.info("Workflow state cleared by user.")

    def start_processing(self, prompt: str) -> WorkflowState:
        """ReadyToProcess -> Processing with the operator's prompt."""
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValueError("A non-empty prompt is required.")

        with self._lock:
            state = self.store.load()
            if state is None or state.step != WorkflowStep.READY_TO_PROCESS:
                step = state.step.value if state else WorkflowStep.IDLE.value
                raise WorkflowConflict(f"Cannot start processing from step '{step}'.")
            if not state.queue:
                raise WorkflowConflict("The queue is empty.")

            state.step = WorkflowStep.PROCESSING
            state.cursor = 0
            state.processed = []
            state.per_profile_status = {}
            state.sent_count = 0
            state.failed_count = 0
            state.prompt_text = prompt
            state.prompt_confirmed = True
            state.running = True
            state.awaiting_delay = False
            state.last_error = None
            state.clear_profile_scope()
            state.status_text = f"Starting: {len(state.queue)} profiles"
            self._pause.clear()
            state.paused = False
            self._save(state)

        logger.info(f"Processing started for {len(state.queue)} profiles.")
        self.notifier.publish("status", step=state.step.value, queued=len(state.queue))
        return state

    def pause(self, reason: str = PAUSED_BY_USER) -> None:
        self._pause.set()
        with self._lock:
            if self._active:
                return  # the running pass saves the flag at its next suspension point
            state = self.store.load()
            if state and state.step == WorkflowStep.PROCESSING and not state.paused:
                state.paused = True
                state.status_text = f"Paused: {reason}"
                self._save(state)
        logger.info(f"Workflow paused: {reason}")

    def unpause(self) -> Optional[WorkflowState]:
        """Clear the pause flag. The caller schedules the next ``resume()``."""
        self._pause.clear()
        with self._lock:
            if self._active:
                return None
            state = self.store.load()
            if state and state.step == WorkflowStep.PROCESSING:
                state.paused = False
                state.status_text = "Resuming"
                self._save(state)
        logger.info("Workflow resumed by user.")
        return state

    def has_work(self) -> bool:
        """True when a Processing (or finishing) workflow is waiting for ``resume()``."""
        state = self.store.load()
        return bool(
            state
            and state.step in (WorkflowStep.PROCESSING, WorkflowStep.COMPLETED)
            and not state.paused
        )

    # ------------------------------------------------------------------
    # Continuation entry point
    # ------------------------------------------------------------------

    def resume(self) -> ResumeOutcome:
        with self._lock:
            if self._active:
                logger.warning("resume() called while a pass is already running.")
                return ResumeOutcome.IDLE
            self._active = True
        try:
            return self._resume()
        finally:
            with self._lock:
                self._active = False

    def _resume(self) -> ResumeOutcome:
        state = self.store.load()
        if state is None:
            return ResumeOutcome.IDLE
        if state.step == WorkflowStep.COMPLETED:
            return self._complete(state)
        if state.step != WorkflowStep.PROCESSING:
            return ResumeOutcome.IDLE

        if state.paused:
            self._pause.set()
        if self._pause.is_set():
            return self._hold(state, PAUSED_BY_USER)

        if state.is_exhausted:
            state.step = WorkflowStep.COMPLETED
            self._save(state)
            return self._complete(state)

        try:
            return self._advance(state)
        except WorkflowPaused as e:
            return self._hold(state, e.reason)

    def _advance(self, state: WorkflowState) -> ResumeOutcome:
        index = state.cursor

        entry = state.entry_for(index)
        if entry is not None:
            # An outcome already exists for this profile: never touch the page again
            logger.info(f"Profile #{index} already recorded as {entry.outcome.value}; advancing.")
            return self._record(state, entry)

        if state.phase == ProfilePhase.SENDING:
            logger.warning(
                f"Profile #{index}: interrupted after the send click; not sending again."
            )
            self._notes = ["possibly sent (interrupted before confirmation)"]
            entry = self._conclude(state, Outcome.POSSIBLY_SENT)
            return self._record(state, entry)

        if state.awaiting_delay:
            delay = self.timing.next_profile_delay()
            self._set_status(state, f"Waiting {delay:.0f}s before the next profile")
            if not self.pacer.wait(delay, self._pause):
                raise WorkflowPaused(PAUSED_BY_USER)
            state.awaiting_delay = False
            self._save(state)

        target = state.current_profile.navigation_url
        if state.phase in (None, ProfilePhase.NAVIGATING):
            return self._navigate(state, target)
        if not self.page.is_showing(target) and state.navigations < MAX_NAVIGATIONS:
            logger.info(f"Profile #{index}: page is not showing {target}; reopening.")
            return self._navigate(state, target)
        return self._process(state)

    def _navigate(self, state: WorkflowState, target: str) -> ResumeOutcome:
        limit = self.timing.daily_limit
        if limit > 0 and self.store.load_counters().sent_on(self.today()) >= limit:
            raise WorkflowPaused(f"Daily limit of {limit} invitations reached")

        profile = state.current_profile
        # The record must be on disk before the page goes away
        state.phase = ProfilePhase.LOCATING_ACTION_MENU
        state.navigations += 1
        state.status_text = f"{ProfilePhase.NAVIGATING.label}: {profile.name}"
        self._save(state)

        result = self.page.open(target)
        if result == NavigationResult.LOGIN_REQUIRED:
            raise WorkflowPaused("LinkedIn session expired; log in again")
        if result == NavigationResult.FAILED:
            self._notes = []
            entry = self._conclude(
                state, Outcome.FAILED, error="navigation failed", kind=ErrorKind.TIMEOUT
            )
            return self._record(state, entry)
        return ResumeOutcome.NAVIGATED

    # ------------------------------------------------------------------
    # Per-profile pipeline
    # ------------------------------------------------------------------

    def _process(self, state: WorkflowState) -> ResumeOutcome:
        profile = state.current_profile
        self._notes = []
        try:
            outcome = self._run_pipeline(state, profile)
            entry = self._conclude(state, outcome)
        except WorkflowPaused:
            raise
        except ProfileStepFailed as e:
            logger.error(f"Profile #{state.cursor} ({profile.name}) failed: {e.reason}")
            entry = self._conclude(state, Outcome.FAILED, error=e.reason, kind=e.kind)
            self.page.dismiss_dialogs()
        except Exception as e:
            if state.phase == ProfilePhase.SENDING:
                logger.error(f"Error after clicking send for {profile.name}: {e}")
                self._notes.append(f"possibly sent (error after send: {e})")
                entry = self._conclude(state, Outcome.POSSIBLY_SENT)
            else:
                logger.error(f"Unexpected error on {profile.name}: {e}")
                entry = self._conclude(
                    state, Outcome.FAILED, error=str(e), kind=ErrorKind.UNEXPECTED
                )
                self.page.dismiss_dialogs()
        return self._record(state, entry)

    def _run_pipeline(self, state: WorkflowState, profile: Profile) -> Outcome:
        # LocatingActionMenu
        self._enter(state, ProfilePhase.LOCATING_ACTION_MENU)
        self.page.wait_until_ready()
        if self.page.detect_security_challenge():
            raise WorkflowPaused("LinkedIn security checkpoint detected")
        self._checkpoint()
        if self.page.is_pending():
            raise ProfileStepFailed(ErrorKind.NOT_FOUND, "invitation already pending")
        menu = self.page.find_action_menu()
        if menu is None:
            raise ProfileStepFailed(ErrorKind.NOT_FOUND, "action menu not found")

        # CapturingIdentity
        self._enter(state, ProfilePhase.CAPTURING_IDENTITY)
        canonical = self.page.capture_canonical_url(menu)
        if canonical is None:
            logger.warning(f"Canonical URL unresolved for {profile.name}; continuing.")
            self._notes.append("canonical URL unresolved")
        state.last_known_canonical_url = canonical
        self._checkpoint()

        # GeneratingMessage (at most once per profile, kept across re-entry)
        self._enter(state, ProfilePhase.GENERATING_MESSAGE)
        if not state.generated_message:
            message, interests = self._generate(
                state.prompt_text, canonical or profile.canonical_url, profile
            )
            state.generated_message = message
            state.generated_interests = interests
            self._save(state)
        message = state.generated_message
        self._checkpoint()

        # FillingMessage
        self._enter(state, ProfilePhase.FILLING_MESSAGE)
        note_input = self.page.find_note_input(menu)
        if note_input is None:
            raise ProfileStepFailed(ErrorKind.NOT_FOUND, "message input not found")
        if not self.page.type_note(note_input, message, self.timing.per_word_delay(message)):
            raise ProfileStepFailed(ErrorKind.TIMEOUT, "message could not be typed")
        if not self.pacer.wait(self.timing.post_fill_delay, self._pause):
            raise WorkflowPaused(PAUSED_BY_USER)

        # Sending
        send = self.page.find_send_control()
        if send is None:
            raise ProfileStepFailed(ErrorKind.NOT_FOUND, "send control not found")
        self._checkpoint()
        self._enter(state, ProfilePhase.SENDING)
        if not self.page.click_send(send):
            raise ProfileStepFailed(ErrorKind.NOT_FOUND, "send control could not be clicked")

        verdict = self.page.verify_sent(self.timing.send_verify_timeout)
        if verdict == SendVerdict.FAILED:
            raise ProfileStepFailed(
                ErrorKind.UNEXPECTED, "LinkedIn reported the invitation was not sent"
            )
        if verdict == SendVerdict.AMBIGUOUS:
            logger.warning(f"No confirmation for {profile.name}; assuming sent.")
            self._notes.append("possibly sent")
            return Outcome.POSSIBLY_SENT
        return Outcome.SENT

    def _generate(self, prompt: str, canonical_url: str, profile: Profile):
        if self.generator is not None:
            try:
                result = self.generator.generate(prompt, canonical_url, profile)
                message = clean_message(result.message or "", self.timing.note_max_chars)
                if message:
                    return message, result.interests
                logger.warning(f"Empty generated message for {profile.name}.")
            except Exception as e:
                logger.warning(f"Message generation failed for {profile.name}: {e}")
        self._notes.append("fallback message")
        return build_fallback_message(profile), None

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def _conclude(
        self,
        state: WorkflowState,
        outcome: Outcome,
        error: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
    ) -> ProcessedEntry:
        """Append the outcome and bump the counters in a single save."""
        profile = state.current_profile
        entry = ProcessedEntry(
            index=state.cursor,
            profile=profile.model_copy(),
            outcome=outcome,
            error=error,
            error_kind=kind,
            note="; ".join(self._notes) or None,
            message=state.generated_message,
            interests=state.generated_interests,
            canonical_url=state.last_known_canonical_url,
        )
        state.processed.append(entry)
        if outcome.counts_as_sent:
            state.sent_count += 1
        else:
            state.failed_count += 1
            state.last_error = f"{kind.label if kind else 'Failed'}: {error}"

        icon, color = _STATUS_STYLE[outcome]
        label = outcome.value.replace("_", " ")
        if error:
            label = f"{label}: {error}"
        elif entry.note:
            label = f"{label} ({entry.note})"
        state.per_profile_status[state.cursor] = StatusEntry(label=label, icon=icon, color_hint=color)

        state.phase = ProfilePhase.RECORDING
        state.status_text = f"{ProfilePhase.RECORDING.label}: {profile.name}"
        self._save(state)

        if outcome.counts_as_sent:
            self.store.note_sent_today(self.today())
        logger.info(f"Profile #{state.cursor} {profile.name}: {label}")
        return entry

    def _record(self, state: WorkflowState, entry: ProcessedEntry) -> ResumeOutcome:
        """Hand the outcome to the message store (at most once) and advance the cursor."""
        if not entry.store_attempted and self.record_store is not None:
            entry.store_attempted = True
            self._save(state)
            try:
                ids = self.record_store.record(
                    RecordRequest(
                        profile=entry.profile,
                        prompt=state.prompt_text,
                        message=entry.message,
                        canonical_url=entry.canonical_url,
                        outcome=entry.outcome,
                        outcome_note=entry.note or entry.error,
                        interests=entry.interests,
                    )
                )
                for target in (entry.profile, state.queue[entry.index]):
                    target.remote_profile_id = ids.remote_profile_id
                    target.connection_request_id = ids.connection_request_id
                    target.message_id = ids.message_id
                    target.prompt_id = ids.prompt_id
            except Exception as e:
                logger.error(f"Message store failed for {entry.profile.name}: {e}")

        state.cursor = entry.index + 1
        state.clear_profile_scope()
        if state.is_exhausted:
            state.step = WorkflowStep.COMPLETED
            state.awaiting_delay = False
            state.status_text = "Completed"
        else:
            state.awaiting_delay = True
            state.status_text = f"Done {state.cursor}/{len(state.queue)}"
        self._save(state)

        self.notifier.publish(
            "status",
            step=state.step.value,
            cursor=state.cursor,
            total=len(state.queue),
            sent=state.sent_count,
            failed=state.failed_count,
            last_outcome=entry.outcome.value,
        )

        if state.step == WorkflowStep.COMPLETED:
            return self._complete(state)
        return ResumeOutcome.ADVANCED

    def _complete(self, state: WorkflowState) -> ResumeOutcome:
        counters = self.store.archive_and_clear(state)
        self._pause.clear()
        self.last_summary = {
            "sent": state.sent_count,
            "failed": state.failed_count,
            "processed": [e.model_dump(mode="json") for e in state.processed],
        }
        logger.info(
            f"Workflow complete: {state.sent_count} sent, {state.failed_count} failed "
            f"of {len(state.queue)}."
        )
        self.notifier.publish(
            "workflow_completed",
            sent=state.sent_count,
            failed=state.failed_count,
            lifetime_sent=counters.sent_count,
            lifetime_failed=counters.failed_count,
        )
        self.page.show_status("Workflow complete")

        return_url = state.start_url or self.return_url
        if return_url:
            self.pacer.sleep(self.timing.completion_return_delay)
            self.page.open(return_url)
        return ResumeOutcome.COMPLETED

    def _hold(self, state: WorkflowState, reason: str) -> ResumeOutcome:
        """Freeze at a suspension point. Anything short of Sending restarts the profile."""
        self._pause.set()
        if state.phase not in (ProfilePhase.SENDING, ProfilePhase.RECORDING):
            if state.phase is not None:
                state.phase = ProfilePhase.NAVIGATING
                state.navigations = 0
            # The next profile always waits a fresh delay after a pause
            state.awaiting_delay = state.cursor > 0
        state.paused = True
        state.status_text = f"Paused: {reason}"
        if reason != PAUSED_BY_USER:
            state.last_error = reason
            logger.warning(f"Workflow paused: {reason}")
        self._save(state)
        self.notifier.publish("paused", reason=reason, cursor=state.cursor)
        self.page.show_status(state.status_text)
        return ResumeOutcome.PAUSED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _checkpoint(self) -> None:
        if self._pause.is_set():
            raise WorkflowPaused(PAUSED_BY_USER)

    def _enter(self, state: WorkflowState, phase: ProfilePhase) -> None:
        state.phase = phase
        self._set_status(state, f"{phase.label}: {state.current_profile.name}")

    def _set_status(self, state: WorkflowState, text: str) -> None:
        state.status_text = text
        self._save(state)
        self.page.show_status(text)

    def _save(self, state: WorkflowState) -> None:
        with self._lock:
            if state.step == WorkflowStep.PROCESSING:
                state.paused = self._pause.is_set()
            self.store.save(state)
