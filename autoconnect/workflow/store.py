"""
Durable storage for the workflow continuation record and campaign counters.

Both live in the ``key_values`` table as JSON documents. The workflow state
is always written whole; a partially written or unreadable record loads as
None and is deleted, which the engine treats as "no workflow in flight".
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from autoconnect.database import SessionLocal
from autoconnect.models.key_value import KeyValue
from autoconnect.workflow.errors import StateCorrupt
from autoconnect.workflow.state import DurableCounters, WorkflowState

logger = logging.getLogger("autoconnect")

STATE_KEY = "workflow_state"
COUNTERS_KEY = "durable_counters"


class StateStore:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        state_key: str = STATE_KEY,
        counters_key: str = COUNTERS_KEY,
    ):
        self.session_factory = session_factory
        self.state_key = state_key
        self.counters_key = counters_key

    # --- Workflow state ---

    def save(self, state: WorkflowState) -> None:
        state.updated_at = datetime.utcnow()
        payload = state.model_dump_json()
        db = self.session_factory()
        try:
            self._put(db, self.state_key, payload)
            db.commit()
        finally:
            db.close()

    def load(self) -> Optional[WorkflowState]:
        raw = self._read(self.state_key)
        if raw is None:
            return None
        try:
            state = WorkflowState.model_validate_json(raw)
            state.check_invariants()
            return state
        except (ValidationError, StateCorrupt) as e:
            logger.warning(f"Discarding unreadable workflow state: {e}")
            self.clear()
            return None

    def clear(self) -> None:
        db = self.session_factory()
        try:
            db.query(KeyValue).filter(KeyValue.key == self.state_key).delete()
            db.commit()
        finally:
            db.close()

    # --- Durable counters ---

    def load_counters(self) -> DurableCounters:
        raw = self._read(self.counters_key)
        if raw is None:
            return DurableCounters()
        try:
            return DurableCounters.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Durable counters unreadable, starting from zero: {e}")
            return DurableCounters()

    def archive_and_clear(self, state: WorkflowState) -> DurableCounters:
        """Fold the campaign totals into the durable counters and drop the state, atomically."""
        counters = self.load_counters()
        counters.sent_count += state.sent_count
        counters.failed_count += state.failed_count
        counters.campaigns += 1

        db = self.session_factory()
        try:
            self._put(db, self.counters_key, counters.model_dump_json())
            db.query(KeyValue).filter(KeyValue.key == self.state_key).delete()
            db.commit()
        finally:
            db.close()

        logger.info(
            f"Campaign archived: +{state.sent_count} sent, +{state.failed_count} failed "
            f"(lifetime {counters.sent_count}/{counters.failed_count})"
        )
        return counters

    def note_sent_today(self, day: str) -> DurableCounters:
        counters = self.load_counters()
        if counters.day != day:
            counters.day = day
            counters.sent_today = 0
        counters.sent_today += 1

        db = self.session_factory()
        try:
            self._put(db, self.counters_key, counters.model_dump_json())
            db.commit()
        finally:
            db.close()
        return counters

    # --- Helpers ---

    def _read(self, key: str) -> Optional[str]:
        db = self.session_factory()
        try:
            row = db.query(KeyValue).filter(KeyValue.key == key).first()
            return row.value if row else None
        finally:
            db.close()

    @staticmethod
    def _put(db: Session, key: str, value: str) -> None:
        row = db.query(KeyValue).filter(KeyValue.key == key).first()
        if row:
            row.value = value
        else:
            db.add(KeyValue(key=key, value=value))
