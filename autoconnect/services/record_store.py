import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from autoconnect.database import SessionLocal
from autoconnect.models.lead import Lead
from autoconnect.models.message import ConnectionRequest, Message, Prompt
from autoconnect.workflow.state import Outcome, Profile

logger = logging.getLogger("autoconnect")


@dataclass
class RecordRequest:
    profile: Profile
    prompt: str
    message: Optional[str]
    canonical_url: Optional[str]
    outcome: Outcome
    outcome_note: Optional[str] = None
    interests: Optional[Any] = None


@dataclass
class StoredIds:
    remote_profile_id: int
    connection_request_id: int
    message_id: Optional[int] = None
    prompt_id: Optional[int] = None


class SqlRecordStore:
    """Stores what happened to each processed profile: lead, prompt, request, note."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def record(self, request: RecordRequest) -> StoredIds:
        profile = request.profile
        db = self.session_factory()
        try:
            lead = self._upsert_lead(db, profile, request.canonical_url)
            prompt = self._get_or_create_prompt(db, request.prompt)

            connection_request = ConnectionRequest(
                lead_id=lead.id,
                prompt_id=prompt.id if prompt else None,
                outcome=request.outcome.value,
                outcome_note=request.outcome_note,
                interests=_as_text(request.interests),
            )
            db.add(connection_request)
            db.flush()

            message = None
            if request.message:
                message = Message(
                    lead_id=lead.id,
                    connection_request_id=connection_request.id,
                    content=request.message,
                    status=request.outcome.value,
                )
                db.add(message)
                db.flush()

            db.commit()
            ids = StoredIds(
                remote_profile_id=lead.id,
                connection_request_id=connection_request.id,
                message_id=message.id if message else None,
                prompt_id=prompt.id if prompt else None,
            )
            logger.debug(f"Recorded {profile.name}: {ids}")
            return ids

        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _upsert_lead(db: Session, profile: Profile, canonical_url: Optional[str]) -> Lead:
        key = canonical_url or profile.canonical_url
        lead = db.query(Lead).filter(Lead.canonical_url == key).first()
        if lead is None and key != profile.canonical_url:
            # Lead-platform profile seen before under its lead URL
            lead = db.query(Lead).filter(Lead.canonical_url == profile.canonical_url).first()
            if lead is not None:
                lead.canonical_url = key

        if lead is None:
            lead = Lead(
                canonical_url=key,
                full_name=profile.name,
                first_name=profile.first_name,
                source=profile.source.value,
            )
            db.add(lead)

        lead.lead_url = profile.lead_url or lead.lead_url
        lead.full_name = profile.name
        lead.first_name = profile.first_name
        lead.title = profile.title or lead.title
        lead.company = profile.company or lead.company
        lead.location = profile.location or lead.location
        lead.profile_image_url = profile.profile_image_url or lead.profile_image_url
        db.flush()
        return lead

    @staticmethod
    def _get_or_create_prompt(db: Session, text: str) -> Optional[Prompt]:
        if not text:
            return None
        prompt = db.query(Prompt).filter(Prompt.text == text).first()
        if prompt is None:
            prompt = Prompt(text=text)
            db.add(prompt)
            db.flush()
        return prompt


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)
