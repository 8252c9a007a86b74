from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional

from autoconnect.database import get_db
from autoconnect.models.message import Message
from autoconnect.schemas.records import MessageOut

router = APIRouter()


@router.get("", response_model=list[MessageOut])
def list_messages(
    lead_id: Optional[int] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    query = db.query(Message)
    if lead_id:
        query = query.filter(Message.lead_id == lead_id)
    if status:
        query = query.filter(Message.status == status)

    messages = (
        query.order_by(Message.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return messages


@router.get("/{message_id}", response_model=MessageOut)
def get_message(message_id: int, db: Session = Depends(get_db)):
    message = db.query(Message).filter(Message.id == message_id).first()
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    return message
