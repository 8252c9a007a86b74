from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional

from autoconnect.database import get_db
from autoconnect.models.lead import Lead
from autoconnect.models.message import ConnectionRequest
from autoconnect.schemas.records import LeadDetailOut, LeadOut, LeadStats

router = APIRouter()


@router.get("", response_model=list[LeadOut])
def list_leads(
    source: Optional[str] = None,
    outcome: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    query = db.query(Lead)
    if source:
        query = query.filter(Lead.source == source)
    if outcome:
        query = query.filter(
            Lead.connection_requests.any(ConnectionRequest.outcome == outcome)
        )

    leads = (
        query.order_by(Lead.updated_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return leads


@router.get("/stats", response_model=LeadStats)
def get_stats(db: Session = Depends(get_db)):
    total = db.query(Lead).count()
    rows = (
        db.query(ConnectionRequest.outcome, func.count(ConnectionRequest.id))
        .group_by(ConnectionRequest.outcome)
        .all()
    )
    return LeadStats(total=total, by_outcome={row[0]: row[1] for row in rows})


@router.get("/{lead_id}", response_model=LeadDetailOut)
def get_lead(lead_id: int, db: Session = Depends(get_db)):
    lead = db.query(Lead).filter(Lead.id == lead_id).first()
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead
