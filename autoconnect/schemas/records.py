from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class LeadOut(BaseModel):
    id: int
    canonical_url: str
    lead_url: Optional[str] = None
    full_name: str
    first_name: str
    title: str = ""
    company: str = ""
    location: str = ""
    profile_image_url: Optional[str] = None
    source: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ConnectionRequestOut(BaseModel):
    id: int
    lead_id: int
    prompt_id: Optional[int] = None
    outcome: str
    outcome_note: Optional[str] = None
    interests: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LeadDetailOut(LeadOut):
    connection_requests: list[ConnectionRequestOut] = []


class MessageOut(BaseModel):
    id: int
    lead_id: int
    connection_request_id: Optional[int] = None
    content: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class LeadStats(BaseModel):
    total: int
    by_outcome: dict[str, int]
