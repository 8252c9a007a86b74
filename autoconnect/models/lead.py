from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from autoconnect.database import Base
from datetime import datetime


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    canonical_url = Column(String(500), unique=True, nullable=False, index=True)
    lead_url = Column(String(500), nullable=True)
    full_name = Column(String(200), nullable=False)
    first_name = Column(String(100), nullable=False, default="")
    title = Column(String(300), default="")
    company = Column(String(200), default="")
    location = Column(String(200), default="")
    profile_image_url = Column(String(1000), nullable=True)
    source = Column(String(30), default="search-page")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    connection_requests = relationship(
        "ConnectionRequest", back_populates="lead", cascade="all, delete-orphan"
    )
    messages = relationship("Message", back_populates="lead", cascade="all, delete-orphan")
