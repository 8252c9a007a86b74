from sqlalchemy import Column, String, DateTime, Text
from autoconnect.database import Base
from datetime import datetime


class KeyValue(Base):
    """Durable key/value record backing the persisted workflow state and counters."""

    __tablename__ = "key_values"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
