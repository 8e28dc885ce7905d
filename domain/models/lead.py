"""
Sales lead model.
"""

from datetime import datetime
import uuid

from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    Boolean,
    JSON,
    Uuid,
    Enum as SQLEnum,
)

from domain.models.database import Base
from domain.enums import LeadSource, LeadStatus


class Lead(Base):
    """Someone who showed interest in the service without an account"""

    __tablename__ = "lead"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    phone = Column(String(10), nullable=False, unique=True, index=True)
    location = Column(JSON, nullable=True)  # {latitude, longitude, distance, address}
    area = Column(String(200), nullable=False, default="")
    message = Column(Text, nullable=False, default="")
    source = Column(SQLEnum(LeadSource), nullable=False, default=LeadSource.APP)
    status = Column(SQLEnum(LeadStatus), nullable=False, default=LeadStatus.NEW)
    notification_sent = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
