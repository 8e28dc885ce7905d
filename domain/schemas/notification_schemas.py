from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from uuid import UUID

from domain.enums import NotificationPriority


class NotificationResponse(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    related_user_id: Optional[UUID] = None
    related_model: Optional[str] = None
    related_id: Optional[UUID] = None
    priority: NotificationPriority
    is_read: bool
    read_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra")
    created_at: datetime

    model_config = {"from_attributes": True}
