from typing import Any, Dict, Optional
from datetime import datetime
from sqlmodel import SQLModel

from app.db.schema import EventType


class NotificationRead(SQLModel):
    id: int
    event_type: EventType
    product_id: Optional[int] = None
    account: Optional[str] = None
    payload: Dict[str, Any]
    created_at: datetime
