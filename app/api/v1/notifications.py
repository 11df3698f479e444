from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.db.core import get_session
from app.db.schema import MAX_PRODUCT_ID
from app.models.notification import NotificationRead
from app.services.notification import list_events

router = APIRouter()


@router.get("/", response_model=List[NotificationRead])
def list_notifications(
    product_id: Optional[int] = Query(default=None, ge=0, le=MAX_PRODUCT_ID),
    account: Optional[str] = None,
    after_id: Optional[int] = Query(default=None, ge=0, le=MAX_PRODUCT_ID),
    limit: int = Query(default=100, ge=1, le=1000),
    session: Session = Depends(get_session)
):
    """
    Notification stream in commit order. Poll with 'after_id' set to the
    last id seen to receive only newer records.
    """
    return list_events(
        session, product_id=product_id, account=account, after_id=after_id, limit=limit)
