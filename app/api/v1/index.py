from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.dependencies import get_ownership_guard
from app.core.errors import NotFound
from app.db.core import get_session
from app.services.notification import count_undelivered
from app.services.ownership import OwnershipGuard

router = APIRouter()


@router.get("/", status_code=status.HTTP_200_OK)
def index():
    return {"status": "API is running"}


@router.get("/readiness", status_code=status.HTTP_200_OK)
def readiness_check(
    session: Session = Depends(get_session),
    guard: OwnershipGuard = Depends(get_ownership_guard)
):
    """
    Ready once the registry has an administrator to grant roles.
    Also reports how many notifications are still waiting for delivery.
    """
    try:
        administrator = guard.current_administrator()
        backlog = count_undelivered(session)
    except NotFound:
        logger.warning("Readiness check failed: no administrator bootstrapped")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Administrator not bootstrapped"
        )
    except SQLAlchemyError:
        logger.exception("Database readiness check failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not ready"
        )

    return {
        "status": "ready",
        "database": "online",
        "administrator": administrator,
        "undelivered_notifications": backlog
    }
